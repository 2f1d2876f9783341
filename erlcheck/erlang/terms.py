"""Erlang term model, reader and writer.

Erlang terms are mapped onto Python values as follows:

- atoms: :class:`Atom` (a ``str`` subclass, so it compares equal to text)
- strings (character lists written with double quotes): ``str``
- integers and floats: ``int`` and ``float``
- tuples and lists: ``tuple`` and ``list``
- binaries: ``bytes``
- maps: ``dict``

:func:`consult` reads a file of dot-terminated terms the same way
``file:consult/1`` does, which is all that is needed for ``rebar.config``.
:func:`format_term` writes a term back in Erlang syntax so it can be passed
to ``erlc`` or embedded in an ``erl -eval`` expression.
"""

import math
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from erlcheck.core.exceptions.errors import TermParseError


class Atom(str):
    """An Erlang atom."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Atom({str.__repr__(self)})"


RESERVED_WORDS = frozenset(
    {
        "after", "and", "andalso", "band", "begin", "bnot", "bor", "bsl", "bsr",
        "bxor", "case", "catch", "cond", "div", "end", "fun", "if", "let", "maybe",
        "not", "of", "or", "orelse", "receive", "rem", "try", "when", "xor", "else",
    }
)

_UNQUOTED_ATOM = re.compile(r"[a-z][A-Za-z0-9_@]*\Z")

_TOKEN_SPEC = [
    ("ws", r"\s+"),
    ("comment", r"%[^\n]*"),
    ("float", r"-?\d+\.\d+(?:[eE][+-]?\d+)?"),
    ("based", r"-?\d+#[0-9A-Za-z]+"),
    ("int", r"-?\d+"),
    ("char", r"\$(?:\\(?:x\{[0-9A-Fa-f]+\}|x[0-9A-Fa-f]{2}|[0-7]{1,3}|\^.|.)|.)"),
    ("string", r'"(?:[^"\\]|\\.)*"'),
    ("qatom", r"'(?:[^'\\]|\\.)*'"),
    ("atom", r"[a-z][A-Za-z0-9_@]*"),
    ("var", r"[A-Z_][A-Za-z0-9_@]*"),
    ("punct", r"<<|>>|=>|#\{|[{}\[\],|.]"),
]
_TOKEN_RE = re.compile("|".join(f"(?P<{name}>{regex})" for name, regex in _TOKEN_SPEC), re.DOTALL)

_SIMPLE_ESCAPES = {
    "b": "\b",
    "d": "\x7f",
    "e": "\x1b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "s": " ",
    "t": "\t",
    "v": "\v",
}


@dataclass
class _Token:
    kind: str
    value: str
    line: int


def _unescape(body: str, line: int) -> str:
    """Resolve Erlang escape sequences inside a quoted string or atom."""
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        i += 1
        if i >= len(body):
            raise TermParseError("Dangling escape character", line=line)
        esc = body[i]
        if esc in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[esc])
            i += 1
        elif esc in "01234567":
            end = i + 1
            while end < min(i + 3, len(body)) and body[end] in "01234567":
                end += 1
            out.append(chr(int(body[i:end], 8)))
            i = end
        elif esc == "x":
            match = re.match(r"x\{([0-9A-Fa-f]+)\}|x([0-9A-Fa-f]{2})", body[i:])
            if not match:
                raise TermParseError("Invalid hexadecimal escape", line=line)
            out.append(chr(int(match.group(1) or match.group(2), 16)))
            i += len(match.group(0))
        elif esc == "^":
            if i + 1 >= len(body):
                raise TermParseError("Invalid control escape", line=line)
            out.append(chr(ord(body[i + 1]) % 32))
            i += 2
        else:
            out.append(esc)
            i += 1
    return "".join(out)


def _tokenize(text: str) -> Iterator[_Token]:
    pos = 0
    line = 1
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise TermParseError(f"Illegal character {text[pos]!r}", line=line)
        kind = match.lastgroup or ""
        value = match.group(0)
        if kind not in ("ws", "comment"):
            yield _Token(kind, value, line)
        line += value.count("\n")
        pos = match.end()


class _Parser:
    """Recursive descent parser over the token stream."""

    def __init__(self, text: str) -> None:
        self.tokens = list(_tokenize(text))
        self.pos = 0

    def _peek(self) -> _Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> _Token:
        token = self._peek()
        if token is None:
            last_line = self.tokens[-1].line if self.tokens else 1
            raise TermParseError("Unexpected end of file", line=last_line)
        self.pos += 1
        return token

    def _expect(self, value: str) -> _Token:
        token = self._next()
        if token.kind != "punct" or token.value != value:
            raise TermParseError(
                f"Syntax error before: {token.value}", line=token.line
            )
        return token

    def _at(self, value: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == "punct" and token.value == value

    def parse_all(self) -> list[Any]:
        terms: list[Any] = []
        while self._peek() is not None:
            terms.append(self.parse_term())
            self._expect(".")
        return terms

    def parse_term(self) -> Any:
        token = self._next()
        kind, value = token.kind, token.value

        if kind == "int":
            return int(value)
        if kind == "float":
            return float(value)
        if kind == "based":
            base, _, digits = value.lstrip("-").partition("#")
            number = int(digits, int(base))
            return -number if value.startswith("-") else number
        if kind == "char":
            return ord(_unescape(value[1:], token.line)) if len(value) > 2 else ord(value[1])
        if kind == "atom":
            return Atom(value)
        if kind == "qatom":
            return Atom(_unescape(value[1:-1], token.line))
        if kind == "string":
            parts = [_unescape(value[1:-1], token.line)]
            # Adjacent string literals are concatenated
            while (nxt := self._peek()) is not None and nxt.kind == "string":
                self.pos += 1
                parts.append(_unescape(nxt.value[1:-1], nxt.line))
            return "".join(parts)
        if kind == "var":
            raise TermParseError(f"Variable '{value}' is unbound", line=token.line)
        if kind == "punct":
            if value == "{":
                return tuple(self._parse_elements("}"))
            if value == "[":
                return self._parse_list()
            if value == "<<":
                return self._parse_binary()
            if value == "#{":
                return self._parse_map()
        raise TermParseError(f"Syntax error before: {value}", line=token.line)

    def _parse_elements(self, closing: str) -> list[Any]:
        items: list[Any] = []
        if self._at(closing):
            self._next()
            return items
        while True:
            items.append(self.parse_term())
            if self._at(","):
                self._next()
                continue
            self._expect(closing)
            return items

    def _parse_list(self) -> list[Any]:
        items: list[Any] = []
        if self._at("]"):
            self._next()
            return items
        while True:
            items.append(self.parse_term())
            if self._at(","):
                self._next()
                continue
            if self._at("|"):
                self._next()
                tail = self.parse_term()
                if not isinstance(tail, list):
                    raise TermParseError(
                        "Improper lists are not supported", line=self.tokens[self.pos - 1].line
                    )
                items.extend(tail)
            self._expect("]")
            return items

    def _parse_binary(self) -> bytes:
        data = bytearray()
        if self._at(">>"):
            self._next()
            return bytes(data)
        while True:
            token = self._next()
            if token.kind == "string":
                data.extend(_unescape(token.value[1:-1], token.line).encode("utf-8"))
            elif token.kind == "int" and 0 <= int(token.value) <= 255:
                data.append(int(token.value))
            else:
                raise TermParseError(
                    f"Unsupported binary segment: {token.value}", line=token.line
                )
            if self._at(","):
                self._next()
                continue
            self._expect(">>")
            return bytes(data)

    def _parse_map(self) -> dict[Any, Any]:
        result: dict[Any, Any] = {}
        if self._at("}"):
            self._next()
            return result
        while True:
            key = self.parse_term()
            self._expect("=>")
            result[_hashable(key)] = self.parse_term()
            if self._at(","):
                self._next()
                continue
            self._expect("}")
            return result


def _hashable(term: Any) -> Any:
    if isinstance(term, list):
        return tuple(_hashable(item) for item in term)
    return term


def parse_terms(text: str) -> list[Any]:
    """Parse a sequence of dot-terminated Erlang terms.

    Raises:
        TermParseError: If the text is not a valid sequence of terms.
    """
    return _Parser(text).parse_all()


def parse_term(text: str) -> Any:
    """Parse exactly one Erlang term; the trailing dot is optional."""
    stripped = text.strip()
    if not stripped.endswith("."):
        stripped += "."
    terms = parse_terms(stripped)
    if len(terms) != 1:
        raise TermParseError(f"Expected one term, found {len(terms)}")
    return terms[0]


def consult(path: Path) -> list[Any]:
    """Read the terms of a file, like ``file:consult/1``.

    Raises:
        OSError: If the file cannot be read.
        TermParseError: If the content is malformed or not UTF-8.
    """
    data = path.read_bytes()
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TermParseError(
            f"Invalid UTF-8 byte 0x{data[e.start]:02x}",
            line=data.count(b"\n", 0, e.start) + 1,
        ) from e
    return parse_terms(text)


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


def _quote(text: str, quote: str) -> str:
    out: list[str] = []
    for ch in text:
        if ch == "\\" or ch == quote:
            out.append("\\" + ch)
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 32 or ord(ch) == 127:
            out.append(f"\\x{{{ord(ch):X}}}")
        else:
            out.append(ch)
    return quote + "".join(out) + quote


def format_atom(name: str) -> str:
    """Write an atom, quoting it when Erlang requires it."""
    if _UNQUOTED_ATOM.match(name) and name not in RESERVED_WORDS:
        return name
    return _quote(name, "'")


def format_float(value: float) -> str:
    """Write a float as an Erlang literal, which needs a fractional part."""
    if math.isinf(value) or math.isnan(value):
        raise ValueError(f"Erlang has no literal for {value!r}")
    mantissa, e, exponent = repr(value).partition("e")
    if "." not in mantissa:
        mantissa += ".0"
    return mantissa + e + exponent


def format_term(term: Any) -> str:
    """Write a Python value as Erlang source text."""
    if isinstance(term, Atom):
        return format_atom(term)
    if isinstance(term, bool):
        return "true" if term else "false"
    if isinstance(term, str):
        return _quote(term, '"')
    if isinstance(term, Path):
        return _quote(str(term), '"')
    if isinstance(term, int):
        return str(term)
    if isinstance(term, float):
        return format_float(term)
    if isinstance(term, tuple):
        return "{" + ",".join(format_term(item) for item in term) + "}"
    if isinstance(term, list):
        return "[" + ",".join(format_term(item) for item in term) + "]"
    if isinstance(term, (bytes, bytearray)):
        return "<<" + ",".join(str(byte) for byte in term) + ">>"
    if isinstance(term, dict):
        pairs = (f"{format_term(k)} => {format_term(v)}" for k, v in term.items())
        return "#{" + ",".join(pairs) + "}"
    raise TypeError(f"Cannot write {type(term).__name__} as an Erlang term")


# ---------------------------------------------------------------------------
# proplists
# ---------------------------------------------------------------------------


def _key_matches(element: Any, key: str) -> bool:
    if isinstance(element, Atom):
        return element == key
    return (
        isinstance(element, tuple)
        and len(element) >= 1
        and isinstance(element[0], Atom)
        and element[0] == key
    )


def get_value(key: str, proplist: Any, default: Any = None) -> Any:
    """Look up ``key`` like ``proplists:get_value/3``.

    A bare atom entry means ``true``; a ``{Key, Value}`` pair yields
    ``Value``. Only the first matching entry counts.
    """
    if not isinstance(proplist, list):
        return default
    for element in proplist:
        if not _key_matches(element, key):
            continue
        if isinstance(element, Atom):
            return True
        if len(element) == 2:
            return element[1]
        return default
    return default


def delete(key: str, proplist: list[Any]) -> list[Any]:
    """Remove every entry for ``key``, like ``proplists:delete/2``."""
    return [element for element in proplist if not _key_matches(element, key)]


def to_text(term: Any) -> str:
    """Interpret a string-like term (string, atom, char list, binary) as text."""
    if isinstance(term, str):
        return str(term)
    if isinstance(term, (bytes, bytearray)):
        return bytes(term).decode("utf-8", errors="replace")
    if isinstance(term, list) and all(isinstance(ch, int) for ch in term):
        return "".join(chr(ch) for ch in term)
    raise TypeError(f"Not a string-like term: {term!r}")
