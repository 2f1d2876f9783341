"""Decoder for the Erlang External Term Format (``term_to_binary/1`` output).

Only the term kinds that appear in compiled module metadata are supported:
numbers, atoms, tuples, lists, strings, binaries, maps and external funs.
Process identifiers, references and ports raise :class:`BeamFormatError`.
"""

import struct
import zlib
from dataclasses import dataclass
from typing import Any

from erlcheck.core.exceptions.errors import BeamFormatError
from erlcheck.erlang.terms import Atom

VERSION = 131

COMPRESSED = 80
NEW_FLOAT_EXT = 70
BIT_BINARY_EXT = 77
SMALL_INTEGER_EXT = 97
INTEGER_EXT = 98
FLOAT_EXT = 99
ATOM_EXT = 100
SMALL_TUPLE_EXT = 104
LARGE_TUPLE_EXT = 105
NIL_EXT = 106
STRING_EXT = 107
LIST_EXT = 108
BINARY_EXT = 109
SMALL_BIG_EXT = 110
LARGE_BIG_EXT = 111
EXPORT_EXT = 113
SMALL_ATOM_EXT = 115
MAP_EXT = 116
ATOM_UTF8_EXT = 118
SMALL_ATOM_UTF8_EXT = 119


@dataclass(frozen=True)
class ExternalFun:
    """An ``fun M:F/A`` reference."""

    module: Atom
    function: Atom
    arity: int


class ImproperList(list):
    """A list whose tail is not ``[]``."""

    def __init__(self, items: list[Any], tail: Any) -> None:
        super().__init__(items)
        self.tail = tail


class _Decoder:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def _take(self, count: int) -> bytes:
        end = self.pos + count
        if end > len(self.data):
            raise BeamFormatError("Truncated external term")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def _u8(self) -> int:
        return self._take(1)[0]

    def _u16(self) -> int:
        return struct.unpack(">H", self._take(2))[0]

    def _u32(self) -> int:
        return struct.unpack(">I", self._take(4))[0]

    def _atom(self, length: int, encoding: str) -> Atom:
        return Atom(self._take(length).decode(encoding))

    def _big(self, length: int) -> int:
        sign = self._u8()
        value = int.from_bytes(self._take(length), "little")
        return -value if sign else value

    def decode(self) -> Any:
        tag = self._u8()

        if tag == SMALL_INTEGER_EXT:
            return self._u8()
        if tag == INTEGER_EXT:
            return struct.unpack(">i", self._take(4))[0]
        if tag == NEW_FLOAT_EXT:
            return struct.unpack(">d", self._take(8))[0]
        if tag == FLOAT_EXT:
            return float(self._take(31).rstrip(b"\x00").decode("ascii"))
        if tag == ATOM_EXT:
            return self._atom(self._u16(), "latin-1")
        if tag == SMALL_ATOM_EXT:
            return self._atom(self._u8(), "latin-1")
        if tag == ATOM_UTF8_EXT:
            return self._atom(self._u16(), "utf-8")
        if tag == SMALL_ATOM_UTF8_EXT:
            return self._atom(self._u8(), "utf-8")
        if tag == SMALL_TUPLE_EXT:
            return tuple(self.decode() for _ in range(self._u8()))
        if tag == LARGE_TUPLE_EXT:
            return tuple(self.decode() for _ in range(self._u32()))
        if tag == NIL_EXT:
            return []
        if tag == STRING_EXT:
            return self._take(self._u16()).decode("latin-1")
        if tag == LIST_EXT:
            items = [self.decode() for _ in range(self._u32())]
            tail = self.decode()
            if tail == []:
                return items
            return ImproperList(items, tail)
        if tag == BINARY_EXT:
            return self._take(self._u32())
        if tag == BIT_BINARY_EXT:
            length = self._u32()
            self._u8()
            return self._take(length)
        if tag == SMALL_BIG_EXT:
            return self._big(self._u8())
        if tag == LARGE_BIG_EXT:
            return self._big(self._u32())
        if tag == MAP_EXT:
            result: dict[Any, Any] = {}
            for _ in range(self._u32()):
                key = self.decode()
                result[_hashable(key)] = self.decode()
            return result
        if tag == EXPORT_EXT:
            module = self.decode()
            function = self.decode()
            arity = self.decode()
            return ExternalFun(module, function, arity)

        raise BeamFormatError(f"Unsupported external term tag {tag}")


def _hashable(term: Any) -> Any:
    if isinstance(term, list):
        return tuple(_hashable(item) for item in term)
    return term


def binary_to_term(data: bytes) -> Any:
    """Decode a complete ``term_to_binary`` payload, compressed or not.

    Raises:
        BeamFormatError: If the payload is malformed or uses unsupported tags.
    """
    if not data or data[0] != VERSION:
        raise BeamFormatError("Missing external term format version byte")

    body = data[1:]
    if body and body[0] == COMPRESSED:
        if len(body) < 5:
            raise BeamFormatError("Truncated compressed term header")
        expected_size = struct.unpack(">I", body[1:5])[0]
        try:
            body = zlib.decompress(body[5:])
        except zlib.error as e:
            raise BeamFormatError(f"Corrupt compressed term: {e}") from e
        if len(body) != expected_size:
            raise BeamFormatError("Compressed term size mismatch")

    decoder = _Decoder(body)
    term = decoder.decode()
    if decoder.pos != len(body):
        raise BeamFormatError("Trailing bytes after external term")
    return term
