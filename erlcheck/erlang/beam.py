"""BEAM file reader.

A BEAM file is an IFF container: ``FOR1 <size> BEAM`` followed by chunks of
``<4-byte id> <u32 size> <data>`` padded to 4 bytes. The abstract code used
to locate function definitions lives in the ``Dbgi`` chunk (OTP 20+) or in
the legacy ``Abst`` chunk.
"""

import struct
from pathlib import Path
from typing import Any

from erlcheck.core.exceptions.errors import BeamFormatError
from erlcheck.erlang.etf import binary_to_term
from erlcheck.erlang.terms import to_text


def read_chunks(data: bytes) -> dict[str, bytes]:
    """Split the raw bytes of a BEAM file into its chunks.

    Raises:
        BeamFormatError: If the data is not a BEAM container.
    """
    if len(data) < 12 or data[:4] != b"FOR1" or data[8:12] != b"BEAM":
        raise BeamFormatError("Not a BEAM file")

    (form_size,) = struct.unpack(">I", data[4:8])
    end = min(len(data), 8 + form_size)
    pos = 12
    chunks: dict[str, bytes] = {}
    while pos + 8 <= end:
        chunk_id = data[pos:pos + 4].decode("latin-1")
        (size,) = struct.unpack(">I", data[pos + 4:pos + 8])
        start = pos + 8
        if start + size > end:
            raise BeamFormatError(f"Chunk {chunk_id} overruns the file")
        chunks[chunk_id] = data[start:start + size]
        pos = start + ((size + 3) & ~3)
    return chunks


def abstract_code(chunks: dict[str, bytes]) -> list[Any]:
    """Return the abstract forms stored in the module's debug information.

    Raises:
        BeamFormatError: If the module was compiled without ``debug_info``.
    """
    dbgi = chunks.get("Dbgi")
    if dbgi:
        term = binary_to_term(dbgi)
        if (
            isinstance(term, tuple)
            and len(term) == 3
            and term[0] == "debug_info_v1"
            and term[1] == "erl_abstract_code"
            and isinstance(term[2], tuple)
            and len(term[2]) == 2
            and isinstance(term[2][0], list)
        ):
            return term[2][0]
        raise BeamFormatError("Debug information has no Erlang abstract code")

    abst = chunks.get("Abst")
    if abst:
        term = binary_to_term(abst)
        if isinstance(term, tuple) and len(term) == 2 and term[0] == "raw_abstract_v1":
            return term[1]
        raise BeamFormatError("Unsupported abstract code format")

    raise BeamFormatError("No abstract code chunk; compile with debug_info")


def anno_line(anno: Any) -> int:
    """Extract the line number from an ``erl_anno`` annotation."""
    if isinstance(anno, int):
        return anno
    if isinstance(anno, tuple) and anno and isinstance(anno[0], int):
        return anno[0]
    if isinstance(anno, list):
        for item in anno:
            if isinstance(item, tuple) and len(item) == 2 and item[0] == "location":
                return anno_line(item[1])
    return 1


def _element(form: Any, index: int) -> Any:
    if isinstance(form, tuple) and len(form) > index:
        return form[index]
    return None


def find_function_source(forms: list[Any], function: str, arity: int) -> tuple[str, int]:
    """Locate the source file and definition line of ``function/arity``.

    Compiler-generated functions (``module_info/0,1`` and friends) have no
    definition in the source; they resolve to line 1.
    """
    first = forms[0] if forms else None
    if not (
        _element(first, 0) == "attribute"
        and _element(first, 2) == "file"
        and isinstance(_element(first, 3), tuple)
    ):
        raise BeamFormatError("Abstract code does not start with a file attribute")
    source = to_text(first[3][0])

    matches = [
        form
        for form in forms
        if _element(form, 0) == "function"
        and _element(form, 2) == function
        and _element(form, 3) == arity
    ]
    if len(matches) == 1:
        return source, anno_line(matches[0][1])
    return source, 1


def find_mfa_source(beam_path: Path, function: str, arity: int) -> tuple[str, int]:
    """Read ``beam_path`` and locate where ``function/arity`` is defined.

    Raises:
        BeamFormatError: If the file cannot be read or decoded.
    """
    try:
        data = beam_path.read_bytes()
    except OSError as e:
        raise BeamFormatError(f"Cannot read BEAM file: {e}", beam_path=beam_path) from e
    forms = abstract_code(read_chunks(data))
    return find_function_source(forms, function, arity)
