"""Erlang data formats: source terms, external terms and BEAM files."""

from erlcheck.erlang.beam import abstract_code, find_mfa_source, read_chunks
from erlcheck.erlang.etf import binary_to_term
from erlcheck.erlang.terms import (
    Atom,
    consult,
    delete,
    format_term,
    get_value,
    parse_term,
    parse_terms,
    to_text,
)

__all__ = [
    "Atom",
    "consult",
    "parse_terms",
    "parse_term",
    "format_term",
    "get_value",
    "delete",
    "to_text",
    "binary_to_term",
    "read_chunks",
    "abstract_code",
    "find_mfa_source",
]
