"""erlcheck - build-aware checking of Erlang source files."""

__version__ = "0.1.0"
