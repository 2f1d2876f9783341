"""Verification pipeline: compile, cross-reference, hot-reload, replicate."""

from erlcheck.pipeline.compiler import CompileResult, ErlcCompiler
from erlcheck.pipeline.orchestrator import Checker, FileType, sniff_file_type
from erlcheck.pipeline.remote import ReloadResult, ReloadStatus, RemoteLoader
from erlcheck.pipeline.replicate import replicate
from erlcheck.pipeline.xref import XrefRunner, XrefWarning

__all__ = [
    "Checker",
    "FileType",
    "sniff_file_type",
    "CompileResult",
    "ErlcCompiler",
    "XrefRunner",
    "XrefWarning",
    "RemoteLoader",
    "ReloadResult",
    "ReloadStatus",
    "replicate",
]
