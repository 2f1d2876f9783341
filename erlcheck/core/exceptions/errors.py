"""Custom exception definitions for erlcheck."""

from pathlib import Path
from typing import Any


class ErlCheckError(Exception):
    """Base exception for all erlcheck errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Error message.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class BuildConfigError(ErlCheckError):
    """Exception raised when the build configuration of a file cannot be loaded.

    The error is reported against ``file`` (a descriptor or the checked
    source file) at ``line`` so that editors can jump to it.
    """

    def __init__(
        self,
        message: str,
        file: Path | str | None = None,
        line: int = 1,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize build configuration error.

        Args:
            message: Error message.
            file: File the error should be reported against.
            line: Line number within the file.
            details: Additional error details.
        """
        details = details or {}
        if file:
            details["file"] = str(file)
        super().__init__(message, details)
        self.file = Path(file) if file else None
        self.line = line


class TermParseError(ErlCheckError):
    """Exception raised for malformed Erlang term files."""

    def __init__(
        self,
        message: str,
        line: int = 1,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize term parse error.

        Args:
            message: Error message.
            line: Line where parsing failed.
            details: Additional error details.
        """
        details = details or {}
        details["line"] = line
        super().__init__(message, details)
        self.line = line


class BeamFormatError(ErlCheckError):
    """Exception raised when a BEAM file cannot be decoded."""

    def __init__(
        self,
        message: str,
        beam_path: Path | str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize BEAM format error.

        Args:
            message: Error message.
            beam_path: Path of the offending BEAM file.
            details: Additional error details.
        """
        details = details or {}
        if beam_path:
            details["beam_path"] = str(beam_path)
        super().__init__(message, details)


class CommandError(ErlCheckError):
    """Exception raised when an external command cannot be run."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize command error.

        Args:
            message: Error message.
            command: Command line that failed.
            details: Additional error details.
        """
        details = details or {}
        if command:
            details["command"] = " ".join(command)
        super().__init__(message, details)


class HotReloadError(ErlCheckError):
    """Exception raised when a module cannot be hot-loaded into a node."""

    def __init__(
        self,
        message: str,
        module: str | None = None,
        node: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize hot-reload error.

        Args:
            message: Error message.
            module: Module being loaded.
            node: Target node name.
            details: Additional error details.
        """
        details = details or {}
        if module:
            details["module"] = module
        if node:
            details["node"] = node
        super().__init__(message, details)


class ReplicationError(ErlCheckError):
    """Exception raised when a compiled artifact cannot be copied."""

    def __init__(
        self,
        message: str,
        source: Path | str | None = None,
        target: Path | str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize replication error.

        Args:
            message: Error message.
            source: Freshly compiled artifact.
            target: Artifact that should have been overwritten.
            details: Additional error details.
        """
        details = details or {}
        if source:
            details["source"] = str(source)
        if target:
            details["target"] = str(target)
        super().__init__(message, details)


class ConfigurationError(ErlCheckError):
    """Exception raised for erlcheck's own configuration errors."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error.

        Args:
            message: Error message.
            config_key: Configuration key that caused the error.
            details: Additional error details.
        """
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details)
