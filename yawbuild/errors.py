"""
Error taxonomy for the release pipeline.

Every stage failure is fatal. The CLI prints the message (and any captured
tool diagnostics) verbatim and exits non-zero.
"""

from pathlib import Path
from typing import Optional, Union


class PipelineError(Exception):
    """Base class for all release pipeline failures."""

    exit_code = 1


class ConfigurationError(PipelineError):
    """Raised when the release config or toolchain flag set is invalid."""


class FilesystemError(PipelineError):
    """Raised when resetting, checking or copying files fails."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class CompilationError(PipelineError):
    """Raised when the cross-compiler exits non-zero or produces no artifacts.

    Attributes:
        returncode: Exit status of the compiler process
        diagnostics: Captured compiler output, unmodified
    """

    def __init__(self, message: str, returncode: int = 1, diagnostics: str = ""):
        self.returncode = returncode
        self.diagnostics = diagnostics
        super().__init__(message)

    @property
    def exit_code(self) -> int:
        return self.returncode if self.returncode > 0 else 1


class ServerBindError(PipelineError):
    """Raised when the local server cannot bind its listening socket."""

    def __init__(self, host: str, port: int, reason: str = ""):
        self.host = host
        self.port = port
        message = f"Cannot bind local server to {host}:{port}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
