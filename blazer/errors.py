# blazer/errors.py
"""
Blazer Error Types

Architecture Overview:
─────────────────────
┌──────────────────────────────────────────────────────────────────┐
│  BlazerError (base)                                              │
│  ├── SetupError            - fatal, aborts the run, no report    │
│  │   ├── WorkingDirectoryError                                   │
│  │   ├── DiagnosticStreamError                                   │
│  │   ├── SyntaxForestError                                       │
│  │   └── ConfigError                                             │
│  └── CompilerError         - the compiler ran but the run failed │
│      ├── CompilerFailedError                                     │
│      └── CompilerTimeoutError                                    │
└──────────────────────────────────────────────────────────────────┘

``MalformedDiagnosticLine`` sits outside the hierarchy: it is a
``ValueError`` raised by the diagnostic line parser and always handled
by the index builder.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple


class BlazerError(Exception):
    """Base class for every error raised by blazer."""


# ═══════════════════════════════════════════════════════════════════════
#  FATAL SETUP ERRORS
# ═══════════════════════════════════════════════════════════════════════

class SetupError(BlazerError):
    """A failure that prevents any analysis from taking place."""


class WorkingDirectoryError(SetupError):
    """The project working directory could not be resolved."""

    def __init__(self, path: Optional[str], reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"working directory {path!r} unavailable: {reason}")


class DiagnosticStreamError(SetupError):
    """The compiler could not be launched or its error stream opened."""

    def __init__(self, command: Sequence[str], reason: str) -> None:
        self.command = tuple(command)
        self.reason = reason
        super().__init__(f"cannot run {' '.join(self.command)!r}: {reason}")


class SyntaxForestError(SetupError):
    """The syntax forest for the project could not be loaded."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class ConfigError(SetupError):
    """The run configuration is invalid."""

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = tuple(problems)
        super().__init__("invalid configuration: " + "; ".join(self.problems))


# ═══════════════════════════════════════════════════════════════════════
#  COMPILER RUN ERRORS
# ═══════════════════════════════════════════════════════════════════════

class CompilerError(BlazerError):
    """The compiler was started but the run cannot produce a valid index."""


class CompilerFailedError(CompilerError):
    """
    The compiler exited with a non-zero status.

    ``tail`` holds the last lines of its error stream, which usually
    contain the build errors.
    """

    def __init__(self, returncode: int, tail: Sequence[str] = ()) -> None:
        self.returncode = returncode
        self.tail: Tuple[str, ...] = tuple(tail)
        message = f"compiler exited with status {returncode}"
        if self.tail:
            message += ":\n" + "\n".join(self.tail)
        super().__init__(message)


class CompilerTimeoutError(CompilerError):
    """The compiler did not finish within the configured bound."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"compiler did not finish within {timeout:g}s")


# ═══════════════════════════════════════════════════════════════════════
#  RECOVERABLE PARSE NOISE
# ═══════════════════════════════════════════════════════════════════════

class MalformedDiagnosticLine(ValueError):
    """A diagnostic line mentions the project but has no usable position."""

    def __init__(self, line: str, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"{reason}: {line!r}")


__all__ = [
    "BlazerError",
    "SetupError",
    "WorkingDirectoryError",
    "DiagnosticStreamError",
    "SyntaxForestError",
    "ConfigError",
    "CompilerError",
    "CompilerFailedError",
    "CompilerTimeoutError",
    "MalformedDiagnosticLine",
]
