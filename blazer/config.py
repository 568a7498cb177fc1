"""Run configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from blazer.errors import ConfigError, WorkingDirectoryError

# -a forces recompilation: with a warm build cache the compiler prints no
# assembly and every complex branch would be reported. -vet=off keeps vet
# findings from failing the run of a module that compiles.
GO_TEST_COMMAND: Tuple[str, ...] = (
    "go", "test", "-a", "-vet=off", "-count=1", "-run", "^$", "-gcflags", "-S", "./...",
)
GO_BUILD_COMMAND: Tuple[str, ...] = ("go", "build", "-a", "-gcflags", "-S", "./...")

DEFAULT_GENERATED_MARKER = "generated"
DEFAULT_SUPPRESSION_MARKER = "blazer:ignore"


@dataclass
class BlazerConfig:
    """Tuning knobs for one blazer run."""
    working_dir: Optional[str] = None
    build_command: Optional[Sequence[str]] = None
    include_tests: bool = True
    generated_marker: str = DEFAULT_GENERATED_MARKER
    suppression_marker: str = DEFAULT_SUPPRESSION_MARKER
    timeout_seconds: Optional[float] = None
    colour: Optional[bool] = None

    def validate(self) -> List[str]:
        """Return a list of validation problems (empty if valid)."""
        problems: List[str] = []
        if self.build_command is not None and not list(self.build_command):
            problems.append("build_command must not be empty")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            problems.append("timeout_seconds must be positive")
        if not self.generated_marker:
            problems.append("generated_marker must not be empty")
        if not self.suppression_marker:
            problems.append("suppression_marker must not be empty")
        return problems

    def check(self) -> None:
        """Raise :class:`ConfigError` if :meth:`validate` finds problems."""
        problems = self.validate()
        if problems:
            raise ConfigError(problems)

    def command(self) -> Tuple[str, ...]:
        """The compiler command line to run."""
        if self.build_command is not None:
            return tuple(self.build_command)
        return GO_TEST_COMMAND if self.include_tests else GO_BUILD_COMMAND

    def resolve_working_dir(self) -> str:
        """
        Absolute project directory, used as the diagnostic anchor.

        Symlinks are kept as given so that the anchor matches the paths
        the compiler prints when started with ``PWD`` set to it.
        """
        raw = self.working_dir
        try:
            path = os.path.abspath(os.path.expanduser(raw)) if raw else os.getcwd()
        except OSError as exc:
            raise WorkingDirectoryError(raw, exc.strerror or str(exc)) from exc
        if not os.path.isdir(path):
            raise WorkingDirectoryError(path, "not a directory")
        return path


__all__ = [
    "BlazerConfig",
    "GO_TEST_COMMAND",
    "GO_BUILD_COMMAND",
    "DEFAULT_GENERATED_MARKER",
    "DEFAULT_SUPPRESSION_MARKER",
]
