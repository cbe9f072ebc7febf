from __future__ import annotations

from enum import Enum
from pathlib import Path


class ErrorKind(str, Enum):
    not_found = "not_found"
    explicit_miss = "explicit_miss"
    ambiguous = "ambiguous"
    target_exists = "target_exists"
    template_exists = "template_exists"
    template_unreadable = "template_unreadable"
    invalid_template = "invalid_template"
    invalid_input = "invalid_input"
    io_failure = "io_failure"
    rollback_failed = "rollback_failed"


class TemplaarError(RuntimeError):
    """Typed failure surfaced to the CLI.

    ``kind`` drives exit code selection; ``path`` points at the offending
    file or directory when there is one. Only ``rollback_failed`` is fatal:
    it means a partially written target was left on disk.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        path: Path | None = None,
        names: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.path = path
        self.names = names

    @property
    def fatal(self) -> bool:
        return self.kind == ErrorKind.rollback_failed
