from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)

EDITOR_ENV = "EDITOR"


@dataclass(frozen=True)
class EditorRun:
    command: tuple[str, ...]
    exit_code: int | None
    error: str | None = None

    @property
    def ran(self) -> bool:
        return self.exit_code is not None


def editor_command(configured: str | None = None) -> list[str] | None:
    raw = os.environ.get(EDITOR_ENV, "").strip() or (configured or "").strip()
    if not raw:
        return None
    return shlex.split(raw)


def launch_editor(paths: Sequence[Path], configured: str | None = None) -> EditorRun | None:
    # A nonzero exit or a missing executable is reported, not raised.
    prefix = editor_command(configured)
    if prefix is None or not paths:
        logger.debug("No editor configured, skipping edit step")
        return None

    command = tuple(prefix + [str(path) for path in paths])
    logger.debug("Launching editor: %s", " ".join(command))
    try:
        result = subprocess.run(command, check=False)
    except OSError as error:
        logger.warning("Could not start editor %s: %s", prefix[0], error)
        return EditorRun(command=command, exit_code=None, error=str(error))

    if result.returncode != 0:
        logger.warning("Editor exited with status %s", result.returncode)
    return EditorRun(command=command, exit_code=result.returncode)
