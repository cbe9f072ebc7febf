from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import ErrorKind, TemplaarError

TEMPLATE_SUFFIX = ".aar"
STORED_NAME_RE = re.compile(r"^\.(.+)\.aar$", re.DOTALL)


class TemplateKind(str, Enum):
    file = "file"
    directory = "directory"


class Scope(str, Enum):
    local = "local"
    global_ = "global"


@dataclass(frozen=True)
class Template:
    name: str
    kind: TemplateKind
    path: Path
    scope: Scope


def to_stored_name(name: str) -> str:
    return f".{name}{TEMPLATE_SUFFIX}"


def from_stored_name(entry: str) -> str | None:
    """Decode a directory entry into a template name, or None if it is not one."""
    match = STORED_NAME_RE.match(entry)
    if match is None or match.group(1) in (".", ".."):
        return None
    return match.group(1)


def validate_name(name: str) -> str:
    candidate = name.strip()
    if not candidate:
        raise TemplaarError(ErrorKind.invalid_input, "Template name cannot be empty.")
    if candidate in (".", ".."):
        raise TemplaarError(ErrorKind.invalid_input, f"Invalid template name: {candidate}")
    separators = {"/", os.sep} | ({os.altsep} if os.altsep else set())
    if any(sep in candidate for sep in separators):
        raise TemplaarError(ErrorKind.invalid_input, f"Template name cannot contain a path separator: {candidate}")
    return candidate