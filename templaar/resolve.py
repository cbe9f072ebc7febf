from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator

from .errors import ErrorKind, TemplaarError
from .naming import Scope, Template, TemplateKind, from_stored_name

logger = logging.getLogger(__name__)

DirectoryLister = Callable[[Path], Iterable[tuple[str, TemplateKind]]]


class Outcome(str, Enum):
    found = "found"
    not_found = "not_found"
    explicit_miss = "explicit_miss"
    ambiguous = "ambiguous"


@dataclass(frozen=True)
class Resolution:
    outcome: Outcome
    template: Template | None = None
    requested: str | None = None
    candidates: tuple[str, ...] = ()
    directory: Path | None = None

    def unwrap(self) -> Template:
        """Return the template, or raise the error matching the outcome."""
        if self.outcome == Outcome.found and self.template is not None:
            return self.template
        if self.outcome == Outcome.explicit_miss:
            raise TemplaarError(
                ErrorKind.explicit_miss,
                f"Template '{self.requested}' was not found in the current, parent or global directories.",
            )
        if self.outcome == Outcome.ambiguous:
            raise TemplaarError(
                ErrorKind.ambiguous,
                f"Ambiguous template: found {', '.join(self.candidates)} in {self.directory}. "
                "Use -t to select the template.",
                path=self.directory,
                names=self.candidates,
            )
        raise TemplaarError(
            ErrorKind.not_found,
            "No template found in the current or parent directories.\n"
            "For global templates, specify the template name using the -t option.",
        )


def list_entries(directory: Path) -> list[tuple[str, TemplateKind]]:
    with os.scandir(directory) as entries:
        return [
            (entry.name, TemplateKind.directory if entry.is_dir() else TemplateKind.file)
            for entry in entries
        ]


def iter_ancestors(start: Path) -> Iterator[Path]:
    current = start.resolve()
    yield current
    yield from current.parents


def templates_in(directory: Path, scope: Scope, lister: DirectoryLister = list_entries) -> list[Template]:
    try:
        entries = list(lister(directory))
    except FileNotFoundError:
        return []
    templates = []
    for entry, kind in entries:
        name = from_stored_name(entry)
        if name is None:
            continue
        templates.append(Template(name=name, kind=kind, path=directory / entry, scope=scope))
    templates.sort(key=lambda template: template.name)
    return templates


def readable_templates(
    directory: Path,
    scope: Scope,
    lister: DirectoryLister,
    skip_unreadable: bool = False,
) -> list[Template]:
    try:
        return templates_in(directory, scope, lister)
    except PermissionError as error:
        if skip_unreadable:
            logger.warning("Skipping unreadable directory %s", directory)
            return []
        raise TemplaarError(ErrorKind.io_failure, f"Cannot read template directory {directory}: {error}", path=directory) from error
    except OSError as error:
        raise TemplaarError(ErrorKind.io_failure, f"Cannot read template directory {directory}: {error}", path=directory) from error


def _pick(
    templates: list[Template],
    directory: Path,
    requested: str | None,
) -> Resolution | None:
    if requested is not None:
        for template in templates:
            if template.name == requested:
                return Resolution(outcome=Outcome.found, template=template, requested=requested)
        return None

    if len(templates) == 1:
        return Resolution(outcome=Outcome.found, template=templates[0])
    if len(templates) > 1:
        return Resolution(
            outcome=Outcome.ambiguous,
            candidates=tuple(template.name for template in templates),
            directory=directory,
        )
    return None


def resolve(
    start: Path,
    requested_name: str | None = None,
    global_dir: Path | None = None,
    lister: DirectoryLister = list_entries,
) -> Resolution:
    """Walk up from ``start``; the first level with a conclusive answer wins, then the global directory."""
    for directory in iter_ancestors(start):
        logger.debug("Searching %s for %s", directory, requested_name or "any template")
        templates = readable_templates(directory, Scope.local, lister, skip_unreadable=True)
        picked = _pick(templates, directory, requested_name)
        if picked is not None:
            return picked

    if global_dir is not None:
        logger.debug("Searching global directory %s", global_dir)
        picked = _pick(readable_templates(global_dir, Scope.global_, lister), global_dir, requested_name)
        if picked is not None:
            return picked

    if requested_name is not None:
        return Resolution(outcome=Outcome.explicit_miss, requested=requested_name)
    return Resolution(outcome=Outcome.not_found)
