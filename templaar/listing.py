from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .naming import Scope, TemplateKind
from .resolve import DirectoryLister, iter_ancestors, list_entries, readable_templates


class ListScope(str, Enum):
    local = "local"
    global_ = "global"
    both = "both"


@dataclass(frozen=True)
class TemplateEntry:
    name: str
    scope: Scope
    kind: TemplateKind
    path: Path


def scope_from_flags(only_local: bool, only_global: bool) -> ListScope:
    if only_local and not only_global:
        return ListScope.local
    if only_global and not only_local:
        return ListScope.global_
    return ListScope.both


def _local_entries(start: Path, lister: DirectoryLister) -> list[TemplateEntry]:
    entries: list[TemplateEntry] = []
    seen: set[str] = set()
    for directory in iter_ancestors(start):
        for template in readable_templates(directory, Scope.local, lister, skip_unreadable=True):
            if template.name in seen:
                continue
            seen.add(template.name)
            entries.append(TemplateEntry(template.name, template.scope, template.kind, template.path))
    return entries


def _global_entries(global_dir: Path, lister: DirectoryLister) -> list[TemplateEntry]:
    return [
        TemplateEntry(template.name, template.scope, template.kind, template.path)
        for template in readable_templates(global_dir, Scope.global_, lister)
    ]


def list_templates(
    start: Path,
    scope: ListScope = ListScope.both,
    global_dir: Path | None = None,
    lister: DirectoryLister = list_entries,
) -> list[TemplateEntry]:
    """Templates visible from ``start``: local ones nearest first, then global ones by name."""
    entries: list[TemplateEntry] = []
    if scope in (ListScope.local, ListScope.both):
        entries.extend(_local_entries(start, lister))
    if scope in (ListScope.global_, ListScope.both) and global_dir is not None:
        entries.extend(_global_entries(global_dir, lister))
    return entries
