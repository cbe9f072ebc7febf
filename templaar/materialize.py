from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from .errors import ErrorKind, TemplaarError
from .naming import Template, TemplateKind, to_stored_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Materialized:
    root: Path
    kind: TemplateKind
    files: tuple[Path, ...]


def _exists_error(path: Path) -> TemplaarError:
    return TemplaarError(
        ErrorKind.target_exists,
        f"Cannot create {path} from template, path already exists.",
        path=path,
    )


def _remove_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as error:
        raise TemplaarError(
            ErrorKind.rollback_failed,
            f"Could not remove partially written file {path}: {error}",
            path=path,
        ) from error


def _remove_tree(path: Path) -> None:
    logger.info("Rolling back %s", path)
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as error:
        raise TemplaarError(
            ErrorKind.rollback_failed,
            f"Could not remove partially written directory {path}: {error}",
            path=path,
        ) from error


def _remove_parents(created: Sequence[Path]) -> None:
    for directory in reversed(created):
        try:
            directory.rmdir()
        except OSError as error:
            raise TemplaarError(
                ErrorKind.rollback_failed,
                f"Could not remove created directory {directory}: {error}",
                path=directory,
            ) from error


def _prepare_parent(target: Path, make_parents: bool) -> list[Path]:
    parent = target.parent
    if parent.is_dir():
        return []
    if parent.exists():
        raise TemplaarError(ErrorKind.invalid_input, f"Parent path is not a directory: {parent}", path=parent)
    if not make_parents:
        raise TemplaarError(
            ErrorKind.invalid_input,
            f"Parent directory does not exist: {parent}. Use --parents to create it.",
            path=parent,
        )

    missing = []
    current = parent
    while not current.exists():
        missing.append(current)
        current = current.parent

    created: list[Path] = []
    for directory in reversed(missing):
        try:
            directory.mkdir()
        except OSError as error:
            _remove_parents(created)
            raise TemplaarError(ErrorKind.io_failure, f"Could not create directory {directory}: {error}", path=directory) from error
        created.append(directory)
    return created


def copy_file(source: Path, destination: Path) -> Path:
    # Exclusive create: an existing destination is never touched.
    try:
        reader = source.open("rb")
    except OSError as error:
        raise TemplaarError(ErrorKind.template_unreadable, f"Cannot read template {source}: {error}", path=source) from error

    with reader:
        try:
            writer = destination.open("xb")
        except FileExistsError as error:
            raise _exists_error(destination) from error
        except OSError as error:
            raise TemplaarError(ErrorKind.io_failure, f"Cannot create {destination}: {error}", path=destination) from error

        try:
            with writer:
                shutil.copyfileobj(reader, writer)
            shutil.copymode(source, destination)
        except OSError as error:
            _remove_file(destination)
            raise TemplaarError(ErrorKind.io_failure, f"Failed to copy {source} to {destination}: {error}", path=destination) from error

    return destination


def _claim_directory(target: Path) -> None:
    try:
        target.mkdir()
    except FileExistsError as error:
        raise _exists_error(target) from error
    except OSError as error:
        raise TemplaarError(ErrorKind.io_failure, f"Cannot create directory {target}: {error}", path=target) from error


def _sorted_entries(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir(), key=lambda entry: entry.name)
    except OSError as error:
        raise TemplaarError(ErrorKind.template_unreadable, f"Cannot read template directory {directory}: {error}", path=directory) from error


def _entry_type(entry: Path) -> tuple[bool, bool, bool]:
    try:
        return entry.is_symlink(), entry.is_dir(), entry.is_file()
    except OSError as error:
        raise TemplaarError(ErrorKind.template_unreadable, f"Cannot inspect template entry {entry}: {error}", path=entry) from error


def _copy_entries(source: Path, destination: Path, files: list[Path]) -> None:
    for entry in _sorted_entries(source):
        target = destination / entry.name
        is_link, is_dir, is_file = _entry_type(entry)
        if is_link and is_dir:
            raise TemplaarError(ErrorKind.invalid_template, f"Template contains a symlinked directory: {entry}", path=entry)
        if is_dir:
            _claim_directory(target)
            _copy_entries(entry, target, files)
        elif is_file:
            files.append(copy_file(entry, target))
        else:
            raise TemplaarError(ErrorKind.invalid_template, f"Template contains an unsupported entry: {entry}", path=entry)


def _check_outside(source: Path, target: Path) -> None:
    source_real = source.resolve()
    target_real = Path(os.path.realpath(target))
    if target_real == source_real or source_real in target_real.parents:
        raise TemplaarError(
            ErrorKind.invalid_input,
            f"Cannot create {target} inside the directory it is copied from: {source}",
            path=target,
        )


def copy_tree(source: Path, target: Path) -> tuple[Path, ...]:
    """Recreate the directory ``source`` at ``target``; all or nothing."""
    _check_outside(source, target)
    _sorted_entries(source)
    _claim_directory(target)
    logger.debug("Claimed %s", target)

    files: list[Path] = []
    try:
        _copy_entries(source, target, files)
    except Exception:
        _remove_tree(target)
        raise
    return tuple(files)


def _with_parents(target: Path, make_parents: bool, build: Callable[[], tuple[Path, ...]]) -> tuple[Path, ...]:
    created = _prepare_parent(target, make_parents)
    try:
        return build()
    except Exception as error:
        if not (isinstance(error, TemplaarError) and error.fatal):
            _remove_parents(created)
        raise


def materialize(template: Template, target: Path, make_parents: bool = False) -> Materialized:
    """Create ``target`` from ``template``; on error nothing new is left behind."""
    target = Path(os.path.abspath(target))
    logger.debug("Materializing %s template %s at %s", template.kind.value, template.path, target)

    if template.kind == TemplateKind.directory:
        files = _with_parents(target, make_parents, lambda: copy_tree(template.path, target))
    else:
        files = _with_parents(target, make_parents, lambda: (copy_file(template.path, target),))

    return Materialized(root=target, kind=template.kind, files=files)


def _unique_sources(sources: Sequence[Path]) -> list[Path]:
    seen: dict[str, Path] = {}
    for source in sources:
        if not source.is_file():
            raise TemplaarError(ErrorKind.invalid_input, f"Not a file: {source}", path=source)
        if source.name in seen:
            raise TemplaarError(
                ErrorKind.invalid_input,
                f"Duplicate file name {source.name}: {seen[source.name]} and {source}",
                path=source,
            )
        seen[source.name] = source
    return list(seen.values())


def _collect_files(sources: list[Path], target: Path) -> tuple[Path, ...]:
    _claim_directory(target)
    files: list[Path] = []
    try:
        for source in sources:
            files.append(copy_file(source, target / source.name))
    except Exception:
        _remove_tree(target)
        raise
    return tuple(files)


def _touch(target: Path) -> tuple[Path, ...]:
    try:
        target.open("xb").close()
    except FileExistsError as error:
        raise _exists_error(target) from error
    except OSError as error:
        raise TemplaarError(ErrorKind.io_failure, f"Cannot create {target}: {error}", path=target) from error
    return (target,)


def store_template(name: str, directory: Path, sources: Sequence[Path] = ()) -> Materialized:
    stored = directory / to_stored_name(name)
    if os.path.lexists(stored):
        raise TemplaarError(
            ErrorKind.template_exists,
            f"Template {stored} already exists. Please edit it manually.",
            path=stored,
        )

    sources = [Path(source) for source in sources]
    try:
        if not sources:
            files = _touch(stored)
        elif len(sources) == 1 and sources[0].is_dir():
            files = copy_tree(sources[0], stored)
        elif len(sources) == 1:
            if not sources[0].exists():
                raise TemplaarError(ErrorKind.invalid_input, f"Not a file: {sources[0]}", path=sources[0])
            files = (copy_file(sources[0], stored),)
        else:
            files = _collect_files(_unique_sources(sources), stored)
    except TemplaarError as error:
        if error.kind == ErrorKind.target_exists:
            raise TemplaarError(ErrorKind.template_exists, f"Template {stored} already exists. Please edit it manually.", path=stored) from error
        if error.kind == ErrorKind.template_unreadable:
            raise TemplaarError(ErrorKind.invalid_input, f"Cannot read source {error.path}: {error.__cause__}", path=error.path) from error
        raise

    kind = TemplateKind.directory if stored.is_dir() else TemplateKind.file
    logger.info("Created %s template %s", kind.value, stored)
    return Materialized(root=stored, kind=kind, files=files)
