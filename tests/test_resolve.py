from pathlib import Path

import pytest

from templaar.errors import ErrorKind, TemplaarError
from templaar.naming import Scope, TemplateKind
from templaar.resolve import Outcome, iter_ancestors, resolve


def _write(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_unnamed_template_found_from_nested_and_sibling_dirs(tmp_path: Path):
    stored = _write(tmp_path / "a" / ".note.aar", "note")
    (tmp_path / "a" / "b" / "c").mkdir(parents=True)
    (tmp_path / "a" / "x" / "y").mkdir(parents=True)

    for start in (tmp_path / "a" / "b" / "c", tmp_path / "a" / "x" / "y"):
        resolution = resolve(start, global_dir=tmp_path / "global")
        assert resolution.outcome == Outcome.found
        assert resolution.template.path == stored
        assert resolution.template.scope == Scope.local
        assert resolution.template.kind == TemplateKind.file


def test_nearer_template_shadows_farther_one(tmp_path: Path):
    _write(tmp_path / "a" / ".note.aar", "far")
    near = _write(tmp_path / "a" / "b" / ".note.aar", "near")
    (tmp_path / "a" / "b" / "c").mkdir()

    resolution = resolve(tmp_path / "a" / "b" / "c", "note", global_dir=tmp_path / "global")

    assert resolution.template.path == near


def test_unnamed_search_stops_at_first_level_with_a_template(tmp_path: Path):
    _write(tmp_path / "a" / ".note.aar")
    todo = _write(tmp_path / "a" / "b" / ".todo.aar")

    resolution = resolve(tmp_path / "a" / "b", global_dir=tmp_path / "global")

    assert resolution.template.path == todo


def test_missing_explicit_name_is_explicit_miss(tmp_path: Path):
    _write(tmp_path / "a" / ".note.aar")
    (tmp_path / "a" / "b" / "c").mkdir(parents=True)

    resolution = resolve(tmp_path / "a" / "b" / "c", "missing", global_dir=tmp_path / "global")

    assert resolution.outcome == Outcome.explicit_miss
    with pytest.raises(TemplaarError) as info:
        resolution.unwrap()
    assert info.value.kind == ErrorKind.explicit_miss


def test_two_templates_in_one_directory_are_ambiguous(tmp_path: Path):
    _write(tmp_path / ".todo.aar")
    _write(tmp_path / ".note.aar")

    resolution = resolve(tmp_path, global_dir=tmp_path / "global")

    assert resolution.outcome == Outcome.ambiguous
    assert resolution.candidates == ("note", "todo")
    assert resolution.directory == tmp_path.resolve()
    with pytest.raises(TemplaarError) as info:
        resolution.unwrap()
    assert info.value.kind == ErrorKind.ambiguous
    assert info.value.names == ("note", "todo")


def test_named_request_is_not_ambiguous(tmp_path: Path):
    _write(tmp_path / ".todo.aar")
    note = _write(tmp_path / ".note.aar")

    assert resolve(tmp_path, "note", global_dir=tmp_path / "global").template.path == note


def test_global_directory_is_the_fallback(tmp_path: Path):
    work = tmp_path / "work"
    work.mkdir()
    stored = _write(tmp_path / "global" / ".note.aar")

    named = resolve(work, "note", global_dir=tmp_path / "global")
    unnamed = resolve(work, global_dir=tmp_path / "global")

    assert named.template.path == stored
    assert named.template.scope == Scope.global_
    assert unnamed.template.path == stored


def test_local_template_beats_global(tmp_path: Path):
    work = tmp_path / "work"
    local = _write(work / ".note.aar", "local")
    _write(tmp_path / "global" / ".note.aar", "global")

    resolution = resolve(work, "note", global_dir=tmp_path / "global")

    assert resolution.template.path == local
    assert resolution.template.scope == Scope.local


def test_unnamed_global_outcomes(tmp_path: Path):
    work = tmp_path / "work"
    work.mkdir()
    global_dir = tmp_path / "global"

    assert resolve(work, global_dir=global_dir).outcome == Outcome.not_found

    _write(global_dir / ".note.aar")
    _write(global_dir / ".todo.aar")
    resolution = resolve(work, global_dir=global_dir)
    assert resolution.outcome == Outcome.ambiguous
    assert resolution.directory == global_dir


def test_not_found_error_hints_at_template_option(tmp_path: Path):
    resolution = resolve(tmp_path, global_dir=tmp_path / "global")

    with pytest.raises(TemplaarError) as info:
        resolution.unwrap()
    assert info.value.kind == ErrorKind.not_found
    assert "-t" in str(info.value)


def test_directory_template_kind(tmp_path: Path):
    (tmp_path / ".project.aar").mkdir()

    resolution = resolve(tmp_path, global_dir=tmp_path / "global")

    assert resolution.template.kind == TemplateKind.directory


def test_resolve_with_injected_lister():
    listing = {
        Path("/proj"): [(".note.aar", TemplateKind.file), ("README.md", TemplateKind.file)],
        Path("/proj/sub"): [("draft.txt", TemplateKind.file)],
        Path("/global"): [(".note.aar", TemplateKind.file), (".todo.aar", TemplateKind.directory)],
    }
    visited = []

    def lister(directory: Path):
        visited.append(directory)
        return listing.get(directory, [])

    resolution = resolve(Path("/proj/sub"), global_dir=Path("/global"), lister=lister)

    assert resolution.template.path == Path("/proj/.note.aar")
    assert visited == [Path("/proj/sub"), Path("/proj")]

    todo = resolve(Path("/proj/sub"), "todo", global_dir=Path("/global"), lister=lister)
    assert todo.template.scope == Scope.global_
    assert todo.template.path == Path("/global/.todo.aar")
    assert todo.template.kind == TemplateKind.directory


def test_iter_ancestors_ends_at_root(tmp_path: Path):
    start = tmp_path / "a" / "b"
    start.mkdir(parents=True)

    chain = list(iter_ancestors(start))

    assert chain[0] == start.resolve()
    assert chain[-1] == Path(chain[-1].anchor)
    assert len(set(chain)) == len(chain)


def test_unreadable_ancestor_is_skipped_but_global_is_not():
    def lister(directory: Path):
        if directory == Path("/proj"):
            raise PermissionError(13, "Permission denied", str(directory))
        if directory == Path("/global"):
            raise PermissionError(13, "Permission denied", str(directory))
        if directory == Path("/"):
            return [(".note.aar", TemplateKind.file)]
        return []

    local = resolve(Path("/proj/sub"), "note", lister=lister)
    assert local.template.path == Path("/.note.aar")

    with pytest.raises(TemplaarError) as info:
        resolve(Path("/proj/sub"), "todo", global_dir=Path("/global"), lister=lister)
    assert info.value.kind == ErrorKind.io_failure
    assert info.value.path == Path("/global")


def test_other_listing_errors_are_io_failures():
    def lister(directory: Path):
        raise OSError(5, "Input/output error", str(directory))

    with pytest.raises(TemplaarError) as info:
        resolve(Path("/proj"), lister=lister)

    assert info.value.kind == ErrorKind.io_failure
