import pytest

from templaar.errors import ErrorKind, TemplaarError
from templaar.naming import from_stored_name, to_stored_name, validate_name


def test_stored_name_is_hidden_with_suffix():
    assert to_stored_name("note") == ".note.aar"
    assert from_stored_name(to_stored_name("my.note")) == "my.note"


@pytest.mark.parametrize("entry", [".", "..", ".aar", "..aar", "...aar", "....aar", "note.aar", ".note", ".note.aar.bak", "README.md"])
def test_from_stored_name_rejects_other_entries(entry: str):
    assert from_stored_name(entry) is None


@pytest.mark.parametrize("name", ["", "   ", ".", "..", "a/b"])
def test_validate_name_rejects_invalid_names(name: str):
    with pytest.raises(TemplaarError) as info:
        validate_name(name)
    assert info.value.kind == ErrorKind.invalid_input


def test_validate_name_strips_whitespace():
    assert validate_name("  note ") == "note"
