import pytest

from xcstrings_translator.catalog import Catalog, Entry, Localization, is_translatable_comment, should_translate


@pytest.mark.parametrize("comment", [
    "Do not translate",
    "Brand name, DON'T TRANSLATE",
    "no translate: product identifier",
    "Keep as is (do not translate)",
])
def test_do_not_translate_markers(comment):
    assert is_translatable_comment(comment) is False


@pytest.mark.parametrize("comment", [None, "", "Title of the settings screen", "Translate carefully"])
def test_ordinary_comments_are_translatable(comment):
    assert is_translatable_comment(comment) is True


def test_should_translate_uses_entry_comment():
    assert should_translate(Entry(comment="Don't translate")) is False
    assert should_translate(Entry(comment="Greeting")) is True
    assert should_translate(Entry()) is True


def test_value_for_missing_language_is_empty():
    entry = Entry(localizations={"en": Localization(state="translated", value="Hello")})

    assert entry.value_for("en") == "Hello"
    assert entry.value_for("de") == ""


def test_value_for_localization_without_string_unit_is_empty():
    entry = Entry(localizations={"en": Localization(extra={"variations": {}})})

    assert entry.value_for("en") == ""


def test_with_localization_returns_copy():
    original = Entry(comment="Greeting", localizations={"en": Localization(state="translated", value="Hello")})

    updated = original.with_localization("de", Localization(state="translated", value="Hallo"))

    assert "de" not in original.localizations
    assert updated.value_for("de") == "Hallo"
    assert updated.value_for("en") == "Hello"
    assert updated.comment == "Greeting"


def test_catalog_with_entries_leaves_original_untouched():
    catalog = Catalog(source_language="en", entries={"a": Entry()})

    updated = catalog.with_entries({"a": Entry(), "b": Entry()})

    assert list(catalog.entries) == ["a"]
    assert list(updated.entries) == ["a", "b"]
    assert updated.source_language == "en"

