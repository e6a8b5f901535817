import json
import os

import pytest

from xcstrings_translator.catalog import Localization
from xcstrings_translator.exceptions import CatalogParseError
from xcstrings_translator.xcstrings_parser import (
    catalog_to_dict,
    dump_catalog,
    load_catalog,
    parse_catalog,
    save_catalog
)

SAMPLE_DOCUMENT = {
    "sourceLanguage": "en",
    "version": "1.0",
    "strings": {
        "%lld items": {
            "comment": "Item counter",
            "extractionState": "manual",
            "localizations": {
                "en": {"stringUnit": {"state": "translated", "value": "%lld items"}},
                "de": {"stringUnit": {"state": "translated", "value": "%lld Elemente"}}
            }
        },
        "Hello": {
            "localizations": {
                "en": {"stringUnit": {"state": "translated", "value": "Hello"}}
            }
        },
        "Plural": {
            "shouldTranslate": False,
            "localizations": {
                "en": {"variations": {"plural": {"one": {"stringUnit": {"state": "new", "value": "one"}}}}}
            }
        },
        "Empty": {}
    }
}


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_parse_catalog_reads_entries_in_order():
    catalog = parse_catalog(SAMPLE_DOCUMENT)

    assert catalog.source_language == "en"
    assert catalog.version == "1.0"
    assert list(catalog.entries) == ["%lld items", "Hello", "Plural", "Empty"]

    entry = catalog.entries["%lld items"]
    assert entry.comment == "Item counter"
    assert entry.extraction_state == "manual"
    assert entry.localizations["de"] == Localization(state="translated", value="%lld Elemente")


def test_parse_catalog_keeps_unknown_members():
    catalog = parse_catalog(SAMPLE_DOCUMENT)

    plural = catalog.entries["Plural"]
    assert plural.extra == {"shouldTranslate": False}
    assert plural.localizations["en"].value is None
    assert "variations" in plural.localizations["en"].extra


def test_entry_without_localizations():
    catalog = parse_catalog(SAMPLE_DOCUMENT)

    assert catalog.entries["Empty"].localizations == {}
    assert catalog.entries["Empty"].value_for("en") == ""


@pytest.mark.parametrize("document, location", [
    ({"version": "1.0", "strings": {}}, "<root>"),
    ({"sourceLanguage": "en", "version": "1.0"}, "<root>"),
    ({"sourceLanguage": "", "version": "1.0", "strings": {}}, "sourceLanguage"),
    ({"sourceLanguage": "en", "version": "1.0", "strings": []}, "strings"),
    ({"sourceLanguage": "en", "version": "1.0", "strings": {"k": {"comment": 5}}}, "strings/k/comment"),
    ({"sourceLanguage": "en", "version": "1.0",
      "strings": {"k": {"localizations": {"de": {"stringUnit": {"state": "translated"}}}}}},
     "strings/k/localizations/de/stringUnit"),
])
def test_parse_catalog_rejects_invalid_shape(document, location):
    with pytest.raises(CatalogParseError) as exc_info:
        parse_catalog(document)

    assert f"at '{location}'" in str(exc_info.value)


def test_parse_catalog_rejects_non_object():
    with pytest.raises(CatalogParseError):
        parse_catalog(["not", "a", "catalog"])


def test_parse_error_names_the_file():
    with pytest.raises(CatalogParseError) as exc_info:
        parse_catalog({}, "Localizable.xcstrings")

    assert exc_info.value.path == "Localizable.xcstrings"
    assert str(exc_info.value).startswith("Localizable.xcstrings: ")


def test_load_catalog_reads_file(tmp_path):
    path = write_json(tmp_path / "Localizable.xcstrings", SAMPLE_DOCUMENT)

    catalog = load_catalog(path)

    assert catalog.entries["Hello"].value_for("en") == "Hello"


def test_load_catalog_reports_json_position(tmp_path):
    path = tmp_path / "broken.xcstrings"
    path.write_text('{\n  "sourceLanguage": "en",\n  "strings": {\n}', encoding="utf-8")

    with pytest.raises(CatalogParseError) as exc_info:
        load_catalog(str(path))

    assert "Invalid JSON at line" in str(exc_info.value)
    assert exc_info.value.path == str(path)


def test_load_catalog_missing_file(tmp_path):
    with pytest.raises(CatalogParseError) as exc_info:
        load_catalog(str(tmp_path / "missing.xcstrings"))

    assert "Could not read file" in str(exc_info.value)


def test_load_catalog_rejects_invalid_utf8(tmp_path):
    path = tmp_path / "latin1.xcstrings"
    path.write_bytes(b'{"sourceLanguage": "\xff"}')

    with pytest.raises(CatalogParseError):
        load_catalog(str(path))


def test_catalog_to_dict_round_trips_document():
    assert catalog_to_dict(parse_catalog(SAMPLE_DOCUMENT)) == SAMPLE_DOCUMENT


def test_dump_catalog_uses_xcode_layout():
    document = {
        "version": "1.0",
        "strings": {"b": {}, "a": {"localizations": {"de": {"stringUnit": {"value": "Ä", "state": "translated"}}}}},
        "sourceLanguage": "en"
    }

    text = dump_catalog(parse_catalog(document))

    assert text.endswith("}\n")
    assert '"sourceLanguage" : "en"' in text
    assert '"value" : "Ä"' in text
    assert text.index('"a"') < text.index('"b"')
    assert text.index('"sourceLanguage"') < text.index('"strings"') < text.index('"version"')


def test_dump_catalog_is_deterministic():
    catalog = parse_catalog(SAMPLE_DOCUMENT)

    assert dump_catalog(catalog) == dump_catalog(parse_catalog(json.loads(dump_catalog(catalog))))


def test_added_localization_defaults_state_to_new():
    catalog = parse_catalog(SAMPLE_DOCUMENT)
    entry = catalog.entries["Hello"].with_localization("fr", Localization(value="Bonjour"))

    data = catalog_to_dict(catalog.with_entries({"Hello": entry}))

    assert data["strings"]["Hello"]["localizations"]["fr"] == {"stringUnit": {"state": "new", "value": "Bonjour"}}


def test_save_catalog_replaces_file(tmp_path):
    path = write_json(tmp_path / "Localizable.xcstrings", {"stale": True})
    catalog = parse_catalog(SAMPLE_DOCUMENT)

    save_catalog(catalog, path)

    assert load_catalog(path) == catalog
    assert os.listdir(tmp_path) == ["Localizable.xcstrings"]


def test_save_catalog_creates_missing_directory(tmp_path):
    path = tmp_path / "out" / "Localizable.xcstrings"

    save_catalog(parse_catalog(SAMPLE_DOCUMENT), str(path))

    assert path.exists()
