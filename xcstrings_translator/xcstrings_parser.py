import json
import os
import tempfile
from typing import Any, Dict, Optional

import jsonschema

from xcstrings_translator.catalog import Catalog, Entry, Localization
from xcstrings_translator.exceptions import CatalogParseError

# Shape of an .xcstrings document. Members not listed here are allowed and
# carried through unchanged.
XCSTRINGS_SCHEMA = {
    "type": "object",
    "required": ["sourceLanguage", "strings", "version"],
    "properties": {
        "sourceLanguage": {"type": "string", "minLength": 1},
        "version": {"type": "string"},
        "strings": {
            "type": "object",
            "additionalProperties": {"$ref": "#/definitions/entry"}
        }
    },
    "definitions": {
        "entry": {
            "type": "object",
            "properties": {
                "comment": {"type": "string"},
                "extractionState": {"type": "string"},
                "localizations": {
                    "type": "object",
                    "additionalProperties": {"$ref": "#/definitions/localization"}
                }
            }
        },
        "localization": {
            "type": "object",
            "properties": {
                "stringUnit": {
                    "type": "object",
                    "required": ["state", "value"],
                    "properties": {
                        "state": {"type": "string"},
                        "value": {"type": "string"}
                    }
                }
            }
        }
    }
}

_ENTRY_FIELDS = ("comment", "extractionState", "localizations")
_DOCUMENT_FIELDS = ("sourceLanguage", "strings", "version")


def _parse_localization(data: Dict[str, Any]) -> Localization:
    extra = {k: v for k, v in data.items() if k != "stringUnit"}
    string_unit = data.get("stringUnit")
    if string_unit is None:
        return Localization(extra=extra)
    return Localization(state=string_unit["state"], value=string_unit["value"], extra=extra)


def _parse_entry(data: Dict[str, Any]) -> Entry:
    localizations = {
        language: _parse_localization(localization)
        for language, localization in data.get("localizations", {}).items()
    }
    return Entry(
        comment=data.get("comment"),
        extraction_state=data.get("extractionState"),
        localizations=localizations,
        extra={k: v for k, v in data.items() if k not in _ENTRY_FIELDS}
    )


def parse_catalog(data: Any, source_name: Optional[str] = None) -> Catalog:
    """
    Build a Catalog from a decoded .xcstrings document.

    Args:
        data: The decoded JSON document.
        source_name: File name used in error messages.

    Returns:
        Catalog: The parsed catalog, entries in document order.

    Raises:
        CatalogParseError: If the document does not have the .xcstrings shape.
    """
    try:
        jsonschema.validate(instance=data, schema=XCSTRINGS_SCHEMA)
    except jsonschema.ValidationError as schema_exc:
        location = "/".join(str(part) for part in schema_exc.absolute_path) or "<root>"
        raise CatalogParseError(f"Invalid .xcstrings format at '{location}': {schema_exc.message}",
                                source_name) from schema_exc

    entries = {key: _parse_entry(entry) for key, entry in data["strings"].items()}
    return Catalog(
        source_language=data["sourceLanguage"],
        entries=entries,
        version=data["version"],
        extra={k: v for k, v in data.items() if k not in _DOCUMENT_FIELDS}
    )


def load_catalog(file_path: str) -> Catalog:
    """
    Read and parse an .xcstrings file.

    Raises:
        CatalogParseError: If the file cannot be read, is not JSON, or is not
            a valid string catalog.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as json_exc:
        raise CatalogParseError(
            f"Invalid JSON at line {json_exc.lineno}, column {json_exc.colno}: {json_exc.msg}", file_path
        ) from json_exc
    except UnicodeDecodeError as decode_exc:
        raise CatalogParseError(f"File is not valid UTF-8: {decode_exc}", file_path) from decode_exc
    except OSError as os_exc:
        raise CatalogParseError(f"Could not read file: {os_exc}", file_path) from os_exc

    return parse_catalog(data, file_path)


def _localization_to_dict(localization: Localization) -> Dict[str, Any]:
    data = dict(localization.extra)
    if localization.value is not None:
        data["stringUnit"] = {"state": localization.state or "new", "value": localization.value}
    return data


def _entry_to_dict(entry: Entry) -> Dict[str, Any]:
    data = dict(entry.extra)
    if entry.comment is not None:
        data["comment"] = entry.comment
    if entry.extraction_state is not None:
        data["extractionState"] = entry.extraction_state
    if entry.localizations:
        data["localizations"] = {
            language: _localization_to_dict(localization)
            for language, localization in entry.localizations.items()
        }
    return data


def catalog_to_dict(catalog: Catalog) -> Dict[str, Any]:
    """Convert a Catalog back into the .xcstrings JSON structure."""
    data = dict(catalog.extra)
    data["sourceLanguage"] = catalog.source_language
    data["version"] = catalog.version
    data["strings"] = {key: _entry_to_dict(entry) for key, entry in catalog.entries.items()}
    return data


def dump_catalog(catalog: Catalog) -> str:
    """Serialize a Catalog with sorted keys, in the layout Xcode writes."""
    return json.dumps(
        catalog_to_dict(catalog),
        ensure_ascii=False,
        indent=2,
        separators=(',', ' : '),
        sort_keys=True
    ) + "\n"


def save_catalog(catalog: Catalog, file_path: str) -> None:
    """
    Write a Catalog to ``file_path``.

    The content goes to a temporary file next to the destination first and is
    then moved into place, so a failed write never leaves a truncated catalog.
    """
    content = dump_catalog(catalog)
    directory = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(directory, exist_ok=True)

    temp_file_path = None
    try:
        with tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.xcstrings', dir=directory,
                                         encoding='utf-8') as temp_f:
            temp_file_path = temp_f.name
            temp_f.write(content)
        os.replace(temp_file_path, file_path)
        temp_file_path = None
    finally:
        if temp_file_path and os.path.exists(temp_file_path):
            os.remove(temp_file_path)
