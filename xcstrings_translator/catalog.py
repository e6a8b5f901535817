"""In-memory model of a string catalog (.xcstrings)."""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

TRANSLATED_STATE = "translated"

# Lower-case phrases that, found anywhere in a comment, exclude the entry from translation.
DO_NOT_TRANSLATE_MARKERS = ("do not translate", "don't translate", "no translate")


@dataclass(frozen=True)
class Localization:
    """A language's translation state and text for one entry.

    ``value`` is None when the localization has no string unit (for example
    plural variations only). Members we do not model are kept in ``extra``.
    """
    state: Optional[str] = None
    value: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Entry:
    """One translatable key with its per-language values and metadata."""
    comment: Optional[str] = None
    extraction_state: Optional[str] = None
    localizations: Dict[str, Localization] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def value_for(self, language: str) -> str:
        """Return the text stored for ``language``, or an empty string."""
        localization = self.localizations.get(language)
        if localization is None or localization.value is None:
            return ""
        return localization.value

    def with_localization(self, language: str, localization: Localization) -> "Entry":
        """Return a copy of this entry with ``language`` set to ``localization``."""
        localizations = dict(self.localizations)
        localizations[language] = localization
        return replace(self, localizations=localizations)


@dataclass(frozen=True)
class Catalog:
    """A full catalog: source language, format version and entries by key."""
    source_language: str
    entries: Dict[str, Entry]
    version: str = "1.0"
    extra: Dict[str, Any] = field(default_factory=dict)

    def with_entries(self, entries: Dict[str, Entry]) -> "Catalog":
        return replace(self, entries=dict(entries))


def is_translatable_comment(comment: Optional[str]) -> bool:
    """Return False if the comment contains a "do not translate" marker."""
    if not comment:
        return True
    lowered = comment.lower()
    return not any(marker in lowered for marker in DO_NOT_TRANSLATE_MARKERS)


def should_translate(entry: Entry) -> bool:
    """Decide from the entry's comment alone whether it may be translated."""
    return is_translatable_comment(entry.comment)
