"""Pre-run analysis of a catalog: counts shown before translating, and a cost estimate."""
from dataclasses import dataclass
from typing import Iterable, List, Optional

from xcstrings_translator.catalog import Catalog, should_translate
from xcstrings_translator.skip_policy import SkipOptions, should_skip


@dataclass(frozen=True)
class FileAnalysis:
    total_strings: int
    available_languages: List[str]
    already_translated: int
    should_not_translate: int
    source_language: str

    @property
    def needs_translation(self) -> int:
        """Estimated (string, language) pairs still needing translation."""
        per_language = self.total_strings - self.should_not_translate
        target_languages = len(self.available_languages) - 1
        return max(0, per_language * target_languages - self.already_translated)


def analyze_catalog(catalog: Catalog) -> FileAnalysis:
    """
    Count strings, languages, existing translations and "do not translate" entries.

    A localization counts as already translated when its value is non-empty
    and differs from the source value, the same test the skip policy uses.
    """
    source_language = catalog.source_language
    languages = set()
    already_translated = 0
    should_not_translate = 0

    for entry in catalog.entries.values():
        if not should_translate(entry):
            should_not_translate += 1

        source_localization = entry.localizations.get(source_language)
        if source_localization is None or source_localization.value is None:
            continue
        source_value = source_localization.value

        for language, localization in entry.localizations.items():
            languages.add(language)
            if language == source_language:
                continue
            if localization.value and localization.value != source_value:
                already_translated += 1

    return FileAnalysis(
        total_strings=len(catalog.entries),
        available_languages=sorted(languages),
        already_translated=already_translated,
        should_not_translate=should_not_translate,
        source_language=source_language
    )


def estimate_characters(catalog: Catalog, target_languages: Iterable[str],
                        skip_options: Optional[SkipOptions] = None) -> int:
    """Total source characters that a run would send to the backend."""
    skip_options = skip_options or SkipOptions()
    targets = [lang for lang in dict.fromkeys(target_languages) if lang != catalog.source_language]
    characters = 0
    for entry in catalog.entries.values():
        source_value = entry.value_for(catalog.source_language)
        for language in targets:
            if not should_skip(entry, catalog.source_language, language, skip_options).skip:
                characters += len(source_value)
    return characters


def estimate_cost(characters: int, cost_per_1000_chars: float) -> float:
    return characters / 1000 * cost_per_1000_chars
