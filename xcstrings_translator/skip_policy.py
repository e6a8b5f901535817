"""
Decides whether a (entry, target language) pair should be sent to a backend.

``should_skip`` is a pure function of its arguments; nothing here keeps state
between calls.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from xcstrings_translator.catalog import Entry, should_translate


@dataclass(frozen=True)
class SkipOptions:
    """Which skip rules are honored during a run."""
    skip_already_translated: bool = True
    skip_should_translate_false: bool = True


class SkipReason(Enum):
    ALREADY_TRANSLATED = "Already translated"
    SHOULD_TRANSLATE_FALSE = "Marked do not translate"
    EMPTY_SOURCE = "Empty source value"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class SkipOutcome:
    skip: bool
    reason: Optional[SkipReason] = None

    def __post_init__(self):
        if self.skip != (self.reason is not None):
            raise ValueError("A skip outcome carries a reason if and only if it skips.")

    @classmethod
    def proceed(cls) -> "SkipOutcome":
        return cls(skip=False)

    @classmethod
    def skipped(cls, reason: SkipReason) -> "SkipOutcome":
        return cls(skip=True, reason=reason)


def should_skip(entry: Entry, source_language: str, target_language: str, options: SkipOptions) -> SkipOutcome:
    """
    Check whether a string should be skipped for a target language.

    Rules are evaluated in order and the first one that applies wins:

    1. The comment marks the string "do not translate" (if honored).
    2. The source text is missing or empty.
    3. The target already holds a non-empty value that differs from the
       source (if honored). Equality with the source is the only signal used;
       the localization's state tag is not consulted.

    Args:
        entry: The catalog entry.
        source_language: Source language code of the catalog.
        target_language: Language the string would be translated into.
        options: Which rules to honor.

    Returns:
        SkipOutcome: ``skip`` and, when skipping, the reason.
    """
    if options.skip_should_translate_false and not should_translate(entry):
        return SkipOutcome.skipped(SkipReason.SHOULD_TRANSLATE_FALSE)

    source_value = entry.value_for(source_language)
    if not source_value:
        return SkipOutcome.skipped(SkipReason.EMPTY_SOURCE)

    if options.skip_already_translated:
        target_value = entry.value_for(target_language)
        if target_value and target_value != source_value:
            return SkipOutcome.skipped(SkipReason.ALREADY_TRANSLATED)

    return SkipOutcome.proceed()
