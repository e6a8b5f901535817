"""
Progress events and run statistics for a catalog translation.

Contains the TranslationProgress event emitted once per processed pair and the
TranslationStats accumulator the engine fills during a run.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from xcstrings_translator.skip_policy import SkipReason

MAX_ERRORS_IN_SUMMARY = 5


class ProgressAction(Enum):
    TRANSLATED = "Translated"
    SKIPPED = "Skipped"
    FAILED = "Failed"


@dataclass(frozen=True)
class TranslationProgress:
    """Progress after one (key, language) pair was processed."""
    current: int
    total: int
    key: str
    language: str
    action: ProgressAction

    @property
    def percentage(self) -> float:
        """Percentage complete (0-100); 0 when there is nothing to do."""
        if self.total <= 0:
            return 0.0
        return self.current / self.total * 100


@dataclass
class TranslationStats:
    """Counters for one run. ``total`` always equals the number of pairs visited."""
    translated: int = 0
    skipped: int = 0
    failed: int = 0
    skip_reasons: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.translated + self.skipped + self.failed

    def record_skip(self, reason: SkipReason) -> None:
        self.skipped += 1
        self.skip_reasons[reason.label] = self.skip_reasons.get(reason.label, 0) + 1

    def record_failure(self, key: str, language: str, message: str) -> None:
        self.failed += 1
        self.errors.append(f"{key} [{language}]: {message}")

    def summary(self) -> str:
        """Format the statistics as a multi-line report."""
        lines = [
            "Translation complete",
            "",
            f"Translated: {self.translated}",
            f"Skipped: {self.skipped}",
        ]
        for reason, count in sorted(self.skip_reasons.items()):
            lines.append(f"  - {reason}: {count}")
        lines.append(f"Failed: {self.failed}")

        if self.errors:
            lines.append("")
            lines.append(f"Errors (first {MAX_ERRORS_IN_SUMMARY}):")
            for error in self.errors[:MAX_ERRORS_IN_SUMMARY]:
                lines.append(f"  - {error}")
            if len(self.errors) > MAX_ERRORS_IN_SUMMARY:
                lines.append(f"  ... and {len(self.errors) - MAX_ERRORS_IN_SUMMARY} more")

        return "\n".join(lines)
