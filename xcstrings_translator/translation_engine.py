"""
Translation engine: walks a catalog, applies the skip policy and placeholder
protection, calls the backend once per (key, target language) pair, and
collects statistics and progress events.

Pairs are processed one at a time, in catalog order, so progress events are
strictly ordered and the statistics need no locking. The run itself is a
coroutine and can be dispatched as a task with ``TranslationEngine.start``.
"""
import asyncio
import inspect
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Iterable, Iterator, List, Optional, Tuple, Union

from xcstrings_translator.catalog import TRANSLATED_STATE, Catalog, Entry, Localization
from xcstrings_translator.exceptions import ConfigurationError, TranslationError
from xcstrings_translator.placeholder_codec import protect, restore
from xcstrings_translator.skip_policy import SkipOptions, should_skip
from xcstrings_translator.translation_progress import ProgressAction, TranslationProgress, TranslationStats
from xcstrings_translator.translation_validator import find_placeholder_issues

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_DELAY = 0.1
DEFAULT_REQUEST_TIMEOUT = 60.0

ProgressSink = Callable[[TranslationProgress], Union[None, Awaitable[None]]]


class RunStatus(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class TranslationResult:
    """Outcome of a run: the updated catalog, the statistics and how the run ended."""
    catalog: Catalog
    stats: TranslationStats
    status: RunStatus = RunStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status is RunStatus.CANCELLED


class TranslationJob:
    """A run dispatched as an asyncio task. Await it for the TranslationResult."""

    def __init__(self, task: "asyncio.Task[TranslationResult]", cancel_event: asyncio.Event):
        self.task = task
        self.cancel_event = cancel_event

    def cancel(self) -> None:
        """Ask the run to stop before its next pair. The current backend call is not interrupted."""
        self.cancel_event.set()

    def done(self) -> bool:
        return self.task.done()

    def __await__(self):
        return self.task.__await__()


def _describe_error(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


class TranslationEngine:
    """
    Translates catalogs through a single backend.

    Args:
        backend: Any object with an async ``translate(text, source_language,
            target_language, context)`` method.
        request_delay: Pause in seconds after each successful translation.
        request_timeout: Upper bound in seconds for one backend call; None
            disables the bound.
        reject_placeholder_mismatch: Count a translation whose placeholders
            differ from the source as failed instead of only logging it.
    """

    def __init__(self, backend, request_delay: float = DEFAULT_REQUEST_DELAY,
                 request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
                 reject_placeholder_mismatch: bool = False):
        if backend is None:
            raise ConfigurationError("A translation backend is required.")
        self.backend = backend
        self.request_delay = request_delay
        self.request_timeout = request_timeout
        self.reject_placeholder_mismatch = reject_placeholder_mismatch

    @staticmethod
    def _resolve_target_languages(catalog: Catalog, target_languages: Iterable[str]) -> List[str]:
        if catalog is None:
            raise ValueError("catalog must not be None")
        requested = list(dict.fromkeys(target_languages or []))
        if not requested:
            raise ConfigurationError("At least one target language is required.")
        return [language for language in requested if language != catalog.source_language]

    @staticmethod
    def _pairs(catalog: Catalog, targets: List[str]) -> Iterator[Tuple[str, Entry, str]]:
        for key, entry in catalog.entries.items():
            for language in targets:
                yield key, entry, language

    @staticmethod
    async def _emit(on_progress: Optional[ProgressSink], progress: TranslationProgress) -> None:
        if on_progress is None:
            return
        result = on_progress(progress)
        if inspect.isawaitable(result):
            await result

    async def _call_backend(self, text: str, source_language: str, target_language: str,
                            context: Optional[str]) -> str:
        call = self.backend.translate(text, source_language, target_language, context)
        if self.request_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.request_timeout)
        except asyncio.TimeoutError as timeout_exc:
            raise TranslationError(f"Request timed out after {self.request_timeout:g}s",
                                   TranslationError.TIMEOUT) from timeout_exc

    async def _translate_pair(self, key: str, entry: Entry, source_language: str, target_language: str) -> str:
        source_text = entry.value_for(source_language)
        protected = protect(source_text)
        translated = await self._call_backend(protected.text, source_language, target_language, entry.comment)
        restored = restore(translated, protected.placeholders)

        issues = find_placeholder_issues(source_text, restored)
        if issues:
            if self.reject_placeholder_mismatch:
                raise TranslationError("; ".join(issues), TranslationError.PLACEHOLDER_MISMATCH)
            logger.warning("Placeholder mismatch for key '%s' [%s]: %s", key, target_language, "; ".join(issues))
        return restored

    def start(self, catalog: Catalog, target_languages: Iterable[str], skip_options: Optional[SkipOptions] = None,
              on_progress: Optional[ProgressSink] = None) -> TranslationJob:
        """
        Dispatch ``run`` as a task on the running event loop.

        Configuration errors are raised here, before the task exists.
        """
        target_languages = list(target_languages or [])
        self._resolve_target_languages(catalog, target_languages)
        cancel_event = asyncio.Event()
        task = asyncio.create_task(
            self.run(catalog, target_languages, skip_options, on_progress, cancel_event)
        )
        return TranslationJob(task, cancel_event)

    async def run(self, catalog: Catalog, target_languages: Iterable[str], skip_options: Optional[SkipOptions] = None,
                  on_progress: Optional[ProgressSink] = None,
                  cancel_event: Optional[asyncio.Event] = None) -> TranslationResult:
        """
        Translate every entry of ``catalog`` into every target language.

        The source language is dropped from ``target_languages``. The input
        catalog is left untouched; the result holds a new catalog in which
        only successfully translated (key, language) slots differ.

        Args:
            catalog: The catalog to translate.
            target_languages: Language codes to translate into.
            skip_options: Skip rules to honor; both are enabled by default.
            on_progress: Called with one TranslationProgress per pair, in
                order. Coroutine functions are awaited.
            cancel_event: When set, the run stops before the next pair.

        Returns:
            TranslationResult: Updated catalog, statistics and run status.

        Raises:
            ConfigurationError: If no target language was requested.
        """
        targets = self._resolve_target_languages(catalog, target_languages)
        skip_options = skip_options or SkipOptions()
        source_language = catalog.source_language

        stats = TranslationStats()
        working_entries = dict(catalog.entries)
        total = len(catalog.entries) * len(targets)
        status = RunStatus.COMPLETED

        logger.info("Translating %d string(s) into %d language(s) (%s) with %s.",
                    len(catalog.entries), len(targets), ", ".join(targets),
                    getattr(self.backend, "name", self.backend.__class__.__name__))

        current = 0
        for key, entry, target_language in self._pairs(catalog, targets):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Translation cancelled after %d of %d pair(s).", current, total)
                status = RunStatus.CANCELLED
                break

            current += 1
            outcome = should_skip(entry, source_language, target_language, skip_options)
            if outcome.skip:
                stats.record_skip(outcome.reason)
                logger.debug("Skipped key '%s' [%s]: %s", key, target_language, outcome.reason.label)
                await self._emit(on_progress, TranslationProgress(
                    current, total, key, target_language, ProgressAction.SKIPPED))
                continue

            try:
                translated = await self._translate_pair(key, entry, source_language, target_language)
            except Exception as exc:
                message = _describe_error(exc)
                stats.record_failure(key, target_language, message)
                logger.error("Translation failed for key '%s' [%s]: %s", key, target_language, message)
                await self._emit(on_progress, TranslationProgress(
                    current, total, key, target_language, ProgressAction.FAILED))
                continue

            working_entry = working_entries[key]
            previous = working_entry.localizations.get(target_language) or Localization()
            working_entries[key] = working_entry.with_localization(
                target_language, replace(previous, state=TRANSLATED_STATE, value=translated)
            )
            stats.translated += 1
            logger.debug("Translated key '%s' [%s].", key, target_language)
            await self._emit(on_progress, TranslationProgress(
                current, total, key, target_language, ProgressAction.TRANSLATED))

            if self.request_delay > 0:
                await asyncio.sleep(self.request_delay)

        logger.info("Run %s: %d translated, %d skipped, %d failed.",
                    status.value, stats.translated, stats.skipped, stats.failed)
        return TranslationResult(catalog.with_entries(working_entries), stats, status)
