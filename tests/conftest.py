import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from xcstrings_translator.catalog import Catalog, Entry, Localization
from xcstrings_translator.exceptions import TranslationError


class MockTranslationBackend:
    """Backend double that records every call and answers "[XX] text"."""

    name = "Mock backend"
    cost_per_1000_chars = 0.0

    def __init__(self, should_fail: bool = False, error: Optional[Exception] = None, delay: float = 0):
        self.should_fail = should_fail
        self.error = error or TranslationError.network_error()
        self.delay = delay
        self.calls: List[Tuple[str, str, str, Optional[str]]] = []

    @property
    def translation_count(self) -> int:
        return len(self.calls)

    async def translate(self, text, source_language, target_language, context=None):
        if self.should_fail:
            raise self.error
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        self.calls.append((text, source_language, target_language, context))
        return f"[{target_language.upper()}] {text}"


def build_entry(source_value: Optional[str], translations: Optional[Dict[str, str]] = None,
                comment: Optional[str] = None, source_language: str = "en") -> Entry:
    localizations = {}
    if source_value is not None:
        localizations[source_language] = Localization(state="translated", value=source_value)
    for language, value in (translations or {}).items():
        localizations[language] = Localization(state="translated", value=value)
    return Entry(comment=comment, localizations=localizations)


def build_catalog(entries: Dict[str, Entry], source_language: str = "en") -> Catalog:
    return Catalog(source_language=source_language, entries=entries, version="1.0")


@pytest.fixture
def make_entry():
    return build_entry


@pytest.fixture
def make_catalog():
    return build_catalog


@pytest.fixture
def mock_backend():
    return MockTranslationBackend()
