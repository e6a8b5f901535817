"""
Translation backend implementations.

Every backend exposes one coroutine, ``translate(text, source_language,
target_language, context)``, and reports failures as ``TranslationError``.
Placeholders have already been replaced by ``<<<PHn>>>`` tokens when the
engine calls a backend, so backends only have to leave those tokens alone.

- OpenAI (chat completions through the official client)
- Google Gemini (REST)
- DeepLX (self-hosted DeepL proxy, REST)
"""
import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Optional

import httpx
from aiolimiter import AsyncLimiter
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    OpenAIError,
    PermissionDeniedError,
    RateLimitError
)
from openai.types.chat import (
    ChatCompletionSystemMessageParam,
    ChatCompletionUserMessageParam
)

from xcstrings_translator.exceptions import TranslationError

logger = logging.getLogger(__name__)

DEFAULT_DEEPLX_ENDPOINT = "http://localhost:1188/translate"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_OPENAI_MODEL = "gpt-4"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


def clean_translated_text(translated_text: str, original_text: str) -> str:
    """
    Cleans the translated text by removing leading/trailing quotes and brackets
    that a language model added but that were not in the original text.

    Args:
        translated_text (str): The translated text.
        original_text (str): The text that was sent for translation.

    Returns:
        str: The cleaned translated text.
    """
    translated_text = translated_text.strip()
    if len(translated_text) >= 2 and translated_text.startswith('"') and translated_text.endswith('"') and not (
            original_text.startswith('"') and original_text.endswith('"')):
        translated_text = translated_text[1:-1]
    if len(translated_text) >= 2 and translated_text.startswith('[') and translated_text.endswith(']') and not (
            original_text.startswith('[') and original_text.endswith(']')):
        translated_text = translated_text[1:-1]
    return translated_text


def build_translation_prompt(text: str, source_name: str, target_name: str, context: Optional[str]) -> str:
    """Builds the instruction prompt shared by the language-model backends."""
    prompt = (
        f"Translate this text from {source_name} to {target_name}.\n"
        "\n"
        "CRITICAL RULES:\n"
        "1. Preserve ALL tokens like <<<PH0>>>, <<<PH1>>> exactly as-is\n"
        "2. Output ONLY the translation, no explanations or quotes\n"
        "3. Keep the same tone and formality\n"
        "4. This is for a mobile app UI"
    )
    if context:
        prompt += f"\n5. Context: {context}"
    prompt += f"\n\nText: {text}"
    return prompt


class TranslationBackend(ABC):
    """Base class for translation providers."""

    name: str = "Translation backend"
    # None means the backend accepts any language code.
    supported_languages: Optional[FrozenSet[str]] = None
    cost_per_1000_chars: float = 0.0

    def __init__(self, language_names: Optional[Dict[str, str]] = None):
        self.language_names = language_names or {}

    def supports(self, language: str) -> bool:
        return self.supported_languages is None or language in self.supported_languages

    def language_name(self, code: str) -> str:
        return self.language_names.get(code, code)

    def _check_language_pair(self, source_language: str, target_language: str) -> None:
        for language in (source_language, target_language):
            if not self.supports(language):
                raise TranslationError.unsupported_language(language)

    @abstractmethod
    async def translate(self, text: str, source_language: str, target_language: str,
                        context: Optional[str] = None) -> str:
        """Translate ``text`` and return the translation or raise TranslationError."""


async def _handle_retry(attempt: int, max_retries: int, base_delay: float, api_exc: Optional[Exception] = None) -> bool:
    """
    Wait before the next attempt using exponential backoff with jitter.

    A ``Retry-After`` header on the API error takes precedence over the
    computed delay.

    Returns:
        bool: True if the caller should retry, False once attempts are exhausted.
    """
    if attempt >= max_retries:
        return False

    retry_after = None
    response = getattr(api_exc, "response", None)
    headers = getattr(response, "headers", None) or {}
    retry_after_header = headers.get("Retry-After") or headers.get("retry-after")
    if retry_after_header:
        try:
            if retry_after_header.endswith("ms"):
                retry_after = float(retry_after_header[:-2]) / 1000
            else:
                retry_after = float(retry_after_header)
        except ValueError:
            logger.warning("Failed to parse Retry-After header %r. Falling back to exponential backoff.",
                           retry_after_header)

    if retry_after is None:
        retry_after = base_delay * (2 ** (attempt - 1)) + random.uniform(0, 1)

    logger.info("Retrying translation request in %.2f seconds (Attempt %d/%d)", retry_after, attempt, max_retries)
    await asyncio.sleep(retry_after)
    return True


class OpenAIBackend(TranslationBackend):
    """Translation through the OpenAI chat completions API."""

    name = "OpenAI"
    cost_per_1000_chars = 0.002

    def __init__(
            self,
            client: AsyncOpenAI,
            model_name: str = DEFAULT_OPENAI_MODEL,
            temperature: float = 0.3,
            request_timeout: float = 60.0,
            max_retries: int = 5,
            base_delay: float = 1.0,
            rate_limiter: Optional[AsyncLimiter] = None,
            language_names: Optional[Dict[str, str]] = None
    ):
        super().__init__(language_names)
        self.client = client
        self.model_name = model_name
        self.temperature = temperature
        self.request_timeout = request_timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.rate_limiter = rate_limiter

    def _system_prompt(self) -> str:
        return (
            "You are an expert translator specializing in software localization.\n"
            "- **Do not translate or modify placeholder tokens**: text like `<<<PH0>>>` must stay exactly as is.\n"
            "- **Preserve formatting**: keep punctuation, line breaks and capitalization style.\n"
            "- **Do not add** any additional characters (no quotation marks, no square brackets).\n"
            "- **Provide only** the translated text."
        )

    async def _create_completion(self, prompt: str):
        return await self.client.chat.completions.create(
            model=self.model_name,
            messages=[
                ChatCompletionSystemMessageParam(role="system", content=self._system_prompt()),
                ChatCompletionUserMessageParam(role="user", content=prompt)
            ],
            temperature=self.temperature,
            timeout=self.request_timeout,
        )

    async def translate(self, text: str, source_language: str, target_language: str,
                        context: Optional[str] = None) -> str:
        self._check_language_pair(source_language, target_language)
        prompt = build_translation_prompt(
            text, self.language_name(source_language), self.language_name(target_language), context
        )

        for attempt in range(1, self.max_retries + 1):
            try:
                if self.rate_limiter is not None:
                    async with self.rate_limiter:
                        response = await self._create_completion(prompt)
                else:
                    response = await self._create_completion(prompt)

                content = response.choices[0].message.content if response.choices else None
                if not content:
                    raise TranslationError("Empty response from OpenAI", TranslationError.API_ERROR)
                return clean_translated_text(content, text)

            except (AuthenticationError, PermissionDeniedError) as auth_exc:
                raise TranslationError.invalid_api_key() from auth_exc
            except (RateLimitError, APITimeoutError, APIConnectionError, APIStatusError) as api_exc:
                logger.warning("OpenAI API error: %s - %s", api_exc.__class__.__name__, api_exc)
                if isinstance(api_exc, APIStatusError) and api_exc.status_code < 500 \
                        and not isinstance(api_exc, RateLimitError):
                    raise TranslationError(f"OpenAI API error ({api_exc.status_code}): {api_exc.message}") from api_exc
                if await _handle_retry(attempt, self.max_retries, self.base_delay, api_exc):
                    continue
                if isinstance(api_exc, RateLimitError):
                    raise TranslationError.rate_limit_exceeded() from api_exc
                if isinstance(api_exc, (APITimeoutError, APIConnectionError)):
                    raise TranslationError.network_error(str(api_exc)) from api_exc
                raise TranslationError(f"OpenAI API error: {api_exc}") from api_exc
            except OpenAIError as openai_exc:
                raise TranslationError(f"OpenAI error: {openai_exc}") from openai_exc

        raise TranslationError(f"Translation failed after {self.max_retries} attempts")


class _HTTPBackend(TranslationBackend):
    """Shared plumbing for backends that talk JSON over HTTP."""

    def __init__(self, request_timeout: float = 30.0, http_client: Optional[httpx.AsyncClient] = None,
                 language_names: Optional[Dict[str, str]] = None):
        super().__init__(language_names)
        self.request_timeout = request_timeout
        self.http_client = http_client

    async def _post_json(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.post(url, json=payload, timeout=self.request_timeout)
        async with httpx.AsyncClient(timeout=self.request_timeout) as client:
            return await client.post(url, json=payload)

    @staticmethod
    def _decode_json(response: httpx.Response, provider: str) -> Any:
        try:
            return response.json()
        except ValueError as json_exc:
            raise TranslationError(f"Invalid response format from {provider}") from json_exc


class GeminiBackend(_HTTPBackend):
    """Translation through the Google Gemini ``generateContent`` API."""

    name = "Google Gemini"
    cost_per_1000_chars = 0.00008
    supported_languages = frozenset({
        "en", "es", "de", "fr", "it", "ja", "ko", "nl",
        "pl", "ro", "ru", "th", "tr", "uk", "vi",
        "ar", "zh", "pt", "hi", "id", "ms"
    })

    def __init__(self, api_key: str, model_name: str = DEFAULT_GEMINI_MODEL, request_timeout: float = 30.0,
                 http_client: Optional[httpx.AsyncClient] = None,
                 language_names: Optional[Dict[str, str]] = None):
        super().__init__(request_timeout, http_client, language_names)
        self.api_key = api_key
        self.model_name = model_name

    async def translate(self, text: str, source_language: str, target_language: str,
                        context: Optional[str] = None) -> str:
        if not self.api_key:
            raise TranslationError.invalid_api_key()
        self._check_language_pair(source_language, target_language)

        prompt = build_translation_prompt(
            text, self.language_name(source_language), self.language_name(target_language), context
        )
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.3, "maxOutputTokens": 1000}
        }
        url = f"{GEMINI_BASE_URL}/{self.model_name}:generateContent?key={self.api_key}"

        try:
            response = await self._post_json(url, payload)
        except httpx.RequestError as request_exc:
            raise TranslationError.network_error(request_exc.__class__.__name__) from request_exc

        if response.status_code in (401, 403):
            raise TranslationError.invalid_api_key()
        if response.status_code == 429:
            raise TranslationError.rate_limit_exceeded()
        if not response.is_success:
            raise TranslationError(f"Gemini API error ({response.status_code}): {response.text[:500]}")

        data = self._decode_json(response, "Gemini API")
        try:
            translated = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as parse_exc:
            raise TranslationError("Invalid response format from Gemini API") from parse_exc
        if not isinstance(translated, str):
            raise TranslationError("Invalid response format from Gemini API")

        return clean_translated_text(translated, text)


class DeepLXBackend(_HTTPBackend):
    """Translation through a self-hosted DeepLX service (https://github.com/OwO-Network/DeepLX)."""

    name = "DeepLX"
    supported_languages = frozenset({
        "en", "de", "fr", "es", "pt", "it", "nl",
        "pl", "ru", "ja", "zh", "ko"
    })

    def __init__(self, endpoint: str = DEFAULT_DEEPLX_ENDPOINT, request_timeout: float = 30.0,
                 http_client: Optional[httpx.AsyncClient] = None,
                 language_names: Optional[Dict[str, str]] = None):
        super().__init__(request_timeout, http_client, language_names)
        self.endpoint = endpoint

    async def translate(self, text: str, source_language: str, target_language: str,
                        context: Optional[str] = None) -> str:
        self._check_language_pair(source_language, target_language)
        payload = {
            "text": text,
            "source_lang": source_language.upper(),
            "target_lang": target_language.upper()
        }

        try:
            response = await self._post_json(self.endpoint, payload)
        except httpx.InvalidURL as url_exc:
            raise TranslationError("Invalid DeepLX endpoint URL") from url_exc
        except httpx.RequestError as request_exc:
            raise TranslationError(
                "DeepLX not reachable. Is the service running? "
                "Start with: docker run -d -p 1188:1188 ghcr.io/owo-network/deeplx:latest",
                TranslationError.NETWORK_ERROR
            ) from request_exc

        if not response.is_success:
            raise TranslationError(f"DeepLX error ({response.status_code}): {response.text[:500]}")

        data = self._decode_json(response, "DeepLX")
        if not isinstance(data, dict):
            raise TranslationError("Invalid response format from DeepLX")
        code = data.get("code")
        if isinstance(code, int) and code != 200:
            raise TranslationError(f"DeepLX error: {data.get('message', 'Unknown error')}")
        translated = data.get("data")
        if not isinstance(translated, str):
            raise TranslationError("No translation data in DeepLX response")

        return translated.strip()


PROVIDERS = ("openai", "gemini", "deeplx")


def create_backend(provider: str, **options) -> TranslationBackend:
    """
    Create a backend by provider name.

    Args:
        provider: One of ``openai``, ``gemini`` or ``deeplx``.
        **options: Keyword arguments for the backend's constructor.

    Raises:
        ValueError: If the provider name is unknown.
    """
    backends = {
        "openai": OpenAIBackend,
        "gemini": GeminiBackend,
        "deeplx": DeepLXBackend,
    }
    backend_class = backends.get(provider.lower())
    if backend_class is None:
        raise ValueError(f"Unknown translation provider '{provider}'. Expected one of: {', '.join(PROVIDERS)}")
    return backend_class(**options)
