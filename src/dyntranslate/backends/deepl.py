"""DeepL API translation backend."""

from __future__ import annotations

import asyncio
import logging
import time

from dyntranslate.backends.base import BatchItem, ProviderError, TranslationBackend

logger = logging.getLogger(__name__)

# DeepL free tier limits
MAX_BATCH_SIZE = 50
RATE_LIMIT_RETRY_SECONDS = 1.0
MAX_RETRIES = 3

# DeepL rejects bare "EN" and "PT" as target languages
TARGET_LANGUAGE_VARIANTS = {
    "en": "EN-US",
    "pt": "PT-PT",
}


def deepl_target_lang(code: str) -> str:
    """Map a language code to the target code DeepL accepts (pt-BR -> PT-BR)."""
    return TARGET_LANGUAGE_VARIANTS.get(code.lower(), code.upper())


class DeepLBackend(TranslationBackend):
    """Translation backend using the DeepL API.

    The SDK is blocking, so each chunk runs in a worker thread.
    """

    def __init__(self, api_key: str) -> None:
        try:
            import deepl
        except ImportError:
            raise ImportError(
                "DeepL backend requires the 'deepl' package. "
                "Install it with: pip install dyntranslate[deepl]"
            ) from None
        self._deepl = deepl
        self._translator = deepl.Translator(api_key)

    async def translate_items(
        self,
        items: list[BatchItem],
        target_lang: str,
        source_lang: str,
    ) -> dict[str, str]:
        """Translate items using DeepL, handling rate limits and batching."""
        if not items:
            return {}

        results: dict[str, str] = {}

        for i in range(0, len(items), MAX_BATCH_SIZE):
            batch = items[i : i + MAX_BATCH_SIZE]
            translated = await asyncio.to_thread(
                self._translate_with_retry,
                [item.text for item in batch],
                target_lang,
                source_lang,
            )
            for item, text in zip(batch, translated):
                results[item.key] = text

        return results

    def _translate_with_retry(
        self,
        texts: list[str],
        target_lang: str,
        source_lang: str,
    ) -> list[str]:
        """Translate a single batch with retry on rate limit."""
        for attempt in range(MAX_RETRIES):
            try:
                result = self._translator.translate_text(
                    texts,
                    target_lang=deepl_target_lang(target_lang),
                    source_lang=source_lang.split("-")[0].upper(),
                )
                # translate_text returns a list of TextResult when given a list
                if isinstance(result, list):
                    return [r.text for r in result]
                return [result.text]

            except self._deepl.QuotaExceededException as exc:
                raise ProviderError(f"DeepL quota exceeded: {exc}") from exc

            except (
                self._deepl.TooManyRequestsException,
                self._deepl.ConnectionException,
                ConnectionError,
                TimeoutError,
            ) as exc:
                if attempt < MAX_RETRIES - 1:
                    logger.debug("DeepL attempt %d failed: %s", attempt + 1, exc)
                    time.sleep(RATE_LIMIT_RETRY_SECONDS * (attempt + 1))
                else:
                    raise ProviderError(f"DeepL request failed: {exc}") from exc

            except self._deepl.DeepLException as exc:
                # Bad arguments or auth, retrying cannot help
                raise ProviderError(f"DeepL rejected the request: {exc}") from exc

        return texts  # unreachable, but satisfies type checker
