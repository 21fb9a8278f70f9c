"""HTTP backend for a remote translate-batch endpoint.

Wire format (JSON over POST)::

    request:  {"items": [{"key": ..., "text": ...}],
               "sourceLocale": ..., "targetLocale": ...}
    response: {"results": [{"key": ..., "translation": ...}]}

The response may cover only part of the requested keys.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dyntranslate.backends.base import BatchItem, ProviderError, TranslationBackend

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


class HttpBackend(TranslationBackend):
    """Translation backend posting keyed batches to an HTTP endpoint."""

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not endpoint:
            raise ValueError("HTTP backend requires an endpoint URL")
        self.endpoint = endpoint
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._headers = headers
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def translate_items(
        self,
        items: list[BatchItem],
        target_lang: str,
        source_lang: str,
    ) -> dict[str, str]:
        if not items:
            return {}

        payload = {
            "items": [{"key": item.key, "text": item.text} for item in items],
            "sourceLocale": source_lang,
            "targetLocale": target_lang,
        }
        try:
            response = await self._client.post(
                self.endpoint, json=payload, headers=self._headers,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"translate-batch returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"translate-batch request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError("translate-batch returned invalid JSON") from exc

        return _parse_results(data)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _parse_results(data: Any) -> dict[str, str]:
    """Extract {key: translation} from a response body, skipping bad entries."""
    if not isinstance(data, dict) or not isinstance(data.get("results"), list):
        raise ProviderError("translate-batch response has no 'results' list")

    results: dict[str, str] = {}
    for entry in data["results"]:
        if not isinstance(entry, dict):
            continue
        key = entry.get("key")
        translation = entry.get("translation")
        if isinstance(key, str) and isinstance(translation, str):
            results[key] = translation
        else:
            logger.debug("Skipping malformed result entry: %r", entry)
    return results
