"""Abstract base class for translation backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class ProviderError(RuntimeError):
    """Raised when a backend call fails at the transport or protocol level."""


@dataclass(frozen=True)
class BatchItem:
    """One entry of a batch request: caller key plus source text."""

    key: str
    text: str


class TranslationBackend(ABC):
    """Interface for remote batch-translation providers."""

    @abstractmethod
    async def translate_items(
        self,
        items: list[BatchItem],
        target_lang: str,
        source_lang: str,
    ) -> dict[str, str]:
        """Translate a batch of keyed texts.

        Args:
            items: Items to translate. Keys are unique within one call.
            target_lang: Target language code (e.g. "en").
            source_lang: Source language code (e.g. "es").

        Returns:
            Mapping of key to translation. May omit keys the provider
            could not translate; any exception means the whole call failed.
        """
        ...

    async def close(self) -> None:
        """Release transport resources. Default does nothing."""
