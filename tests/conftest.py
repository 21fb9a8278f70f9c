"""Shared test fixtures for dyntranslate tests."""

from __future__ import annotations

import asyncio

import pytest

from dyntranslate.backends.base import BatchItem, TranslationBackend
from dyntranslate.backends.dummy import DummyBackend
from dyntranslate.config import CoalescerConfig
from dyntranslate.translation.cache import TranslationCache

# Short windows keep the suite fast while leaving room for scheduling jitter
FAST_DEBOUNCE = 0.02
FAST_MAX_WAIT = 0.2


def make_config(**overrides) -> CoalescerConfig:
    """Build a config with short timers and Spanish as source language."""
    values: dict[str, object] = {
        "source_lang": "es",
        "debounce_seconds": FAST_DEBOUNCE,
        "max_wait_seconds": FAST_MAX_WAIT,
        "request_timeout": 1.0,
    }
    values.update(overrides)
    return CoalescerConfig(**values)  # type: ignore[arg-type]


class DictBackend(TranslationBackend):
    """Backend answering from a fixed {(target_lang, text): translation} table."""

    def __init__(self, table: dict[tuple[str, str], str], delay: float = 0.0) -> None:
        self.table = table
        self.delay = delay
        self.calls: list[tuple[list[BatchItem], str, str]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def translate_items(
        self,
        items: list[BatchItem],
        target_lang: str,
        source_lang: str,
    ) -> dict[str, str]:
        self.calls.append((list(items), target_lang, source_lang))
        if self.delay:
            await asyncio.sleep(self.delay)
        return {
            item.key: self.table[(target_lang, item.text)]
            for item in items
            if (target_lang, item.text) in self.table
        }


class HangingBackend(TranslationBackend):
    """Backend whose calls never complete."""

    def __init__(self) -> None:
        self.call_count = 0

    async def translate_items(
        self,
        items: list[BatchItem],
        target_lang: str,
        source_lang: str,
    ) -> dict[str, str]:
        self.call_count += 1
        await asyncio.Event().wait()
        return {}


@pytest.fixture
def dummy_backend() -> DummyBackend:
    return DummyBackend()


@pytest.fixture
def tmp_cache():
    """Create an isolated translation cache."""
    cache = TranslationCache(maxsize=100)
    yield cache
    cache.close()
