"""Request coalescing in front of a remote batch-translation backend.

``translate()`` calls arriving close together are queued and sent as one
backend request once the debounce window closes (or the hard deadline
after the first queued item passes). Identical in-flight requests share
one future, confirmed translations land in a bounded cache, and a change
of target language invalidates both.

Translation is best-effort: every public coroutine resolves with the
original text when the backend fails, times out or omits an item.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Callable

from dyntranslate.backends.base import BatchItem, TranslationBackend
from dyntranslate.config import CoalescerConfig
from dyntranslate.reporting.report import CoalescerStats
from dyntranslate.translation.cache import CacheKey, TranslationCache
from dyntranslate.translation.language import LanguageSelector, normalize_language

logger = logging.getLogger(__name__)

FailureHook = Callable[[BaseException, list[BatchItem]], None]


@dataclass
class _QueuedItem:
    """A translate() request waiting for the next flush."""

    wire_key: str
    text: str
    cache_key: CacheKey
    future: asyncio.Future[str]


class TranslationCoalescer:
    """Batches, de-duplicates and caches translation requests.

    The cache, and with it the map of in-flight requests, may be shared
    between coalescers so identical texts are requested once per process.
    The queue and timer belong to one instance.
    """

    def __init__(
        self,
        backend: TranslationBackend,
        config: CoalescerConfig | None = None,
        *,
        cache: TranslationCache | None = None,
        selector: LanguageSelector | None = None,
        target_lang: str | None = None,
        stats: CoalescerStats | None = None,
        on_failure: FailureHook | None = None,
    ) -> None:
        self.backend = backend
        self.config = config or CoalescerConfig()
        self.cache = cache if cache is not None else TranslationCache.from_config(self.config)
        self.stats = stats or CoalescerStats()
        self.on_failure = on_failure

        self._source_lang = normalize_language(self.config.source_lang)
        if selector is not None:
            self._target_lang = selector.current
            self._unsubscribe: Callable[[], None] | None = selector.subscribe(
                lambda _old, new: self.set_target_language(new)
            )
        else:
            self._target_lang = normalize_language(target_lang or self._source_lang)
            self._unsubscribe = None

        self.stats.backend = self.stats.backend or type(backend).__name__
        self.stats.source_lang = self._source_lang
        self.stats.target_lang = self._target_lang

        self._epoch = 0
        self._queue: list[_QueuedItem] = []
        self._queued_keys: set[str] = set()
        self._key_counter = itertools.count(1)
        self._timer: asyncio.TimerHandle | None = None
        self._first_queued_at: float | None = None
        self._flush_tasks: set[asyncio.Task[None]] = set()
        self._active_flushes = 0
        self._disposed = False

    # -- state -------------------------------------------------------------

    @property
    def source_lang(self) -> str:
        return self._source_lang

    @property
    def target_lang(self) -> str:
        return self._target_lang

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def pending_count(self) -> int:
        return len(self.cache.pending)

    @property
    def is_translating(self) -> bool:
        return bool(self._queue) or self._active_flushes > 0

    def _is_identity(self) -> bool:
        return not self.config.enabled or self._target_lang == self._source_lang

    # -- public operations -------------------------------------------------

    async def translate(self, text: str, key: str | None = None) -> str:
        """Translate one text, coalescing with other calls in the same window.

        ``key`` is a caller identifier sent on the wire; one is generated
        when omitted. Never raises for translation failures.
        """
        self.stats.requests += 1
        if not text or self._is_identity() or self._disposed:
            self.stats.short_circuits += 1
            return text

        epoch = self._epoch
        target = self._target_lang
        cached = self.cache.get(text, target, self._source_lang)
        if cached is not None:
            self.stats.cache_hits += 1
            return cached

        cache_key: CacheKey = (self._source_lang, target, text)
        future = self.cache.pending.get(cache_key)
        if future is not None and future.get_loop() is asyncio.get_running_loop():
            self.stats.dedup_joins += 1
        else:
            future = self._enqueue(text, key, cache_key)

        result = await asyncio.shield(future)

        if self._epoch != epoch and not self._disposed:
            # Language switched while waiting: the result belongs to a stale epoch
            return await self.translate(text, key)
        return result

    async def translate_batch(self, texts: list[str]) -> list[str]:
        """Translate many texts with one direct backend call, order preserved.

        Bypasses the debounce queue. Cached texts are served from the cache;
        missing, empty or failed positions keep their original text.
        """
        self.stats.requests += len(texts)
        results = list(texts)
        if not texts or self._is_identity() or self._disposed:
            self.stats.short_circuits += len(texts)
            return results

        epoch = self._epoch
        target = self._target_lang
        source = self._source_lang

        cached = self.cache.get_batch([t for t in texts if t], target, source)
        to_fetch: dict[str, BatchItem] = {}
        for i, text in enumerate(texts):
            if not text:
                self.stats.short_circuits += 1
            elif text in cached:
                self.stats.cache_hits += 1
                results[i] = cached[text]
            elif text not in to_fetch:
                to_fetch[text] = BatchItem(key=f"b{len(to_fetch)}", text=text)

        if not to_fetch:
            return results

        items = list(to_fetch.values())
        self.stats.provider_calls += 1
        self.stats.items_sent += len(items)
        try:
            translated = await self._call_backend(items, target, source)
        except Exception as exc:
            self._absorb_failure(exc, items)
            return results

        by_text: dict[str, str] = {}
        for item in items:
            translation = translated.get(item.key)
            if translation is None:
                self.stats.items_missing += 1
                continue
            self.stats.items_translated += 1
            by_text[item.text] = translation
        if epoch == self._epoch:
            self.cache.put_batch([(text, target, source, value) for text, value in by_text.items()])

        for i, text in enumerate(texts):
            if text in by_text:
                results[i] = by_text[text]
        return results

    async def flush(self) -> None:
        """Send whatever is queued now instead of waiting for the timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        await self._flush_queue()

    def set_target_language(self, lang: str) -> bool:
        """Switch target language. Returns True if it changed.

        A change clears the cache and the in-flight map; results of batches
        already sent are no longer written to the cache.
        """
        new = normalize_language(lang)
        if new == self._target_lang:
            return False
        old = self._target_lang
        self._target_lang = new
        self.stats.target_lang = new
        self._invalidate(f"target language {old} -> {new}")
        return True

    def clear_cache(self) -> None:
        """Drop every cached translation and forget in-flight requests."""
        self._invalidate("explicit clear")

    def dispose(self) -> None:
        """Tear down: cancel the armed timer and release queued callers.

        Queued callers receive their original text. No backend call is made
        after this point.
        """
        if self._disposed:
            return
        self._disposed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._first_queued_at = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        items, self._queue = self._queue, []
        self._queued_keys.clear()
        for item in items:
            self._settle(item, item.text)
        self.stats.finish()

    async def aclose(self) -> None:
        """Dispose and wait for batches already sent to settle."""
        self.dispose()
        if self._flush_tasks:
            await asyncio.gather(*self._flush_tasks, return_exceptions=True)

    async def __aenter__(self) -> TranslationCoalescer:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- internals ---------------------------------------------------------

    def _invalidate(self, reason: str) -> None:
        self._epoch += 1
        dropped = self.cache.clear()
        self.cache.pending.clear()
        self.stats.invalidations += 1
        logger.debug("Invalidated translations (%s): %d cached entries dropped", reason, dropped)

    def _wire_key(self, key: str | None) -> str:
        candidate = key if key is not None else f"t{next(self._key_counter)}"
        while candidate in self._queued_keys:
            candidate = f"{key or 't'}#{next(self._key_counter)}"
        self._queued_keys.add(candidate)
        return candidate

    def _enqueue(self, text: str, key: str | None, cache_key: CacheKey) -> asyncio.Future[str]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()
        self.cache.pending[cache_key] = future
        self._queue.append(_QueuedItem(self._wire_key(key), text, cache_key, future))
        self._arm_timer(loop)
        return future

    def _arm_timer(self, loop: asyncio.AbstractEventLoop) -> None:
        """(Re)arm the debounce timer, capped by the max-wait deadline."""
        now = loop.time()
        if self._first_queued_at is None:
            self._first_queued_at = now
        deadline = self._first_queued_at + self.config.max_wait_seconds
        fire_at = min(now + self.config.debounce_seconds, deadline)
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_at(fire_at, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        if self._disposed:
            return
        task = asyncio.ensure_future(self._flush_queue())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def _flush_queue(self) -> None:
        items, self._queue = self._queue, []
        self._queued_keys.clear()
        self._first_queued_at = None
        if not items:
            return

        epoch = self._epoch
        target = self._target_lang
        source = self._source_lang
        self._active_flushes += 1
        try:
            if self._is_identity() or self._disposed:
                return

            # Same text queued under different epochs goes out once
            groups: dict[str, list[_QueuedItem]] = {}
            for item in items:
                groups.setdefault(item.text, []).append(item)
            batch = [BatchItem(key=group[0].wire_key, text=text) for text, group in groups.items()]

            self.stats.batches_flushed += 1
            self.stats.provider_calls += 1
            self.stats.items_sent += len(batch)
            logger.debug("Flushing %d items (%s -> %s)", len(batch), source, target)

            failed = False
            try:
                translated = await self._call_backend(batch, target, source)
            except Exception as exc:
                self._absorb_failure(exc, batch)
                translated = {}
                failed = True

            values: dict[str, str] = {}
            confirmed: list[tuple[str, str, str, str]] = []
            for entry in batch:
                translation = translated.get(entry.key)
                if translation is None:
                    if not failed:
                        self.stats.items_missing += 1
                    values[entry.text] = entry.text
                else:
                    self.stats.items_translated += 1
                    confirmed.append((entry.text, target, source, translation))
                    values[entry.text] = translation
            if confirmed and epoch == self._epoch:
                self.cache.put_batch(confirmed)

            for text, value in values.items():
                for item in groups[text]:
                    self._settle(item, value)
        finally:
            self._active_flushes -= 1
            for item in items:
                self._settle(item, item.text)

    async def _call_backend(
        self, items: list[BatchItem], target: str, source: str,
    ) -> dict[str, str]:
        call = self.backend.translate_items(items, target, source)
        timeout = self.config.request_timeout
        if timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout)
        except asyncio.TimeoutError:
            self.stats.timeouts += 1
            raise

    def _absorb_failure(self, exc: BaseException, items: list[BatchItem]) -> None:
        self.stats.record_failure(exc)
        logger.warning(
            "Translation batch of %d items failed (%s -> %s); serving original text",
            len(items), self._source_lang, self._target_lang,
            exc_info=exc,
        )
        if self.on_failure is not None:
            try:
                self.on_failure(exc, items)
            except Exception:
                logger.exception("Translation failure hook raised")

    def _settle(self, item: _QueuedItem, value: str) -> None:
        if not item.future.done() and not item.future.get_loop().is_closed():
            item.future.set_result(value)
        pending = self.cache.pending
        if pending.get(item.cache_key) is item.future:
            del pending[item.cache_key]
