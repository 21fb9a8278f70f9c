"""Dummy translation backend for testing: prefixes strings with a [XX] tag."""

from __future__ import annotations

from dyntranslate.backends.base import BatchItem, ProviderError, TranslationBackend


class DummyBackend(TranslationBackend):
    """Test backend that prefixes each string with the target language tag.

    Example: "Hola" → "[EN] Hola"

    ``omit`` lists source texts the backend pretends it could not translate,
    ``fail`` makes every call raise ProviderError. Every call is recorded in
    ``calls`` as (items, target_lang, source_lang).
    """

    def __init__(
        self,
        *,
        omit: set[str] | None = None,
        fail: bool = False,
    ) -> None:
        self.omit = set(omit or ())
        self.fail = fail
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
        if self.fail:
            raise ProviderError("dummy backend configured to fail")
        tag = f"[{target_lang.upper()}]"
        return {
            item.key: f"{tag} {item.text}"
            for item in items
            if item.text not in self.omit
        }
