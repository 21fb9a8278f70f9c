"""Target-language selection and language code helpers."""

from __future__ import annotations

import logging
import re
from typing import Callable

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES: dict[str, str] = {
    "es": "Español",
    "en": "English",
    "ca": "Català",
    "fr": "Français",
    "de": "Deutsch",
    "pt": "Português",
    "pt-BR": "Português (Brasil)",
    "it": "Italiano",
    "eu": "Euskara",
    "gl": "Galego",
    "zh-CN": "中文 (简体)",
    "ar": "العربية",
}

_LANG_RE = re.compile(r"^([A-Za-z]{2,3})(?:[-_]([A-Za-z]{2}|\d{3}))?$")

LanguageListener = Callable[[str, str], None]


def normalize_language(code: str | None) -> str:
    """Normalise a language code: "PT_br" → "pt-BR", " EN " → "en".

    Raises ValueError for empty or malformed codes.
    """
    if code is None or not code.strip():
        raise ValueError("Language code must not be empty")
    match = _LANG_RE.match(code.strip())
    if match is None:
        raise ValueError(f"Invalid language code: {code!r}")
    primary, region = match.groups()
    if region:
        return f"{primary.lower()}-{region.upper()}"
    return primary.lower()


def language_name(code: str) -> str:
    """Return the display name of a language, or the code itself if unknown."""
    return SUPPORTED_LANGUAGES.get(code, code)


class LanguageSelector:
    """Holds the user's current target language and notifies on change.

    Listeners are called as ``listener(old, new)`` only when the value
    actually changes.
    """

    def __init__(self, initial: str) -> None:
        self._current = normalize_language(initial)
        self._listeners: list[LanguageListener] = []

    @property
    def current(self) -> str:
        return self._current

    def set(self, code: str) -> bool:
        """Select a new target language. Returns True if it changed."""
        new = normalize_language(code)
        old = self._current
        if new == old:
            return False
        self._current = new
        logger.debug("Target language changed: %s -> %s", old, new)
        for listener in list(self._listeners):
            listener(old, new)
        return True

    def subscribe(self, listener: LanguageListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
