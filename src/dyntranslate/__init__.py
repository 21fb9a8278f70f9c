"""dyntranslate: batched, de-duplicated, cached translation of UI strings."""

from dyntranslate.backends.base import BatchItem, ProviderError, TranslationBackend
from dyntranslate.config import CoalescerConfig
from dyntranslate.reporting.report import CoalescerStats
from dyntranslate.translation.cache import TranslationCache
from dyntranslate.translation.coalescer import TranslationCoalescer
from dyntranslate.translation.language import LanguageSelector

__version__ = "0.1.0"

__all__ = [
    "BatchItem",
    "CoalescerConfig",
    "CoalescerStats",
    "LanguageSelector",
    "ProviderError",
    "TranslationBackend",
    "TranslationCache",
    "TranslationCoalescer",
    "__version__",
]
