"""
Pinyin support for keyword matching.

Provides lazily loaded pinyin initials ("HQS") and full romanization
("huoqiushu") with a remote-table source, a local pypinyin fallback,
and a readiness signal for observers.
"""

from .provider import (
    DEFAULT_LOAD_TIMEOUT,
    PhoneticCacheEntry,
    PhoneticProvider,
    PhoneticState,
    ReadyVersion,
    ensure_phonetic_loaded,
    get_phonetic_provider,
    phonetic_ready_version,
    set_phonetic_provider,
)
from .sources import (
    PhoneticBackend,
    PhoneticSource,
    PhoneticSourceError,
    PypinyinSource,
    RemoteTableSource,
    TableBackend,
)

__all__ = [
    "DEFAULT_LOAD_TIMEOUT",
    "PhoneticCacheEntry",
    "PhoneticProvider",
    "PhoneticState",
    "ReadyVersion",
    "ensure_phonetic_loaded",
    "get_phonetic_provider",
    "phonetic_ready_version",
    "set_phonetic_provider",
    "PhoneticBackend",
    "PhoneticSource",
    "PhoneticSourceError",
    "PypinyinSource",
    "RemoteTableSource",
    "TableBackend",
]
