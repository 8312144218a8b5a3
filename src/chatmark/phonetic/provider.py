"""
Lazily loaded pinyin provider.

The provider starts UNLOADED. The first ``ensure_loaded()`` moves it to
LOADING and tries each source in order, each attempt bounded by a timeout.
The first source that succeeds makes the provider LOADED; if every source
fails it becomes UNAVAILABLE and stays that way.

Matching code never waits for the load: it asks ``initials()`` / ``full()``
for whatever is available right now, and observers subscribe to
``ready_version`` to re-run matching once pinyin data arrives.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from .sources import PhoneticBackend, PhoneticSource, PypinyinSource

logger = logging.getLogger("chatmark.phonetic")

DEFAULT_LOAD_TIMEOUT = 5.0

_WHITESPACE = re.compile(r"\s+")


class PhoneticState(str, Enum):
    """Lifecycle of a PhoneticProvider."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class PhoneticCacheEntry:
    """Computed romanizations of one string."""
    initials: str
    full: str


class ReadyVersion:
    """Monotonic counter bumped every time pinyin data becomes available.

    Example:
        >>> version = ReadyVersion()
        >>> unsubscribe = version.subscribe(lambda v: print(f"ready #{v}"))
        >>> version.bump()
        ready #1
        1
    """

    def __init__(self) -> None:
        self._value = 0
        self._callbacks: list[Callable[[int], None]] = []

    @property
    def value(self) -> int:
        return self._value

    def subscribe(self, callback: Callable[[int], None]) -> Callable[[], None]:
        """Register a callback receiving the new version number.

        Returns:
            A function that removes the callback again.
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def bump(self) -> int:
        """Increment the version and notify subscribers."""
        self._value += 1
        for callback in list(self._callbacks):
            try:
                callback(self._value)
            except Exception as e:
                logger.error(f"Error in phonetic ready callback: {e}", exc_info=True)
        return self._value


class PhoneticProvider:
    """Pinyin initials and full romanization with lazy, shared loading.

    Usage:
        provider = PhoneticProvider([RemoteTableSource(url), PypinyinSource()])
        await provider.ensure_loaded()
        provider.initials("火球术")  # "HQS"
        provider.full("火球术")      # "huoqiushu"

    Args:
        sources: Load sources in priority order. Defaults to the local pypinyin package.
        timeout: Seconds allowed for each source before falling back to the next one.
    """

    def __init__(
        self,
        sources: Sequence[PhoneticSource] | None = None,
        timeout: float = DEFAULT_LOAD_TIMEOUT,
    ) -> None:
        self._sources: list[PhoneticSource] = list(sources) if sources is not None else [PypinyinSource()]
        self._timeout = timeout
        self._state = PhoneticState.UNLOADED
        self._backend: PhoneticBackend | None = None
        self._load_task: asyncio.Task[bool] | None = None
        self._cache: dict[str, PhoneticCacheEntry] = {}
        self.ready_version = ReadyVersion()
        self.load_attempts = 0

    @property
    def state(self) -> PhoneticState:
        return self._state

    @property
    def backend_name(self) -> str | None:
        return self._backend.name if self._backend else None

    def is_loaded(self) -> bool:
        return self._state is PhoneticState.LOADED

    def _load_in_flight(self, loop: asyncio.AbstractEventLoop) -> bool:
        # Only an unfinished task on the running loop counts as in flight
        task = self._load_task
        return task is not None and not task.done() and task.get_loop() is loop

    def _start_load(self) -> "asyncio.Task[bool]":
        loop = asyncio.get_running_loop()
        if not self._load_in_flight(loop):
            self._state = PhoneticState.LOADING
            self._load_task = loop.create_task(self._load())
        return self._load_task

    async def ensure_loaded(self) -> bool:
        """Load pinyin data if needed.

        Concurrent callers share a single in-flight load; cancelling one caller
        does not cancel the shared load.

        Returns:
            True if pinyin data is available, False if every source failed.
        """
        if self._state is PhoneticState.LOADED:
            return True
        if self._state is PhoneticState.UNAVAILABLE:
            return False
        return await asyncio.shield(self._start_load())

    def request_load(self) -> None:
        """Start loading in the background from synchronous code.

        Does nothing when a load is in flight or finished, or when no event
        loop is running. A load interrupted by its loop shutting down is
        started again.
        """
        if self._state in (PhoneticState.LOADED, PhoneticState.UNAVAILABLE):
            return
        try:
            self._start_load()
        except RuntimeError:
            logger.debug("No running event loop, deferring pinyin load")

    async def _load(self) -> bool:
        self.load_attempts += 1

        try:
            for source in self._sources:
                try:
                    backend = await asyncio.wait_for(source.load(), timeout=self._timeout)
                except asyncio.TimeoutError:
                    logger.warning(
                        f"Pinyin source '{source.name}' timed out after {self._timeout:.1f}s, trying next"
                    )
                    continue
                except Exception as exc:
                    logger.warning(f"Pinyin source '{source.name}' failed, trying next: {exc}")
                    continue

                self._backend = backend
                self._state = PhoneticState.LOADED
                logger.info(f"Loaded pinyin data from source '{source.name}' ({backend.name})")
                self.ready_version.bump()
                return True
        except asyncio.CancelledError:
            if self._state is PhoneticState.LOADING:
                self._state = PhoneticState.UNLOADED
            logger.debug("Pinyin load cancelled, will retry on next request")
            raise

        self._state = PhoneticState.UNAVAILABLE
        logger.warning("No pinyin source could be loaded; pinyin matching disabled")
        return False

    def _entry(self, text: str) -> PhoneticCacheEntry | None:
        if self._backend is None or not text:
            return None

        entry = self._cache.get(text)
        if entry is not None:
            return entry

        try:
            syllables = self._backend.syllables(text)
        except Exception as exc:
            logger.debug(f"Pinyin conversion failed for {text!r}: {exc}")
            return None

        initials = "".join(s.strip()[0].upper() for s in syllables if s.strip())
        full = _WHITESPACE.sub("", "".join(syllables).lower())
        entry = PhoneticCacheEntry(initials=initials, full=full)
        self._cache[text] = entry
        return entry

    def initials(self, text: str) -> str:
        """First letter of every syllable, upper-cased ("世界观" -> "SJG").

        Returns an empty string while pinyin data is not loaded.
        """
        entry = self._entry(text)
        return entry.initials if entry else ""

    def full(self, text: str) -> str:
        """Toneless lower-case romanization without whitespace ("世界观" -> "shijieguan").

        Returns an empty string while pinyin data is not loaded.
        """
        entry = self._entry(text)
        return entry.full if entry else ""

    def cache_size(self) -> int:
        return len(self._cache)


_default_provider: PhoneticProvider | None = None


def get_phonetic_provider() -> PhoneticProvider:
    """Return the process-wide provider, building it from the environment on first use."""
    global _default_provider
    if _default_provider is None:
        from ..config import AnnotatorSettings

        _default_provider = AnnotatorSettings.from_env().build_provider()
    return _default_provider


def set_phonetic_provider(provider: PhoneticProvider | None) -> None:
    """Replace the process-wide provider (None rebuilds it on next use)."""
    global _default_provider
    _default_provider = provider


async def ensure_phonetic_loaded() -> bool:
    """Load the process-wide provider; True iff pinyin data is available."""
    return await get_phonetic_provider().ensure_loaded()


def phonetic_ready_version() -> ReadyVersion:
    """Readiness signal of the process-wide provider."""
    return get_phonetic_provider().ready_version


__all__ = [
    "DEFAULT_LOAD_TIMEOUT",
    "PhoneticState",
    "PhoneticCacheEntry",
    "ReadyVersion",
    "PhoneticProvider",
    "get_phonetic_provider",
    "set_phonetic_provider",
    "ensure_phonetic_loaded",
    "phonetic_ready_version",
]
