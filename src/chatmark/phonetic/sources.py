"""
Load sources for pinyin data.

A source produces a PhoneticBackend, the object that actually splits text
into romanized syllables. The provider tries its sources in order:

- RemoteTableSource: fetches a character -> reading table over HTTP.
- PypinyinSource: uses the locally installed ``pypinyin`` package.

Sources signal failure by raising PhoneticSourceError; the provider treats
that as "try the next one".
"""

import logging
import unicodedata
from abc import ABC, abstractmethod
from typing import Any

import httpx

logger = logging.getLogger("chatmark.phonetic")

DEFAULT_REMOTE_TIMEOUT = 10.0


class PhoneticSourceError(Exception):
    """A source could not provide pinyin data."""
    pass


class PhoneticBackend(ABC):
    """Splits text into toneless romanized syllables."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""
        ...

    @abstractmethod
    def syllables(self, text: str) -> list[str]:
        """Return one romanized syllable per character of ``text``.

        Characters without a reading are returned unchanged.
        """
        ...


def _strip_tones(reading: str) -> str:
    """Lowercase a reading and drop tone marks ("Zhōng" -> "zhong")."""
    decomposed = unicodedata.normalize("NFD", reading.strip().lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


class TableBackend(PhoneticBackend):
    """Per-character lookup in a reading table."""

    def __init__(self, table: dict[str, str], name: str = "table") -> None:
        self._table = table
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._table)

    def syllables(self, text: str) -> list[str]:
        return [self._table.get(char, char) for char in text]


class PypinyinBackend(PhoneticBackend):
    """Backend delegating to the ``pypinyin`` package."""

    def __init__(self, module: Any) -> None:
        self._module = module

    @property
    def name(self) -> str:
        return "pypinyin"

    def syllables(self, text: str) -> list[str]:
        # errors=list keeps every non-Chinese character as its own syllable
        return self._module.lazy_pinyin(text, style=self._module.Style.NORMAL, errors=list)


class PhoneticSource(ABC):
    """Something that can produce a PhoneticBackend, possibly over the network."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def load(self) -> PhoneticBackend:
        """Load the backend.

        Raises:
            PhoneticSourceError: If the data is unavailable or malformed
        """
        ...


def parse_reading_table(data: Any) -> dict[str, str]:
    """Validate a downloaded reading table.

    Expected JSON shape (a reading may be a string or a list whose first
    element wins)::

        {"中": ["zhōng", "zhòng"], "文": "wén"}

    Entries with a key that is not a single character, or without a usable
    reading, are skipped.

    Raises:
        PhoneticSourceError: If the payload is not an object or has no usable entries
    """
    if not isinstance(data, dict):
        raise PhoneticSourceError(
            f"Invalid pinyin table: expected JSON object, got {type(data).__name__}"
        )

    table: dict[str, str] = {}
    skipped = 0
    for char, reading in data.items():
        if isinstance(reading, list):
            reading = reading[0] if reading else None
        if not isinstance(char, str) or len(char) != 1 or not isinstance(reading, str):
            skipped += 1
            continue
        normalized = _strip_tones(reading)
        if not normalized:
            skipped += 1
            continue
        table[char] = normalized

    if skipped:
        logger.debug(f"Skipped {skipped} malformed pinyin table entries")
    if not table:
        raise PhoneticSourceError("Pinyin table contains no usable entries")
    return table


class RemoteTableSource(PhoneticSource):
    """Fetch a pinyin reading table from a URL.

    Args:
        url: Location of the JSON table
        client: Optional shared AsyncClient; a short-lived one is created otherwise
        transport: Optional httpx transport for the short-lived client
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._client = client
        self._transport = transport

    @property
    def name(self) -> str:
        return "remote"

    async def _fetch(self) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(self.url)
        async with httpx.AsyncClient(timeout=DEFAULT_REMOTE_TIMEOUT, transport=self._transport) as client:
            return await client.get(self.url)

    async def load(self) -> PhoneticBackend:
        try:
            response = await self._fetch()
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            raise PhoneticSourceError(f"Timed out fetching pinyin table from {self.url}") from None
        except httpx.HTTPStatusError as e:
            raise PhoneticSourceError(
                f"Pinyin table request returned HTTP {e.response.status_code}"
            ) from None
        except httpx.RequestError as e:
            raise PhoneticSourceError(f"Failed to fetch pinyin table: {e}") from None
        except ValueError as e:
            raise PhoneticSourceError(f"Invalid JSON in pinyin table: {e}") from None

        table = parse_reading_table(data)
        logger.debug(f"Fetched pinyin table with {len(table)} characters from {self.url}")
        return TableBackend(table, name=self.name)


class PypinyinSource(PhoneticSource):
    """Use the locally installed ``pypinyin`` package."""

    @property
    def name(self) -> str:
        return "local"

    async def load(self) -> PhoneticBackend:
        try:
            import pypinyin
        except ImportError as e:
            raise PhoneticSourceError(f"pypinyin is not installed: {e}") from None
        return PypinyinBackend(pypinyin)


__all__ = [
    "PhoneticSourceError",
    "PhoneticBackend",
    "TableBackend",
    "PypinyinBackend",
    "PhoneticSource",
    "RemoteTableSource",
    "PypinyinSource",
    "parse_reading_table",
]
