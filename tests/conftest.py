"""
Pytest configuration and fixtures for chatmark tests.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add src directory to Python path to allow importing chatmark
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from chatmark.phonetic import PhoneticProvider, set_phonetic_provider  # noqa: E402
from chatmark.phonetic.sources import (  # noqa: E402
    PhoneticBackend,
    PhoneticSource,
    PhoneticSourceError,
    TableBackend,
)


# Small pinyin table covering the characters used in the tests
PINYIN_TABLE = {
    "火": "huo",
    "球": "qiu",
    "术": "shu",
    "世": "shi",
    "界": "jie",
    "树": "shu",
    "龙": "long",
    "骑": "qi",
    "士": "shi",
    "魔": "mo",
    "法": "fa",
    "张": "zhang",
    "三": "san",
    "王": "wang",
    "国": "guo",
}


class StaticSource(PhoneticSource):
    """Test source returning a fixed table, counting how often it was asked.

    Args:
        table: Reading table for the produced backend
        delay: Seconds to sleep before answering
        fail: Raise PhoneticSourceError instead of answering
        label: Source name
    """

    def __init__(
        self,
        table: dict[str, str] | None = None,
        delay: float = 0.0,
        fail: bool = False,
        label: str = "static",
    ) -> None:
        self.table = PINYIN_TABLE if table is None else table
        self.delay = delay
        self.fail = fail
        self.label = label
        self.load_count = 0

    @property
    def name(self) -> str:
        return self.label

    async def load(self) -> PhoneticBackend:
        self.load_count += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise PhoneticSourceError(f"{self.label} unavailable")
        return TableBackend(dict(self.table), name=self.label)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_source():
    """Factory for StaticSource test doubles."""
    return StaticSource


@pytest.fixture
def loaded_provider() -> PhoneticProvider:
    """A provider that has already loaded the test pinyin table."""
    provider = PhoneticProvider([StaticSource()])
    assert asyncio.run(provider.ensure_loaded())
    return provider


@pytest.fixture
def unavailable_provider() -> PhoneticProvider:
    """A provider whose only source failed."""
    provider = PhoneticProvider([StaticSource(fail=True)])
    assert not asyncio.run(provider.ensure_loaded())
    return provider


@pytest.fixture(autouse=True)
def _isolate_default_provider():
    """Give every test a fresh, unloaded process-wide provider without sources."""
    set_phonetic_provider(PhoneticProvider([]))
    yield
    set_phonetic_provider(None)
