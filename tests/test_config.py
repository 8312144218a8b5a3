"""
Tests for AnnotatorSettings.
"""

import logging

import pytest

from chatmark.config import AnnotatorSettings
from chatmark.keywords import match_keywords
from chatmark.models import WorldKeywordItem
from chatmark.phonetic import PhoneticState, get_phonetic_provider, set_phonetic_provider
from chatmark.phonetic.sources import PypinyinSource, RemoteTableSource

ENV_VARS = [
    "CHATMARK_DEFAULT_DICE",
    "CHATMARK_KEYWORD_LIMIT",
    "CHATMARK_PINYIN_URL",
    "CHATMARK_PINYIN_TIMEOUT",
    "CHATMARK_PINYIN_SOURCES",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestAnnotatorSettings:
    """Tests for settings defaults and validation."""

    def test_defaults(self) -> None:
        settings = AnnotatorSettings()
        assert settings.default_dice_expr == "d20"
        assert settings.keyword_limit == 5
        assert settings.pinyin_remote_url == ""
        assert settings.pinyin_timeout == 5.0
        assert settings.pinyin_sources == ["remote", "local"]

    def test_dice_expr_normalized(self) -> None:
        assert AnnotatorSettings(default_dice_expr="100").default_dice_expr == "d100"
        assert AnnotatorSettings(default_dice_expr="nonsense").default_dice_expr == "d20"

    def test_sources_from_string(self) -> None:
        settings = AnnotatorSettings(pinyin_sources=" Local , remote,, ")
        assert settings.pinyin_sources == ["local", "remote"]

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            AnnotatorSettings(pinyin_timeout=0)


class TestFromEnv:
    """Tests for environment loading."""

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("CHATMARK_DEFAULT_DICE", "D6")
        monkeypatch.setenv("CHATMARK_KEYWORD_LIMIT", "8")
        monkeypatch.setenv("CHATMARK_PINYIN_URL", " https://cdn.example.com/pinyin.json ")
        monkeypatch.setenv("CHATMARK_PINYIN_TIMEOUT", "1.5")
        monkeypatch.setenv("CHATMARK_PINYIN_SOURCES", "local")

        settings = AnnotatorSettings.from_env(load_env_file=False)

        assert settings.default_dice_expr == "d6"
        assert settings.keyword_limit == 8
        assert settings.pinyin_remote_url == "https://cdn.example.com/pinyin.json"
        assert settings.pinyin_timeout == 1.5
        assert settings.pinyin_sources == ["local"]

    def test_invalid_numbers_ignored(self, monkeypatch, caplog) -> None:
        monkeypatch.setenv("CHATMARK_KEYWORD_LIMIT", "many")

        with caplog.at_level(logging.WARNING, logger="chatmark"):
            settings = AnnotatorSettings.from_env(load_env_file=False)

        assert settings.keyword_limit == 5
        assert "CHATMARK_KEYWORD_LIMIT" in caplog.text

    @pytest.mark.parametrize("timeout", ["0", "-1"])
    def test_out_of_range_values_fall_back(self, monkeypatch, caplog, timeout) -> None:
        monkeypatch.setenv("CHATMARK_PINYIN_TIMEOUT", timeout)
        monkeypatch.setenv("CHATMARK_KEYWORD_LIMIT", "3")

        with caplog.at_level(logging.WARNING, logger="chatmark"):
            settings = AnnotatorSettings.from_env(load_env_file=False)

        assert settings.pinyin_timeout == 5.0
        assert settings.keyword_limit == 3
        assert "CHATMARK_PINYIN_TIMEOUT" in caplog.text

    def test_default_provider_survives_bad_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("CHATMARK_PINYIN_TIMEOUT", "0")
        monkeypatch.setenv("CHATMARK_PINYIN_SOURCES", "local")
        set_phonetic_provider(None)

        results = match_keywords("abc", [WorldKeywordItem(keyword="abc")])

        assert [r.score for r in results] == [100]
        assert get_phonetic_provider().state is PhoneticState.UNLOADED


class TestBuildProvider:
    """Tests for source construction."""

    def test_remote_then_local(self) -> None:
        settings = AnnotatorSettings(pinyin_remote_url="https://cdn.example.com/pinyin.json")
        sources = settings.build_sources()
        assert [type(s) for s in sources] == [RemoteTableSource, PypinyinSource]
        assert sources[0].url == "https://cdn.example.com/pinyin.json"

    def test_remote_skipped_without_url(self) -> None:
        sources = AnnotatorSettings().build_sources()
        assert [type(s) for s in sources] == [PypinyinSource]

    def test_unknown_source_skipped(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="chatmark"):
            sources = AnnotatorSettings(pinyin_sources=["cdn", "local"]).build_sources()
        assert [type(s) for s in sources] == [PypinyinSource]
        assert "Unknown pinyin source 'cdn'" in caplog.text

    def test_build_provider(self) -> None:
        provider = AnnotatorSettings(pinyin_timeout=2.0).build_provider()
        assert not provider.is_loaded()
