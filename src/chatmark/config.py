"""
Runtime settings for the annotation engine.

Settings come from environment variables (optionally loaded from a .env
file):

    CHATMARK_DEFAULT_DICE     default dice formula, e.g. "d100" or "6" (default d20)
    CHATMARK_KEYWORD_LIMIT    autocomplete result limit (default 5)
    CHATMARK_PINYIN_URL       URL of a JSON pinyin table (remote source disabled if empty)
    CHATMARK_PINYIN_TIMEOUT   seconds allowed per pinyin source (default 5.0)
    CHATMARK_PINYIN_SOURCES   source order, comma-separated (default "remote,local")
"""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .dice import DEFAULT_DICE_EXPR, ensure_default_dice_expr
from .phonetic.provider import DEFAULT_LOAD_TIMEOUT, PhoneticProvider
from .phonetic.sources import PhoneticSource, PypinyinSource, RemoteTableSource

logger = logging.getLogger("chatmark")

DEFAULT_KEYWORD_LIMIT = 5

# (environment variable, settings field, conversion)
_ENV_FIELDS = (
    ("CHATMARK_DEFAULT_DICE", "default_dice_expr", str),
    ("CHATMARK_PINYIN_URL", "pinyin_remote_url", str.strip),
    ("CHATMARK_PINYIN_SOURCES", "pinyin_sources", str),
    ("CHATMARK_KEYWORD_LIMIT", "keyword_limit", int),
    ("CHATMARK_PINYIN_TIMEOUT", "pinyin_timeout", float),
)


class AnnotatorSettings(BaseModel):
    """Configuration for TextAnnotator and the pinyin provider."""
    default_dice_expr: str = Field(default=DEFAULT_DICE_EXPR, description="Default dice formula (d<sides>)")
    keyword_limit: int = Field(default=DEFAULT_KEYWORD_LIMIT, description="Autocomplete result limit")
    pinyin_remote_url: str = Field(default="", description="JSON pinyin table URL")
    pinyin_timeout: float = Field(default=DEFAULT_LOAD_TIMEOUT, gt=0, description="Seconds per pinyin source")
    pinyin_sources: list[str] = Field(
        default_factory=lambda: ["remote", "local"],
        description="Pinyin source names in priority order",
    )

    @field_validator("default_dice_expr", mode="before")
    @classmethod
    def _normalize_dice(cls, value: str | None) -> str:
        return ensure_default_dice_expr(value)

    @field_validator("pinyin_sources", mode="before")
    @classmethod
    def _split_sources(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            value = value.split(",")
        return [name.strip().lower() for name in value if name and name.strip()]

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "AnnotatorSettings":
        """Build settings from CHATMARK_* environment variables.

        Args:
            load_env_file: Load a .env file into the environment first.
        """
        if load_env_file:
            load_dotenv()

        data: dict[str, object] = {}
        env_names: dict[str, str] = {}
        for env_name, field_name, convert in _ENV_FIELDS:
            value = os.getenv(env_name)
            if value is None:
                continue
            try:
                data[field_name] = convert(value)
                env_names[field_name] = env_name
            except ValueError:
                logger.warning(f"Ignoring invalid {env_name}={value!r}")

        try:
            return cls(**data)
        except ValidationError as e:
            invalid = {error["loc"][0] for error in e.errors() if error["loc"]}

        # Values that convert but fail validation (e.g. a zero timeout) fall back to defaults
        for field_name in sorted(invalid):
            value = data.pop(field_name, None)
            logger.warning(f"Ignoring invalid {env_names.get(field_name, field_name)}={value!r}")
        return cls(**data)

    def build_sources(self) -> list[PhoneticSource]:
        """Instantiate pinyin sources in the configured order."""
        sources: list[PhoneticSource] = []
        for name in self.pinyin_sources:
            if name == "remote":
                if self.pinyin_remote_url:
                    sources.append(RemoteTableSource(self.pinyin_remote_url))
                else:
                    logger.debug("No CHATMARK_PINYIN_URL set, skipping remote pinyin source")
            elif name == "local":
                sources.append(PypinyinSource())
            else:
                logger.warning(f"Unknown pinyin source '{name}', skipping")
        return sources

    def build_provider(self) -> PhoneticProvider:
        """Create a PhoneticProvider from these settings."""
        return PhoneticProvider(self.build_sources(), timeout=self.pinyin_timeout)


__all__ = ["AnnotatorSettings", "DEFAULT_KEYWORD_LIMIT"]
