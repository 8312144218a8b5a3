"""
Data models for inline text annotation.

DiceMatch and KeywordSpan describe spans inside a source text,
WorldKeywordItem mirrors a glossary entry owned by the chat server, and
KeywordMatchResult is a ranked autocomplete hit.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class DiceKind(str, Enum):
    """How a dice expression was written in the text."""
    COMMAND = "command"
    BRACE = "brace"


class DiceMatch(BaseModel):
    """A recognized dice expression inside a text.

    Attributes:
        start: Offset of the first character of the match
        end: Offset one past the last character (half-open)
        source: The exact substring as typed
        normalized: Canonical formula handed to the dice evaluator
        kind: Shorthand command (".r 2d6") or brace formula ("{d20+3}")
    """
    model_config = {"frozen": True}

    start: int = Field(..., ge=0, description="Start offset (inclusive)")
    end: int = Field(..., ge=0, description="End offset (exclusive)")
    source: str = Field(..., description="Matched substring")
    normalized: str = Field(..., description="Canonical dice formula")
    kind: DiceKind = Field(..., description="command or brace")


class WorldKeywordItem(BaseModel):
    """A glossary entry of a world.

    Only ``keyword``, ``aliases`` and ``is_enabled`` drive query matching; the
    remaining fields come along from the server payload. Both snake_case and
    the server's camelCase keys are accepted.
    """
    model_config = {"populate_by_name": True}

    id: str = ""
    world_id: str = Field(default="", alias="worldId")
    keyword: str
    category: str = ""
    aliases: list[str] = Field(default_factory=list)
    match_mode: Literal["plain", "regex"] = Field(default="plain", alias="matchMode")
    description: str = ""
    description_format: Literal["plain", "rich"] = Field(default="plain", alias="descriptionFormat")
    display: Literal["standard", "minimal", "inherit"] = "inherit"
    sort_order: int = Field(default=0, alias="sortOrder")
    is_enabled: bool = Field(default=True, alias="isEnabled")


class MatchType(str, Enum):
    """Which tier of the keyword matcher produced a hit."""
    KEYWORD_EXACT = "keywordExact"
    KEYWORD_STARTS_WITH = "keywordStartsWith"
    KEYWORD_CONTAINS = "keywordContains"
    ALIAS_EXACT = "aliasExact"
    ALIAS_STARTS_WITH = "aliasStartsWith"
    ALIAS_CONTAINS = "aliasContains"
    PINYIN_INITIAL_EXACT = "pinyinInitialExact"
    PINYIN_INITIAL_STARTS_WITH = "pinyinInitialStartsWith"
    PINYIN_INITIAL_CONTAINS = "pinyinInitialContains"
    PINYIN_FULL_STARTS_WITH = "pinyinFullStartsWith"
    PINYIN_FULL_CONTAINS = "pinyinFullContains"


class KeywordMatchResult(BaseModel):
    """A ranked keyword hit for an autocomplete query."""
    keyword: WorldKeywordItem
    score: int
    match_type: MatchType


class KeywordSpan(BaseModel):
    """An occurrence of a keyword (or one of its aliases) inside a text."""
    model_config = {"frozen": True}

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    source: str = Field(..., description="Keyword or alias text that produced the hit")
    keyword: WorldKeywordItem


class Annotation(BaseModel):
    """Everything recognized in one piece of message text."""
    text: str
    dice: list[DiceMatch] = Field(default_factory=list)
    keywords: list[KeywordSpan] = Field(default_factory=list)
    hidden_roll: bool = False
