"""
World glossary matching: ranked autocomplete lookup, loose text filtering
and in-text keyword spans.
"""

from .loader import load_keywords, parse_keywords
from .matcher import (
    ALIAS_PINYIN_PENALTY,
    DEFAULT_MATCH_LIMIT,
    SCORE_MAP,
    KeywordMatcher,
    match_keywords,
    matches_text,
    sanitize_query,
)
from .spans import CompiledKeyword, compile_keywords, find_keyword_spans

__all__ = [
    "ALIAS_PINYIN_PENALTY",
    "DEFAULT_MATCH_LIMIT",
    "SCORE_MAP",
    "KeywordMatcher",
    "match_keywords",
    "matches_text",
    "sanitize_query",
    "CompiledKeyword",
    "compile_keywords",
    "find_keyword_spans",
    "load_keywords",
    "parse_keywords",
]
