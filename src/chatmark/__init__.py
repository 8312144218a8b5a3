"""
chatmark - inline annotation of chat text.

Recognizes dice expressions (".r 2d6", "{d20+3}") and world glossary
references (by keyword, alias or pinyin) in free-form chat input.
"""

from .annotator import TextAnnotator
from .config import AnnotatorSettings
from .dice import (
    DEFAULT_DICE_EXPR,
    ensure_default_dice_expr,
    is_hidden_roll_command,
    is_valid_default_dice_expr,
    normalize_formula,
    recognize_dice,
)
from .keywords import find_keyword_spans, load_keywords, match_keywords, matches_text
from .models import (
    Annotation,
    DiceKind,
    DiceMatch,
    KeywordMatchResult,
    KeywordSpan,
    MatchType,
    WorldKeywordItem,
)
from .phonetic import (
    PhoneticProvider,
    PhoneticState,
    ensure_phonetic_loaded,
    get_phonetic_provider,
    phonetic_ready_version,
    set_phonetic_provider,
)

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("chatmark")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable

__all__ = [
    "TextAnnotator",
    "AnnotatorSettings",
    "DEFAULT_DICE_EXPR",
    "ensure_default_dice_expr",
    "is_hidden_roll_command",
    "is_valid_default_dice_expr",
    "normalize_formula",
    "recognize_dice",
    "find_keyword_spans",
    "load_keywords",
    "match_keywords",
    "matches_text",
    "Annotation",
    "DiceKind",
    "DiceMatch",
    "KeywordMatchResult",
    "KeywordSpan",
    "MatchType",
    "WorldKeywordItem",
    "PhoneticProvider",
    "PhoneticState",
    "ensure_phonetic_loaded",
    "get_phonetic_provider",
    "phonetic_ready_version",
    "set_phonetic_provider",
]
