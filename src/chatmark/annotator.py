"""
TextAnnotator - single entry point for chat input annotation.

Editor overlays and autocomplete popups only talk to this class: it holds
a world glossary, the channel's default dice preference and a pinyin
provider, and forwards to the dice and keyword recognizers.
"""

import logging
from typing import Iterable

from .config import DEFAULT_KEYWORD_LIMIT, AnnotatorSettings
from .dice import ensure_default_dice_expr, is_hidden_roll_command, recognize_dice
from .keywords.matcher import KeywordMatcher
from .keywords.spans import CompiledKeyword, compile_keywords, find_keyword_spans
from .models import Annotation, DiceMatch, KeywordMatchResult, KeywordSpan, WorldKeywordItem
from .phonetic.provider import PhoneticProvider, ReadyVersion, get_phonetic_provider

logger = logging.getLogger("chatmark")


class TextAnnotator:
    """Recognizes dice expressions and glossary references in chat text.

    Usage:
        annotator = TextAnnotator(load_keywords(Path("glossary.yaml")), default_dice_expr="d100")
        annotator.recognize_dice(".r 3d")         # [DiceMatch(normalized="3d100", ...)]
        await annotator.ensure_phonetic_loaded()
        annotator.match_keywords("hqs")           # pinyin initials of 火球术

    Args:
        dictionary: World glossary entries
        default_dice_expr: Raw default-dice preference of the channel
        provider: Pinyin provider; defaults to the process-wide one
        keyword_limit: Default number of autocomplete results
    """

    def __init__(
        self,
        dictionary: Iterable[WorldKeywordItem] = (),
        default_dice_expr: str | None = None,
        provider: PhoneticProvider | None = None,
        keyword_limit: int = DEFAULT_KEYWORD_LIMIT,
    ) -> None:
        self._provider = provider
        self._matcher = KeywordMatcher(provider)
        self.default_dice_expr = ensure_default_dice_expr(default_dice_expr)
        self.keyword_limit = keyword_limit
        self._dictionary: list[WorldKeywordItem] = []
        self._compiled: list[CompiledKeyword] = []
        self.set_dictionary(dictionary)

    @classmethod
    def from_settings(
        cls,
        settings: AnnotatorSettings,
        dictionary: Iterable[WorldKeywordItem] = (),
        provider: PhoneticProvider | None = None,
    ) -> "TextAnnotator":
        """Create an annotator from settings; builds a dedicated provider unless one is given."""
        return cls(
            dictionary,
            default_dice_expr=settings.default_dice_expr,
            provider=provider or settings.build_provider(),
            keyword_limit=settings.keyword_limit,
        )

    @property
    def provider(self) -> PhoneticProvider:
        if self._provider is None:
            self._provider = get_phonetic_provider()
        return self._provider

    @property
    def ready_version(self) -> ReadyVersion:
        """Signal bumped when pinyin data becomes available; re-run matching on change."""
        return self.provider.ready_version

    @property
    def dictionary(self) -> list[WorldKeywordItem]:
        return list(self._dictionary)

    def set_dictionary(self, items: Iterable[WorldKeywordItem]) -> None:
        """Replace the glossary and recompile its highlight patterns."""
        self._dictionary = list(items)
        self._compiled = compile_keywords(self._dictionary)
        logger.debug(
            f"Glossary set: {len(self._dictionary)} entries, {len(self._compiled)} searchable forms"
        )

    async def ensure_phonetic_loaded(self) -> bool:
        """Load pinyin data; True iff it is available."""
        return await self.provider.ensure_loaded()

    def recognize_dice(self, text: str) -> list[DiceMatch]:
        return recognize_dice(text, self.default_dice_expr)

    def is_hidden_roll(self, text: str) -> bool:
        return is_hidden_roll_command(text)

    def match_keywords(self, query: str, limit: int | None = None) -> list[KeywordMatchResult]:
        """Rank glossary entries for an autocomplete query."""
        return self._matcher.match(query, self._dictionary, self.keyword_limit if limit is None else limit)

    def matches_text(self, query: str, text: str) -> bool:
        return self._matcher.matches_text(query, text)

    def find_keyword_spans(self, text: str, deduplicate: bool = False) -> list[KeywordSpan]:
        return find_keyword_spans(text, self._compiled, deduplicate=deduplicate)

    def annotate(self, text: str, deduplicate_keywords: bool = False) -> Annotation:
        """Recognize everything in one message text.

        Dice matches and keyword spans are computed independently; a keyword
        may appear inside a brace formula.
        """
        return Annotation(
            text=text,
            dice=self.recognize_dice(text),
            keywords=self.find_keyword_spans(text, deduplicate=deduplicate_keywords),
            hidden_roll=self.is_hidden_roll(text),
        )


__all__ = ["TextAnnotator"]
