"""
Ranked keyword lookup for autocomplete.

Each enabled dictionary entry is tested against an ordered list of tiers
(keyword, alias, then pinyin); the first tier that matches decides the
entry's score. Pinyin tiers only take part once the phonetic provider has
loaded its data. Without it the matcher still answers from the text tiers.
"""

import logging
import re
from typing import Callable, Sequence

from ..models import KeywordMatchResult, MatchType, WorldKeywordItem
from ..phonetic.provider import PhoneticProvider, get_phonetic_provider

logger = logging.getLogger("chatmark.keywords")

DEFAULT_MATCH_LIMIT = 5

SCORE_MAP: dict[MatchType, int] = {
    MatchType.KEYWORD_EXACT: 100,
    MatchType.KEYWORD_STARTS_WITH: 90,
    MatchType.KEYWORD_CONTAINS: 80,
    MatchType.ALIAS_EXACT: 70,
    MatchType.ALIAS_STARTS_WITH: 65,
    MatchType.ALIAS_CONTAINS: 60,
    MatchType.PINYIN_INITIAL_EXACT: 50,
    MatchType.PINYIN_INITIAL_STARTS_WITH: 40,
    MatchType.PINYIN_INITIAL_CONTAINS: 30,
    MatchType.PINYIN_FULL_STARTS_WITH: 25,
    MatchType.PINYIN_FULL_CONTAINS: 20,
}

# Pinyin hits on an alias rank just below the same hit on the keyword
ALIAS_PINYIN_PENALTY = 5

# ASCII and full-width punctuation that input methods tend to insert around a query
_QUERY_PUNCTUATION = re.compile(
    r"""["“”'‘’()（）\[\]【】{}《》<>,.，。!！?？;；:：、·`~@#$%^&*+=|\\/\-_]"""
)

# A tier check returns (match type, score) or None
TierCheck = Callable[[], "tuple[MatchType, int] | None"]


def sanitize_query(query: str) -> str:
    """Remove punctuation from a query, keeping letters, digits, CJK and spaces.

    Example:
        >>> sanitize_query("【火球术】")
        '火球术'
    """
    return _QUERY_PUNCTUATION.sub("", query)


def _first_in(
    candidates: Sequence[str],
    query: str,
    match_type: MatchType,
    test: Callable[[str, str], bool],
    penalty: int = 0,
) -> "tuple[MatchType, int] | None":
    for candidate in candidates:
        if candidate and test(candidate, query):
            return match_type, max(SCORE_MAP[match_type] - penalty, 0)
    return None


def _is_exact(candidate: str, query: str) -> bool:
    return candidate == query


def _starts_with(candidate: str, query: str) -> bool:
    return candidate.startswith(query)


def _contains(candidate: str, query: str) -> bool:
    return query in candidate


class KeywordMatcher:
    """Scores dictionary entries against a query.

    Args:
        provider: Pinyin provider; defaults to the process-wide one.
    """

    def __init__(self, provider: PhoneticProvider | None = None) -> None:
        self._provider = provider

    @property
    def provider(self) -> PhoneticProvider:
        if self._provider is None:
            self._provider = get_phonetic_provider()
        return self._provider

    def _tiers(self, query: str, item: WorldKeywordItem) -> list[TierCheck]:
        """Build the ordered tier checks for one entry.

        Text tiers compare lower-cased strings. Pinyin initials are compared
        against the upper-cased query, full pinyin against the lower-cased one.
        """
        query_lower = query.lower()
        query_upper = query.upper()
        keyword = [item.keyword.lower()]
        aliases = [alias.lower() for alias in item.aliases]

        tiers: list[TierCheck] = [
            lambda: _first_in(keyword, query_lower, MatchType.KEYWORD_EXACT, _is_exact),
            lambda: _first_in(keyword, query_lower, MatchType.KEYWORD_STARTS_WITH, _starts_with),
            lambda: _first_in(keyword, query_lower, MatchType.KEYWORD_CONTAINS, _contains),
            lambda: _first_in(aliases, query_lower, MatchType.ALIAS_EXACT, _is_exact),
            lambda: _first_in(aliases, query_lower, MatchType.ALIAS_STARTS_WITH, _starts_with),
            lambda: _first_in(aliases, query_lower, MatchType.ALIAS_CONTAINS, _contains),
        ]

        provider = self.provider
        if not provider.is_loaded():
            return tiers

        tiers.extend(self._pinyin_tiers([item.keyword], query_upper, query_lower, 0))
        # Aliases one at a time: every pinyin tier of an alias before the next alias
        for alias in item.aliases:
            tiers.extend(self._pinyin_tiers([alias], query_upper, query_lower, ALIAS_PINYIN_PENALTY))
        return tiers

    def _pinyin_tiers(
        self,
        sources: Sequence[str],
        query_upper: str,
        query_lower: str,
        penalty: int,
    ) -> list[TierCheck]:
        provider = self.provider

        def initials() -> list[str]:
            return [provider.initials(text) for text in sources]

        def full() -> list[str]:
            return [provider.full(text) for text in sources]

        return [
            lambda: _first_in(initials(), query_upper, MatchType.PINYIN_INITIAL_EXACT, _is_exact, penalty),
            lambda: _first_in(initials(), query_upper, MatchType.PINYIN_INITIAL_STARTS_WITH, _starts_with, penalty),
            lambda: _first_in(initials(), query_upper, MatchType.PINYIN_INITIAL_CONTAINS, _contains, penalty),
            lambda: _first_in(full(), query_lower, MatchType.PINYIN_FULL_STARTS_WITH, _starts_with, penalty),
            lambda: _first_in(full(), query_lower, MatchType.PINYIN_FULL_CONTAINS, _contains, penalty),
        ]

    def match_one(self, query: str, item: WorldKeywordItem) -> KeywordMatchResult | None:
        """Score a single entry; None if disabled or no tier matches.

        ``query`` is expected to be sanitized already.
        """
        if not item.is_enabled or not query:
            return None

        for check in self._tiers(query, item):
            hit = check()
            if hit is not None:
                match_type, score = hit
                return KeywordMatchResult(keyword=item, score=score, match_type=match_type)
        return None

    def match(
        self,
        query: str,
        dictionary: Sequence[WorldKeywordItem],
        limit: int = DEFAULT_MATCH_LIMIT,
    ) -> list[KeywordMatchResult]:
        """Rank dictionary entries for a query.

        Args:
            query: Raw query text; punctuation is stripped first
            dictionary: World glossary entries (disabled ones are ignored)
            limit: Maximum number of results; non-positive yields none

        Returns:
            Results sorted by score, dictionary order kept among equal scores
        """
        if not query or not dictionary or limit <= 0:
            return []

        query = sanitize_query(query)
        if not query:
            return []

        results: list[KeywordMatchResult] = []
        for item in dictionary:
            result = self.match_one(query, item)
            if result is not None:
                results.append(result)

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:limit]

    def matches_text(self, query: str, text: str) -> bool:
        """Loose containment check for search-as-you-type filters.

        An empty query matches everything; a non-empty query never matches
        empty text. Falls back to pinyin initials and full pinyin once loaded,
        and kicks off a background load otherwise.
        """
        provider = self.provider
        if not provider.is_loaded():
            provider.request_load()

        if not query or not text:
            return not query

        query_lower = query.lower()
        if query_lower in text.lower():
            return True

        if provider.is_loaded():
            initials = provider.initials(text)
            if initials and query.upper() in initials:
                return True
            full = provider.full(text)
            if full and query_lower in full:
                return True

        return False


def match_keywords(
    query: str,
    dictionary: Sequence[WorldKeywordItem],
    limit: int = DEFAULT_MATCH_LIMIT,
    provider: PhoneticProvider | None = None,
) -> list[KeywordMatchResult]:
    """Rank dictionary entries for ``query``. See KeywordMatcher.match."""
    return KeywordMatcher(provider).match(query, dictionary, limit)


def matches_text(query: str, text: str, provider: PhoneticProvider | None = None) -> bool:
    """Loose containment check of ``query`` in ``text``. See KeywordMatcher.matches_text."""
    return KeywordMatcher(provider).matches_text(query, text)


__all__ = [
    "DEFAULT_MATCH_LIMIT",
    "SCORE_MAP",
    "ALIAS_PINYIN_PENALTY",
    "KeywordMatcher",
    "sanitize_query",
    "match_keywords",
    "matches_text",
]
