"""
Keyword occurrences inside message text.

Compiles every enabled keyword and alias into a pattern, scans a text and
returns non-overlapping spans for highlighting or tooltips. Plain entries
match case-insensitively; ``regex`` entries are used as written. Entries
with an invalid pattern are skipped.
"""

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from ..models import KeywordSpan, WorldKeywordItem

logger = logging.getLogger("chatmark.keywords")


@dataclass(frozen=True)
class CompiledKeyword:
    """One searchable form (keyword or alias) of a dictionary entry."""
    item: WorldKeywordItem
    source: str
    pattern: re.Pattern[str]


def compile_keywords(dictionary: Sequence[WorldKeywordItem]) -> list[CompiledKeyword]:
    """Compile the enabled entries, highest ``sort_order`` first.

    Args:
        dictionary: World glossary entries

    Returns:
        Compiled forms, keyword before aliases within each entry
    """
    items = sorted((item for item in dictionary if item.is_enabled), key=lambda i: i.sort_order, reverse=True)

    compiled: list[CompiledKeyword] = []
    for item in items:
        for text in [item.keyword, *item.aliases]:
            text = (text or "").strip()
            if not text:
                continue
            try:
                if item.match_mode == "regex":
                    pattern = re.compile(text)
                else:
                    pattern = re.compile(re.escape(text), re.IGNORECASE)
            except re.error as e:
                logger.warning(f"Skipping invalid keyword pattern {text!r} ({item.keyword}): {e}")
                continue
            compiled.append(CompiledKeyword(item=item, source=text, pattern=pattern))
    return compiled


def find_keyword_spans(
    text: str,
    dictionary: Sequence[WorldKeywordItem] | Sequence[CompiledKeyword],
    deduplicate: bool = False,
) -> list[KeywordSpan]:
    """Find keyword occurrences in a text.

    Overlaps are resolved left to right: the earliest span wins, and among
    spans starting at the same offset the longest wins.

    Args:
        text: Message text to scan
        dictionary: Glossary entries, or forms already returned by compile_keywords
        deduplicate: Keep only the first occurrence of each entry

    Returns:
        Non-overlapping spans sorted by start offset

    Example:
        >>> items = [WorldKeywordItem(keyword="Fireball", aliases=["火球"])]
        >>> [(s.start, s.end, s.source) for s in find_keyword_spans("cast fireball! 火球!", items)]
        [(5, 13, 'Fireball'), (15, 17, '火球')]
    """
    if not text or not dictionary:
        return []

    if isinstance(dictionary[0], CompiledKeyword):
        compiled = list(dictionary)
    else:
        compiled = compile_keywords(dictionary)

    ranges: list[tuple[int, int, CompiledKeyword]] = []
    for entry in compiled:
        for match in entry.pattern.finditer(text):
            start, end = match.span()
            if start == end:
                continue
            ranges.append((start, end, entry))

    # Earliest first, longest first on ties; sort is stable so priority order breaks the rest
    ranges.sort(key=lambda r: (r[0], -r[1]))

    spans: list[KeywordSpan] = []
    seen: set[str | int] = set()
    cursor = -1
    for start, end, entry in ranges:
        if start < cursor:
            continue
        # A skipped duplicate still blocks the text it covers
        cursor = end
        key = entry.item.id or id(entry.item)
        if deduplicate and key in seen:
            continue
        seen.add(key)
        spans.append(KeywordSpan(start=start, end=end, source=entry.source, keyword=entry.item))
    return spans


__all__ = ["CompiledKeyword", "compile_keywords", "find_keyword_spans"]
