"""
Dice expression recognition for chat text.

Finds two kinds of inline dice expressions:

- Shorthand commands such as ``.r 2d6``, ``。rh`` or ``.rd+3``, introduced by
  a half-width or full-width period.
- Brace formulas such as ``{d20+5}``.

Brace formulas are scanned first and win over any command that would
overlap them. Every match carries a normalized formula for the downstream
evaluator; the formula itself is not validated here.
"""

import logging
import re

from .models import DiceKind, DiceMatch

logger = logging.getLogger("chatmark.dice")

DEFAULT_DICE_EXPR = "d20"

_MARKERS = ".。．｡"

COMMAND_PATTERN = re.compile(r"[.。．｡]rh?[^\s　,，。！？!?;；:：]*", re.IGNORECASE)
BRACE_PATTERN = re.compile(r"\{([^{}]+)\}")
HIDDEN_PATTERN = re.compile(r"[.。．｡]rh", re.IGNORECASE)

# A "d" with no die size, optionally preceded by a count ("d", "3d", "2d+1").
# ASCII word boundaries so CJK text right before the "d" still counts as a boundary.
INCOMPLETE_PATTERN = re.compile(r"(\b\d*)d\b", re.IGNORECASE | re.ASCII)

_SYMBOL_TRANSLATION = str.maketrans({
    "×": "*",
    "·": "*",
    "，": ",",
    "（": "(",
    "）": ")",
})


def ensure_default_dice_expr(value: str | None = None) -> str:
    """Normalize a default-dice preference into ``d<sides>``.

    Accepts ``d<N>`` or a bare positive integer ``N``. Anything else,
    including an empty value, falls back to ``d20``.

    Example:
        >>> ensure_default_dice_expr("D100")
        'd100'
        >>> ensure_default_dice_expr("6")
        'd6'
        >>> ensure_default_dice_expr("2d6")
        'd20'
    """
    trimmed = (value or "").strip().lower()
    if not trimmed:
        return DEFAULT_DICE_EXPR
    if trimmed.startswith("d"):
        sides = trimmed[1:]
        if sides.isascii() and sides.isdigit() and int(sides) > 0:
            return f"d{sides}"
    elif trimmed.isascii() and trimmed.isdigit():
        return f"d{trimmed}"
    return DEFAULT_DICE_EXPR


def is_valid_default_dice_expr(value: str) -> bool:
    """Return True if ``value`` is already a canonical default dice expression."""
    return ensure_default_dice_expr(value) == value.lower()


def normalize_formula(
    raw: str,
    kind: DiceKind = DiceKind.BRACE,
    default_expr: str = DEFAULT_DICE_EXPR,
) -> str:
    """Turn the text of a match into a canonical dice formula.

    For commands the marker and the ``r``/``rh`` token are stripped first.
    An empty remainder becomes ``default_expr``, full-width symbols become
    ASCII, and a bare ``d`` gets the default die size.

    Args:
        raw: Command text (``.rh d6``) or brace content (``d20+1``)
        kind: How the text was matched
        default_expr: Already-normalized default formula (``d<sides>``)

    Returns:
        Lower-case formula, e.g. ``"2d20+1"``
    """
    candidate = raw or ""
    if kind is DiceKind.COMMAND:
        candidate = candidate.strip()
        if candidate and candidate[0] in _MARKERS:
            candidate = candidate[1:]
        if candidate[:2].lower() == "rh":
            candidate = candidate[2:]
        elif candidate[:1] in ("r", "R"):
            candidate = candidate[1:]

    normalized = candidate.strip()
    if not normalized:
        normalized = default_expr
    normalized = normalized.lower().translate(_SYMBOL_TRANSLATION)

    sides = default_expr[1:]
    if sides:
        normalized = INCOMPLETE_PATTERN.sub(lambda m: f"{m.group(1)}d{sides}", normalized)

    if normalized in ("r", "rd"):
        normalized = default_expr
    return normalized


def _range_overlaps(used: list[bool], start: int, end: int) -> bool:
    return any(used[max(0, start):min(len(used), end)])


def recognize_dice(text: str, default_expr: str | None = None) -> list[DiceMatch]:
    """Find all dice expressions in a text.

    Args:
        text: Raw message text
        default_expr: Per-channel default dice preference (raw, e.g. "d100" or "6")

    Returns:
        Non-overlapping matches sorted by start offset

    Example:
        >>> [(m.source, m.normalized) for m in recognize_dice("攻击 .r 和 {2d6+1}")]
        [('.r', 'd20'), ('{2d6+1}', '2d6+1')]
    """
    if not text:
        return []

    normalized_default = ensure_default_dice_expr(default_expr)
    used = [False] * len(text)
    matches: list[DiceMatch] = []

    def push_match(start: int, end: int, source: str, inner: str, kind: DiceKind) -> None:
        normalized = normalize_formula(inner, kind, normalized_default)
        matches.append(DiceMatch(start=start, end=end, source=source, normalized=normalized, kind=kind))
        for i in range(start, min(end, len(used))):
            used[i] = True

    for match in BRACE_PATTERN.finditer(text):
        start, end = match.span()
        if start == end:
            continue
        push_match(start, end, match.group(0), match.group(1), DiceKind.BRACE)

    for match in COMMAND_PATTERN.finditer(text):
        start, end = match.span()
        if start == end:
            continue
        if _range_overlaps(used, start, end):
            logger.debug(f"Dropping command {match.group(0)!r} overlapping a brace formula")
            continue
        push_match(start, end, match.group(0), match.group(0), DiceKind.COMMAND)

    matches.sort(key=lambda m: m.start)
    return matches


def is_hidden_roll_command(text: str) -> bool:
    """Return True if the text contains a hidden roll command (``.rh``)."""
    return bool(text) and HIDDEN_PATTERN.search(text) is not None


__all__ = [
    "DEFAULT_DICE_EXPR",
    "ensure_default_dice_expr",
    "is_valid_default_dice_expr",
    "normalize_formula",
    "recognize_dice",
    "is_hidden_roll_command",
]
