"""
Load a world glossary from a YAML or JSON export.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..models import WorldKeywordItem

logger = logging.getLogger("chatmark.keywords")


def parse_keywords(data: Any) -> list[WorldKeywordItem]:
    """Validate raw glossary data into WorldKeywordItem objects.

    Accepts either a bare list of entries or a mapping with a ``keywords``
    (or server-style ``items``) list. Entries that fail validation are
    skipped with a warning.

    Raises:
        ValueError: If no entry list can be found
    """
    if isinstance(data, dict):
        entries = data.get("keywords", data.get("items"))
    else:
        entries = data

    if not isinstance(entries, list):
        raise ValueError("Glossary data must be a list or contain a 'keywords' list")

    items: list[WorldKeywordItem] = []
    for index, raw in enumerate(entries):
        if isinstance(raw, str):
            raw = {"keyword": raw}
        try:
            items.append(WorldKeywordItem.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping glossary entry #{index}: {e.error_count()} validation error(s)")
    return items


def load_keywords(path: Path) -> list[WorldKeywordItem]:
    """Load glossary entries from a YAML or JSON file.

    Expected format:
        keywords:
          - keyword: 火球术
            aliases: [Fireball, 火球]
          - keyword: 世界树
            isEnabled: false

    JSON is a subset of YAML, so both are read with the YAML parser.

    Args:
        path: Path to the file

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the file is malformed
        ValueError: If no entry list can be found
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    items = parse_keywords(data)
    logger.debug(f"Loaded {len(items)} glossary entries from {path}")
    return items


__all__ = ["parse_keywords", "load_keywords"]
