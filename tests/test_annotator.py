"""
Tests for the TextAnnotator facade.
"""

import pytest

from chatmark import AnnotatorSettings, TextAnnotator
from chatmark.models import DiceKind, MatchType, WorldKeywordItem
from chatmark.phonetic import PhoneticProvider, get_phonetic_provider


@pytest.fixture
def glossary() -> list[WorldKeywordItem]:
    return [
        WorldKeywordItem(id="kw-1", keyword="火球术", aliases=["Fireball"]),
        WorldKeywordItem(id="kw-2", keyword="世界树"),
        WorldKeywordItem(id="kw-3", keyword="龙骑士", is_enabled=False),
    ]


class TestAnnotate:
    """Tests for whole-message annotation."""

    def test_dice_and_keywords(self, glossary) -> None:
        annotator = TextAnnotator(glossary, default_dice_expr="d100", provider=PhoneticProvider([]))
        text = "我对世界树用 {d20+5}，然后 .r3d"

        annotation = annotator.annotate(text)

        assert annotation.text == text
        assert [(d.source, d.normalized, d.kind) for d in annotation.dice] == [
            ("{d20+5}", "d20+5", DiceKind.BRACE),
            (".r3d", "3d100", DiceKind.COMMAND),
        ]
        assert [(k.start, k.end, k.keyword.id) for k in annotation.keywords] == [(2, 5, "kw-2")]
        assert annotation.hidden_roll is False

    def test_hidden_roll(self) -> None:
        annotation = TextAnnotator(provider=PhoneticProvider([])).annotate("。rh 偷偷")
        assert annotation.hidden_roll is True
        assert annotation.dice[0].normalized == "d20"

    def test_keyword_inside_brace(self, glossary) -> None:
        annotation = TextAnnotator(glossary, provider=PhoneticProvider([])).annotate("{火球术}")
        assert [d.source for d in annotation.dice] == ["{火球术}"]
        assert [k.source for k in annotation.keywords] == ["火球术"]

    def test_deduplicate_keywords(self, glossary) -> None:
        annotator = TextAnnotator(glossary, provider=PhoneticProvider([]))
        assert len(annotator.annotate("火球术 fireball").keywords) == 2
        assert len(annotator.annotate("火球术 fireball", deduplicate_keywords=True).keywords) == 1

    def test_empty_text(self, glossary) -> None:
        annotation = TextAnnotator(glossary, provider=PhoneticProvider([])).annotate("")
        assert annotation.dice == []
        assert annotation.keywords == []
        assert annotation.hidden_roll is False


class TestDictionary:
    """Tests for glossary replacement."""

    def test_invalid_default_dice_falls_back(self) -> None:
        assert TextAnnotator(default_dice_expr="2d6").default_dice_expr == "d20"
        assert TextAnnotator(default_dice_expr="8").default_dice_expr == "d8"

    def test_set_dictionary_recompiles(self, glossary) -> None:
        annotator = TextAnnotator(provider=PhoneticProvider([]))
        assert annotator.find_keyword_spans("世界树") == []

        annotator.set_dictionary(glossary)

        assert len(annotator.dictionary) == 3
        assert [s.keyword.id for s in annotator.find_keyword_spans("世界树")] == ["kw-2"]

    def test_dictionary_is_a_copy(self, glossary) -> None:
        annotator = TextAnnotator(glossary)
        annotator.dictionary.clear()
        assert len(annotator.dictionary) == 3


class TestKeywordMatching:
    """Tests for autocomplete forwarding."""

    def test_limit_default_and_override(self) -> None:
        items = [WorldKeywordItem(keyword=f"rune{i}") for i in range(8)]
        annotator = TextAnnotator(items, provider=PhoneticProvider([]), keyword_limit=4)

        assert len(annotator.match_keywords("rune")) == 4
        assert len(annotator.match_keywords("rune", limit=2)) == 2

    def test_disabled_entries_skipped(self, glossary) -> None:
        annotator = TextAnnotator(glossary, provider=PhoneticProvider([]))
        assert annotator.match_keywords("龙骑士") == []

    @pytest.mark.anyio
    async def test_pinyin_after_load(self, glossary, make_source) -> None:
        provider = PhoneticProvider([make_source()])
        annotator = TextAnnotator(glossary, provider=provider)
        seen: list[int] = []
        annotator.ready_version.subscribe(seen.append)

        assert annotator.match_keywords("hqs") == []
        assert await annotator.ensure_phonetic_loaded()

        results = annotator.match_keywords("hqs")
        assert [r.keyword.id for r in results] == ["kw-1"]
        assert results[0].match_type is MatchType.PINYIN_INITIAL_EXACT
        assert seen == [1]
        assert annotator.matches_text("sjs", "世界树")

    def test_uses_process_wide_provider_by_default(self) -> None:
        assert TextAnnotator().provider is get_phonetic_provider()


class TestFromSettings:
    """Tests for building an annotator from settings."""

    def test_applies_settings(self, make_source) -> None:
        settings = AnnotatorSettings(default_dice_expr="d6", keyword_limit=2)
        provider = PhoneticProvider([make_source()])

        annotator = TextAnnotator.from_settings(settings, provider=provider)

        assert annotator.default_dice_expr == "d6"
        assert annotator.keyword_limit == 2
        assert annotator.provider is provider

    def test_builds_dedicated_provider(self) -> None:
        annotator = TextAnnotator.from_settings(AnnotatorSettings(pinyin_sources="local"))
        assert annotator.provider is not get_phonetic_provider()
        assert not annotator.provider.is_loaded()
