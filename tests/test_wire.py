"""Tests for the camelCase wire models and drift-tolerant LLM output parsing."""

from pydantic import Field

from scatterbrain.core.wire import LenientWireModel, WireModel
from scatterbrain.generator.models import ResearchContext
from scatterbrain.pipeline.models import AnalysisOutput, ResearchOutput


class Card(LenientWireModel):
    title: str = ""
    score: str = ""


class Deck(LenientWireModel):
    name: str = "untitled"
    tags: list[str] = Field(default_factory=list)
    cards: list[Card] = Field(default_factory=list)
    groups: dict[str, list[str]] = Field(default_factory=dict)
    lead: Card = Field(default_factory=Card)


class TestWireModel:
    def test_camel_case_round_trip(self):
        class Item(WireModel):
            display_name: str = ""

        item = Item.model_validate({"displayName": "x"})
        assert item.display_name == "x"
        assert item.to_wire() == {"displayName": "x"}


class TestLenientWireModel:
    def test_numbers_become_strings(self):
        deck = Deck.model_validate({"name": 42, "cards": [{"title": "a", "score": 9}]})
        assert deck.name == "42"
        assert deck.cards[0].score == "9"

    def test_invalid_list_items_are_dropped(self):
        deck = Deck.model_validate({"cards": [{"title": "a"}, "loose text", None]})
        assert [card.title for card in deck.cards] == ["a"]

    def test_objects_in_string_lists_are_flattened(self):
        deck = Deck.model_validate(
            {"tags": ["plain", {"name": "Dr. Lee", "view": "grids first"}, {}, 3]}
        )
        assert deck.tags == ["plain", "Dr. Lee - grids first", "3"]

    def test_mistyped_field_takes_default(self):
        deck = Deck.model_validate(
            {"name": ["x"], "groups": ["ideas", "concerns"], "lead": "a string"}
        )
        assert deck.name == "untitled"
        assert deck.groups == {}
        assert deck.lead == Card()

    def test_well_typed_input_is_unchanged(self):
        data = {"name": "n", "tags": ["t"], "groups": {"g": ["a"]}, "lead": {"title": "L"}}
        deck = Deck.model_validate(data)
        assert deck.groups == {"g": ["a"]}
        assert deck.lead.title == "L"


class TestStageModelDrift:
    def test_research_categories_as_list(self):
        research = ResearchOutput.model_validate(
            {"topics": ["remote work"], "categories": ["ideas", "concerns"]}
        )
        assert research.topics == ["remote work"]
        assert research.categories == {}
        assert not research.is_fallback

    def test_numeric_importance(self):
        analysis = AnalysisOutput.model_validate(
            {"insights": [{"insight": "Trust gap", "importance": 9}], "synthesis": "s"}
        )
        assert analysis.insights[0].importance == "9"
        assert analysis.synthesis == "s"

    def test_expert_perspectives_as_objects(self):
        context = ResearchContext.model_validate(
            {
                "domain": "Transportation energy",
                "expertPerspectives": [{"name": "Grid analysts", "focus": "peak load"}],
            }
        )
        assert context.domain == "Transportation energy"
        assert context.expert_perspectives == ["Grid analysts - peak load"]
