"""Tests for the deterministic outfit matcher."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from wardrobe_share.recommender.matching import (
    is_color_coordinated,
    recommend_outfit,
)

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


@dataclass
class Item:
    id: str
    name: str
    type: str | None
    color: str | None = None
    occasion: str | None = None
    last_worn: datetime | None = None


def test_red_shirt_blue_jeans_casual() -> None:
    garments = [
        Item("g1", "RedShirt", "shirt", color="red", occasion="casual"),
        Item("g2", "BlueJeans", "jeans", color="blue", occasion="casual"),
        Item("g3", "BlackJacket", "jacket", color="black", occasion="formal"),
    ]

    outfit = recommend_outfit(garments, "casual")

    assert outfit is not None
    assert outfit.top.id == "g1"
    assert outfit.bottom.id == "g2"
    assert outfit.outerwear is None
    assert outfit.shoes is None
    assert outfit.accessories == []
    assert outfit.confidence == 90
    assert outfit.reasoning.startswith("Selected RedShirt and BlueJeans for a complete casual look")


def test_layer_occasion_adds_outerwear() -> None:
    garments = [
        Item("g1", "Shirt", "shirt", color="white"),
        Item("g2", "Trousers", "trousers", color="gray"),
        Item("g3", "Blazer", "blazer", color="navy"),
    ]

    outfit = recommend_outfit(garments, "work")

    assert outfit is not None
    assert outfit.outerwear.id == "g3"
    assert outfit.confidence == 100
    assert outfit.garment_ids == ["g1", "g2", "g3"]


def test_missing_bottom_means_no_recommendation() -> None:
    garments = [
        Item("g1", "Shirt", "shirt"),
        Item("g2", "Sneakers", "sneakers"),
    ]

    assert recommend_outfit(garments, "casual") is None


def test_unknown_types_are_ignored() -> None:
    garments = [
        Item("g1", "Shirt", "shirt"),
        Item("g2", "Umbrella", "umbrella"),
        Item("g3", "Untyped", None),
    ]

    assert recommend_outfit(garments, "casual") is None


def test_occasion_match_wins_over_unset_occasion() -> None:
    garments = [
        Item("a", "Plain tee", "t-shirt"),
        Item("b", "Party top", "top", occasion="party"),
        Item("c", "Jeans", "jeans"),
    ]

    outfit = recommend_outfit(garments, "party")

    assert outfit.top.id == "b"


def test_category_falls_back_when_nothing_suits_occasion() -> None:
    garments = [
        Item("a", "Gym tank", "tank", occasion="sport"),
        Item("b", "Suit pants", "pants", occasion="formal"),
    ]

    outfit = recommend_outfit(garments, "date")

    assert outfit is not None
    assert (outfit.top.id, outfit.bottom.id) == ("a", "b")


def test_never_worn_then_least_recently_worn() -> None:
    garments = [
        Item("recent", "Recent", "shirt", last_worn=NOW),
        Item("old", "Old", "shirt", last_worn=NOW - timedelta(days=30)),
        Item("jeans-worn", "Worn jeans", "jeans", last_worn=NOW - timedelta(days=2)),
        Item("jeans-new", "New jeans", "jeans"),
    ]

    outfit = recommend_outfit(garments, "casual")

    assert outfit.top.id == "old"
    assert outfit.bottom.id == "jeans-new"


def test_accessories_capped_at_two() -> None:
    garments = [
        Item("t", "Tee", "t-shirt", color="white"),
        Item("b", "Shorts", "shorts", color="beige"),
        Item("s", "Sandals", "sandals", color="brown"),
        Item("a1", "Hat", "hat"),
        Item("a2", "Belt", "belt"),
        Item("a3", "Bag", "bag"),
    ]

    outfit = recommend_outfit(garments, "casual")

    assert [item.id for item in outfit.accessories] == ["a1", "a2"]
    # 80 base + 10 shoes + 10 accessories + 10 colour bonus, clamped.
    assert outfit.confidence == 100
    assert "Accessorized with Hat, Belt" in outfit.reasoning


def test_bonus_withheld_for_three_bright_colors() -> None:
    garments = [
        Item("t", "Red top", "top", color="red"),
        Item("b", "Green skirt", "skirt", color="green"),
        Item("s", "Yellow boots", "boots", color="yellow"),
    ]

    outfit = recommend_outfit(garments, "casual")

    assert outfit is not None
    assert outfit.color_coordinated is False
    assert outfit.confidence == 90


@pytest.mark.parametrize(
    ("colors", "expected"),
    [
        (["red", "blue"], True),
        (["red", "blue", "black"], True),
        (["red", "blue", "green"], False),
        (["red", "blue", "green", "black"], False),
        (["teal", "olive", "mauve"], False),
        (["teal", "olive", "white"], True),
        (["red"], True),
        ([None, None], True),
    ],
)
def test_color_heuristic(colors: list[str | None], expected: bool) -> None:
    items = [Item(str(index), f"item {index}", "top", color=color) for index, color in enumerate(colors)]

    assert is_color_coordinated(items) is expected


def test_result_does_not_depend_on_input_order() -> None:
    garments = [
        Item("t1", "Tee", "t-shirt", color="white", last_worn=NOW - timedelta(days=3)),
        Item("t2", "Polo", "polo", color="navy"),
        Item("t3", "Blouse", "blouse", color="pink", occasion="work"),
        Item("b1", "Jeans", "jeans", color="blue"),
        Item("b2", "Skirt", "skirt", color="black", occasion="work"),
        Item("o1", "Coat", "coat", color="beige"),
        Item("sh", "Heels", "heels", color="black"),
        Item("ac", "Scarf", "scarf", color="red"),
    ]
    expected = recommend_outfit(garments, "work")

    shuffled = list(garments)
    random.Random(7).shuffle(shuffled)
    again = recommend_outfit(shuffled, "work")

    assert again.garment_ids == expected.garment_ids
    assert again.confidence == expected.confidence
    assert again.reasoning == expected.reasoning
