"""Deterministic garment matching used for outfit recommendations.

The algorithm is a fixed set of rules rather than a learned model:

1. garments are bucketed into categories through ``TYPE_CATEGORIES``;
2. each category is narrowed to garments suitable for the occasion, falling
   back to the whole category when nothing matches;
3. a top and a bottom are mandatory, outerwear is only worn for occasions that
   need a layer, shoes are always attempted and at most two accessories are
   added;
4. within a category, occasion matches win, then the least recently worn
   garment (never worn counts as oldest);
5. confidence adds up per filled slot plus a colour-coordination bonus.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

TOPS = "tops"
BOTTOMS = "bottoms"
OUTERWEAR = "outerwear"
SHOES = "shoes"
ACCESSORIES = "accessories"

CATEGORIES = (TOPS, BOTTOMS, OUTERWEAR, SHOES, ACCESSORIES)

TYPE_CATEGORIES: dict[str, str] = {
    "top": TOPS,
    "shirt": TOPS,
    "blouse": TOPS,
    "t-shirt": TOPS,
    "sweater": TOPS,
    "tank": TOPS,
    "polo": TOPS,
    "bottom": BOTTOMS,
    "pants": BOTTOMS,
    "jeans": BOTTOMS,
    "shorts": BOTTOMS,
    "skirt": BOTTOMS,
    "trousers": BOTTOMS,
    "outerwear": OUTERWEAR,
    "jacket": OUTERWEAR,
    "blazer": OUTERWEAR,
    "cardigan": OUTERWEAR,
    "hoodie": OUTERWEAR,
    "coat": OUTERWEAR,
    "shoes": SHOES,
    "sneakers": SHOES,
    "boots": SHOES,
    "sandals": SHOES,
    "heels": SHOES,
    "accessory": ACCESSORIES,
    "accessories": ACCESSORIES,
    "hat": ACCESSORIES,
    "scarf": ACCESSORIES,
    "belt": ACCESSORIES,
    "bag": ACCESSORIES,
}

LAYER_OCCASIONS = frozenset({"work", "business", "formal", "interview", "winter", "cold"})
ANY_OCCASION = "any"
MAX_ACCESSORIES = 2

NEUTRAL_COLORS = frozenset({"black", "white", "gray", "grey", "beige", "navy", "brown"})
WARM_COLORS = frozenset({"red", "orange", "yellow", "pink"})
COOL_COLORS = frozenset({"blue", "green", "purple"})

BASE_SCORE = 40
LAYER_SCORE = 10
SHOES_SCORE = 10
ACCESSORY_SCORE = 5
ACCESSORY_CAP = 10
COLOR_BONUS = 10
MAX_CONFIDENCE = 100


class Wearable(Protocol):
    """Attributes the matcher reads from a garment."""

    id: str
    name: str
    type: str | None
    color: str | None
    occasion: str | None
    last_worn: datetime | None


@dataclass(slots=True)
class Recommendation:
    """Selected garments per slot plus the score and explanation."""

    top: Wearable
    bottom: Wearable
    outerwear: Wearable | None = None
    shoes: Wearable | None = None
    accessories: list[Wearable] = field(default_factory=list)
    confidence: int = 0
    color_coordinated: bool = True
    reasoning: str = ""

    @property
    def garment_ids(self) -> list[str]:
        """Selected ids in slot order."""

        slots = [self.top, self.bottom, self.outerwear, self.shoes, *self.accessories]
        return [garment.id for garment in slots if garment is not None]


def category_of(garment: Wearable) -> str | None:
    return TYPE_CATEGORIES.get((garment.type or "").strip().lower())


def color_class(color: str | None) -> str | None:
    """Classify a colour as ``neutral``, ``warm`` or ``cool``; unknown colours return ``None``."""

    value = (color or "").strip().lower()
    if value in NEUTRAL_COLORS:
        return "neutral"
    if value in WARM_COLORS:
        return "warm"
    if value in COOL_COLORS:
        return "cool"
    return None


def categorize(garments: Iterable[Wearable]) -> dict[str, list[Wearable]]:
    buckets: dict[str, list[Wearable]] = {category: [] for category in CATEGORIES}
    for garment in garments:
        category = category_of(garment)
        if category is not None:
            buckets[category].append(garment)
    return buckets


def _suits(garment: Wearable, occasion: str) -> bool:
    value = (garment.occasion or "").strip().lower()
    return not value or value == ANY_OCCASION or value == occasion


def filter_for_occasion(garments: Sequence[Wearable], occasion: str) -> list[Wearable]:
    """Keep garments suited to ``occasion``; an empty result falls back to all of them."""

    suited = [garment for garment in garments if _suits(garment, occasion)]
    return suited if suited else list(garments)


def _rank_key(garment: Wearable, occasion: str) -> tuple:
    exact = (garment.occasion or "").strip().lower() == occasion
    worn = garment.last_worn
    return (
        0 if exact else 1,
        worn is not None,
        worn if worn is not None else datetime.min,
        garment.id,
    )


def rank(garments: Iterable[Wearable], occasion: str) -> list[Wearable]:
    """Order garments by occasion match, then least recently worn, then id."""

    return sorted(garments, key=lambda garment: _rank_key(garment, occasion))


def is_color_coordinated(garments: Sequence[Wearable | None]) -> bool:
    """Apply the colour heuristic to the main slots.

    Returns ``False`` when more than two garments carry a warm or cool colour,
    or when three or more coloured garments include no neutral one. The outfit
    itself is kept either way; only the bonus depends on this.
    """

    worn_items = [garment for garment in garments if garment is not None]
    if len(worn_items) < 2:
        return True

    colors = [
        (garment.color or "").strip().lower()
        for garment in worn_items
        if (garment.color or "").strip()
    ]
    bright = [color for color in colors if color_class(color) in ("warm", "cool")]
    if len(bright) > 2:
        return False
    has_neutral = any(color_class(color) == "neutral" for color in colors)
    if not has_neutral and len(colors) > 2:
        return False
    return True


def build_reasoning(recommendation: Recommendation, occasion: str) -> str:
    reasons = [
        f"Selected {recommendation.top.name} and {recommendation.bottom.name} "
        f"for a complete {occasion} look",
    ]
    if recommendation.outerwear is not None:
        reasons.append(f"Added {recommendation.outerwear.name} for extra style")
    if recommendation.shoes is not None:
        reasons.append(f"Paired with {recommendation.shoes.name} for the perfect finish")
    if recommendation.accessories:
        names = ", ".join(accessory.name for accessory in recommendation.accessories)
        reasons.append(f"Accessorized with {names}")

    main = [
        recommendation.top,
        recommendation.bottom,
        recommendation.outerwear,
        recommendation.shoes,
    ]
    colors = [garment.color for garment in main if garment is not None and garment.color]
    if len(colors) > 1:
        reasons.append(f"Color-coordinated with {', '.join(colors)}")
    return ". ".join(reasons) + "."


def recommend_outfit(garments: Iterable[Wearable], occasion: str) -> Recommendation | None:
    """Pick an outfit from available garments, or ``None`` without a top and a bottom.

    ``garments`` must already exclude worn items and items that need cleaning.
    """

    wanted = (occasion or "").strip().lower() or "casual"
    pools = {
        category: filter_for_occasion(items, wanted)
        for category, items in categorize(garments).items()
    }
    if not pools[TOPS] or not pools[BOTTOMS]:
        return None

    recommendation = Recommendation(
        top=rank(pools[TOPS], wanted)[0],
        bottom=rank(pools[BOTTOMS], wanted)[0],
    )
    confidence = BASE_SCORE * 2

    if pools[OUTERWEAR] and wanted in LAYER_OCCASIONS:
        recommendation.outerwear = rank(pools[OUTERWEAR], wanted)[0]
        confidence += LAYER_SCORE

    if pools[SHOES]:
        recommendation.shoes = rank(pools[SHOES], wanted)[0]
        confidence += SHOES_SCORE

    if pools[ACCESSORIES]:
        recommendation.accessories = rank(pools[ACCESSORIES], wanted)[:MAX_ACCESSORIES]
        confidence += min(len(recommendation.accessories) * ACCESSORY_SCORE, ACCESSORY_CAP)

    recommendation.color_coordinated = is_color_coordinated(
        [
            recommendation.top,
            recommendation.bottom,
            recommendation.outerwear,
            recommendation.shoes,
        ],
    )
    if recommendation.color_coordinated:
        confidence += COLOR_BONUS

    recommendation.confidence = min(confidence, MAX_CONFIDENCE)
    recommendation.reasoning = build_reasoning(recommendation, wanted)
    return recommendation
