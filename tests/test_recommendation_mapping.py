"""Coercion of untrusted model output into recommendation documents."""

import pytest

from logic.recommendation_mapping import (
    coerce_jewelry,
    coerce_number,
    coerce_outerwear,
    coerce_outfit_item,
    coerce_reasoning,
    map_recommendation,
)
from models.recommendation import AlternativesOutfit, LegacyOutfit, Recommendation

LEGACY_OUTFIT = {
    "dress": {"isClosetItem": True, "itemId": "closet-1", "description": "Emerald slip dress"},
    "shoes": {"productName": "Block heel sandal", "retailer": "Nordstrom", "estimatedPrice": 120},
    "bag": {"description": "Gold clutch", "price": "$85"},
    "jewelry": [{"type": "earrings", "estimatedPrice": 40}, {"description": "Cuff", "estimatedPrice": 30}],
    "outerwear": {"needed": False, "description": "Wrap"},
    "flatteryNotes": ["Bias cut skims the hips"],
    "confidenceScore": 88,
}

V2_OUTFIT = {
    "outfitNumber": 1,
    "outfitItems": [
        {
            "category": "dress",
            "primary": {"productName": "Satin midi", "estimatedPrice": 180, "retailer": "Reformation"},
            "alternatives": [
                {"productName": "Crepe midi", "estimatedPrice": 140},
                {"productName": "Silk midi", "estimatedPrice": 260},
            ],
            "categoryReason": "Anchor piece",
        },
        {
            "category": "Shoes",
            "primary": {"isClosetItem": True, "itemId": "closet-9", "productName": "Nude heels"},
            "alternatives": [],
        },
        {"category": "bags", "alternatives": [{"productName": "orphan"}]},
    ],
    "hasDressOption": True,
    "hasSeparatesOption": False,
    "overallReasoning": {"dressCodeFit": "Cocktail appropriate", "confidenceScore": 91},
}


def test_coerce_number_handles_strings_and_junk() -> None:
    assert coerce_number("$1,250.50") == 1250.5
    assert coerce_number("call for price") == 0
    assert coerce_number(True) == 0
    assert coerce_number(None, 7) == 7


def test_outfit_item_fallback_chains() -> None:
    item = coerce_outfit_item({"description": "Linen blazer", "productUrl": "https://shop.example/blazer"})
    assert item.product_name == "Linen blazer"
    assert item.product_link == "https://shop.example/blazer"
    assert item.price == 0
    assert item.is_closet_item is False

    assert coerce_outfit_item({}, default_name="Shoes").product_name == "Shoes"
    assert coerce_outfit_item("garbage").product_name == "Item"


def test_jewelry_accepts_list_or_items_object() -> None:
    from_list = coerce_jewelry([{"type": "necklace"}])
    from_object = coerce_jewelry({"items": [{"type": "necklace"}]})
    assert [piece.product_name for piece in from_list.items] == ["necklace"]
    assert from_list == from_object
    assert coerce_jewelry(None).items == []


def test_outerwear_only_dropped_when_explicitly_not_needed() -> None:
    assert coerce_outerwear({"needed": False, "description": "Trench"}) is None
    assert coerce_outerwear(None) is None
    assert coerce_outerwear({"description": "Trench"}).product_name == "Trench"


def test_reasoning_reads_nested_blocks_and_defaults_confidence() -> None:
    nested = coerce_reasoning({"reasoning": {"styleMatch": "Romantic", "flatteryNotes": "Defines waist"}})
    assert nested.style_match == "Romantic"
    assert nested.flattery_notes == ["Defines waist"]
    assert nested.confidence_score == 75


def test_legacy_outfit_mapping() -> None:
    recommendation = map_recommendation(LEGACY_OUTFIT, event_id="evt-1", user_id="user-1")

    assert isinstance(recommendation.outfit, LegacyOutfit)
    assert recommendation.version == 1
    assert recommendation.outfit.dress.closet_item_id == "closet-1"
    assert recommendation.outfit.bag.price == 85
    assert [piece.product_name for piece in recommendation.outfit.jewelry.items] == ["earrings", "Cuff"]
    assert recommendation.outfit.outerwear is None
    assert recommendation.pricing.total_price == pytest.approx(120 + 85 + 40 + 30)
    assert recommendation.ai_reasoning.confidence_score == 88


def test_legacy_outfit_prefers_declared_total() -> None:
    recommendation = map_recommendation({**LEGACY_OUTFIT, "totalEstimatedPrice": 400}, "evt-1", "user-1")
    assert recommendation.pricing.total_price == 400


def test_alternatives_outfit_mapping_and_pricing() -> None:
    recommendation = map_recommendation(V2_OUTFIT, event_id="evt-1", user_id="user-1")

    assert isinstance(recommendation.outfit, AlternativesOutfit)
    assert recommendation.version == 2
    assert recommendation.is_current_shape
    assert [entry.category for entry in recommendation.outfit.items] == ["dress", "shoes"]
    assert recommendation.outfit.items[1].primary.closet_item_id == "closet-9"
    pricing = recommendation.pricing
    assert pricing.primary_total == 180
    assert pricing.min_total == 140
    assert pricing.max_total == 260
    assert pricing.dynamic_breakdown == {"dress": 180, "shoes": 0}
    assert recommendation.ai_reasoning.dress_code_fit == "Cocktail appropriate"
    assert recommendation.ai_reasoning.confidence_score == 91


def test_stored_documents_round_trip_through_the_tagged_union() -> None:
    for raw in (LEGACY_OUTFIT, V2_OUTFIT):
        recommendation = map_recommendation(raw, "evt-1", "user-1")
        restored = Recommendation.from_document(recommendation.to_document(), doc_id="rec-1")
        assert type(restored.outfit) is type(recommendation.outfit)
        assert restored.id == "rec-1"
