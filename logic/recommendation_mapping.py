"""Coerce untrusted model JSON into ``Recommendation`` documents.

The model's output is not schema-validated, so every field goes through one of
the coercion functions below. Each takes the raw parsed object and returns a
fully defaulted value; the fallback chains live here and nowhere else.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from models.recommendation import (
    AIReasoning,
    AlternativesOutfit,
    CategoryItems,
    JewelrySet,
    LegacyOutfit,
    OutfitItem,
    Pricing,
    Recommendation,
)
from models.taxonomy import normalize_item_category

DEFAULT_CONFIDENCE_SCORE = 75


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    """Return the first truthy value among ``keys``."""

    for key in keys:
        value = raw.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def coerce_number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.replace("$", "").replace(",", "").strip())
        except ValueError:
            return default
    return default


def coerce_text(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return default
    return str(value)


def _optional_text(value: Any) -> Optional[str]:
    return None if value is None else coerce_text(value)


def coerce_string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, (list, tuple)):
        return [coerce_text(entry) for entry in value if entry not in (None, "")]
    return []


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


def coerce_outfit_item(raw: Any, default_name: str = "Item") -> OutfitItem:
    """Map one model item (closet or purchase) onto ``OutfitItem``."""

    data = _as_mapping(raw)
    closet_item_id = _first(data, "itemId", "closetItemId")
    return OutfitItem(
        is_closet_item=bool(data.get("isClosetItem", False)),
        closet_item_id=coerce_text(closet_item_id) if closet_item_id is not None else None,
        product_name=coerce_text(_first(data, "productName", "description"), default_name),
        image_url=coerce_text(data.get("imageUrl")),
        price=coerce_number(_first(data, "estimatedPrice", "price")),
        product_link=_optional_text(_first(data, "productLink", "productUrl")),
        retailer=_optional_text(_first(data, "retailer")),
        description=_optional_text(_first(data, "reason", "description")),
    )


def coerce_jewelry(raw: Any) -> JewelrySet:
    """Jewelry arrives as a list of pieces or as ``{"items": [...]}``."""

    if isinstance(raw, Mapping):
        raw = raw.get("items")
    pieces = raw if isinstance(raw, list) else []
    items = []
    for piece in pieces:
        data = _as_mapping(piece)
        name = coerce_text(_first(data, "description", "productName", "type"), "Jewelry")
        item = coerce_outfit_item(data, default_name="Jewelry")
        items.append(item.model_copy(update={"product_name": name}))
    return JewelrySet(items=items)


def coerce_outerwear(raw: Any) -> Optional[OutfitItem]:
    """Outerwear is optional; an explicit ``needed: false`` drops it."""

    data = _as_mapping(raw)
    if not data or ("needed" in data and not data.get("needed")):
        return None
    return coerce_outfit_item(data, default_name="Outerwear")


def coerce_category_items(raw: Any) -> Optional[CategoryItems]:
    """Map one ``outfitItems`` entry; entries without a primary pick are skipped."""

    data = _as_mapping(raw)
    primary = data.get("primary")
    if not isinstance(primary, Mapping):
        return None
    category = normalize_item_category(data.get("category"))
    default_name = category.capitalize()
    alternatives = data.get("alternatives") if isinstance(data.get("alternatives"), list) else []
    return CategoryItems(
        category=category,
        primary=coerce_outfit_item(primary, default_name=default_name),
        alternatives=[
            coerce_outfit_item(alternative, default_name=default_name)
            for alternative in alternatives
            if isinstance(alternative, Mapping)
        ],
        reason=coerce_text(_first(data, "categoryReason", "reason")),
    )


def coerce_reasoning(raw: Any) -> AIReasoning:
    """Reasoning fields may sit at the top level or under ``reasoning``/``overallReasoning``."""

    data = _as_mapping(raw)
    nested = _as_mapping(data.get("overallReasoning")) or _as_mapping(data.get("reasoning"))

    def pick(key: str) -> Any:
        value = data.get(key)
        return value if value not in (None, "", []) else nested.get(key)

    return AIReasoning(
        flattery_notes=coerce_string_list(pick("flatteryNotes")),
        dress_code_fit=coerce_text(pick("dressCodeFit")),
        style_match=coerce_text(pick("styleMatch")),
        weather_appropriate=coerce_text(pick("weatherAppropriate")),
        confidence_score=coerce_number(pick("confidenceScore"), DEFAULT_CONFIDENCE_SCORE),
    )


def coerce_legacy_outfit(raw: Any) -> LegacyOutfit:
    data = _as_mapping(raw)
    dress, shoes, bag = data.get("dress"), data.get("shoes"), data.get("bag")
    return LegacyOutfit(
        dress=coerce_outfit_item(dress, "Dress") if isinstance(dress, Mapping) else None,
        shoes=coerce_outfit_item(shoes, "Shoes") if isinstance(shoes, Mapping) else None,
        bag=coerce_outfit_item(bag, "Bag") if isinstance(bag, Mapping) else None,
        jewelry=coerce_jewelry(data.get("jewelry")),
        outerwear=coerce_outerwear(data.get("outerwear")),
    )


def coerce_alternatives_outfit(raw: Any) -> Optional[AlternativesOutfit]:
    data = _as_mapping(raw)
    entries = data.get("outfitItems") if isinstance(data.get("outfitItems"), list) else []
    items = [entry for entry in (coerce_category_items(raw_entry) for raw_entry in entries) if entry]
    if not items:
        return None
    categories = {entry.category for entry in items}
    return AlternativesOutfit(
        items=items,
        has_dress_option=bool(data.get("hasDressOption", "dress" in categories)),
        has_separates_option=bool(data.get("hasSeparatesOption", {"tops", "bottoms"} <= categories)),
    )


def legacy_pricing(raw: Any, outfit: LegacyOutfit) -> Pricing:
    data = _as_mapping(raw)
    total = _first(data, "totalEstimatedPrice", "totalPrice")
    if total is not None:
        return Pricing(total_price=coerce_number(total))
    slots = [outfit.dress, outfit.shoes, outfit.bag, outfit.outerwear, *outfit.jewelry.items]
    return Pricing(total_price=sum(item.price or 0 for item in slots if item is not None))


def alternatives_pricing(outfit: AlternativesOutfit) -> Pricing:
    """Primary total plus the cheapest and dearest combination across alternatives."""

    breakdown: Dict[str, float] = {}
    min_total = 0.0
    max_total = 0.0
    for entry in outfit.items:
        prices = [option.price or 0 for option in entry.options()]
        breakdown[entry.category] = breakdown.get(entry.category, 0) + (entry.primary.price or 0)
        min_total += min(prices)
        max_total += max(prices)
    return Pricing(
        primary_total=sum(entry.primary.price or 0 for entry in outfit.items),
        min_total=min_total,
        max_total=max_total,
        dynamic_breakdown=breakdown,
    )


def map_recommendation(raw: Any, event_id: str, user_id: str) -> Recommendation:
    """Build a persisted-shape ``Recommendation`` from one parsed outfit object."""

    alternatives = coerce_alternatives_outfit(raw)
    if alternatives is not None:
        outfit, pricing, version = alternatives, alternatives_pricing(alternatives), 2
    else:
        legacy = coerce_legacy_outfit(raw)
        outfit, pricing, version = legacy, legacy_pricing(raw, legacy), 1
    return Recommendation(
        event_id=event_id,
        user_id=user_id,
        outfit=outfit,
        ai_reasoning=coerce_reasoning(raw),
        pricing=pricing,
        generation_method="ai-full",
        version=version,
    )


__all__ = [
    "DEFAULT_CONFIDENCE_SCORE",
    "alternatives_pricing",
    "coerce_alternatives_outfit",
    "coerce_category_items",
    "coerce_jewelry",
    "coerce_legacy_outfit",
    "coerce_number",
    "coerce_outerwear",
    "coerce_outfit_item",
    "coerce_reasoning",
    "coerce_string_list",
    "coerce_text",
    "legacy_pricing",
    "map_recommendation",
]
