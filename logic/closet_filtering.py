"""Deterministic closet filtering applied before prompt building."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from models.closet_item import ClosetItem
from models.event import Event


@dataclass(frozen=True)
class FilteringResult:
    """Captures the outcome of a single filtering step."""

    items: List[ClosetItem]
    removed: Dict[str, str]
    debug: Dict[str, object]


def filter_rewearable_items(items: Sequence[ClosetItem]) -> FilteringResult:
    """Drop items tagged ``refuseToRewear``; everything else passes through in order.

    ``preferToRewear`` items are kept without reordering; the prompt marks them
    as favourites.
    """

    kept: List[ClosetItem] = []
    removed: Dict[str, str] = {}
    for item in items:
        if item.tags.refuse_to_rewear:
            removed[item.id or ""] = "client refuses to rewear"
        else:
            kept.append(item)
    debug = {
        "input_count": len(items),
        "kept_count": len(kept),
        "removed_count": len(removed),
        "preferred_count": sum(1 for item in kept if item.tags.prefer_to_rewear),
    }
    return FilteringResult(items=kept, removed=removed, debug=debug)


def select_closet_items(event: Event, items: Sequence[ClosetItem]) -> FilteringResult:
    """Closet items the model may use for ``event``; none in shop-only mode."""

    if event.shop_only_mode:
        return FilteringResult(
            items=[],
            removed={item.id or "": "shop-only mode" for item in items},
            debug={"input_count": len(items), "kept_count": 0, "shop_only_mode": True},
        )
    return filter_rewearable_items(items)


__all__ = ["FilteringResult", "filter_rewearable_items", "select_closet_items"]
