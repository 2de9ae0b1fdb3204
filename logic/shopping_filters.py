"""Pure filter, sort and aggregate helpers over shopping items."""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Sequence

from models.shopping import EventShoppingSummary, RetailerGroup, ShoppingFilters, ShoppingItem, ShoppingStats
from models.taxonomy import SortKey

UNKNOWN_RETAILER = "Unknown Retailer"


def _predicates(filters: ShoppingFilters) -> List[Callable[[ShoppingItem], bool]]:
    checks: List[Callable[[ShoppingItem], bool]] = []
    if filters.event_ids:
        checks.append(lambda item: item.event_id in filters.event_ids)
    if filters.categories:
        checks.append(lambda item: item.category in filters.categories)
    if filters.statuses:
        checks.append(lambda item: item.purchase_status in filters.statuses)
    if filters.min_price is not None:
        checks.append(lambda item: item.price >= filters.min_price)
    if filters.max_price is not None:
        checks.append(lambda item: item.price <= filters.max_price)
    if filters.retailers:
        checks.append(lambda item: item.retailer is not None and item.retailer in filters.retailers)
    if filters.urgent_only:
        checks.append(lambda item: item.is_urgent)
    if filters.closet_items_only:
        checks.append(lambda item: item.is_closet_item)
    if filters.purchase_items_only:
        checks.append(lambda item: not item.is_closet_item)
    return checks


def apply_filters(items: Iterable[ShoppingItem], filters: ShoppingFilters) -> List[ShoppingItem]:
    """Keep items passing every configured predicate, preserving order."""

    checks = _predicates(filters)
    return [item for item in items if all(check(item) for check in checks)]


_SORT_KEYS: Dict[SortKey, tuple] = {
    SortKey.EVENT_DATE_ASC: (lambda item: item.event_date, False),
    SortKey.EVENT_DATE_DESC: (lambda item: item.event_date, True),
    SortKey.PRICE_ASC: (lambda item: item.price, False),
    SortKey.PRICE_DESC: (lambda item: item.price, True),
    SortKey.CATEGORY: (lambda item: item.category.casefold(), False),
    SortKey.RETAILER: (lambda item: (item.retailer or "").casefold(), False),
    SortKey.STATUS: (lambda item: item.purchase_status, False),
}


def sort_items(items: Iterable[ShoppingItem], sort_by: SortKey | str) -> List[ShoppingItem]:
    """Stable sort; ties keep their input order. Unknown keys raise ``ValueError``."""

    key, reverse = _SORT_KEYS[SortKey(sort_by)]
    # sorted() with reverse=True is still stable for equal keys.
    return sorted(items, key=key, reverse=reverse)


def calculate_stats(items: Sequence[ShoppingItem]) -> ShoppingStats:
    stats = ShoppingStats(total_items=len(items))
    events = set()
    for item in items:
        status = item.purchase_status
        if status == "unpurchased":
            stats.unpurchased_count += 1
        elif status == "in-cart":
            stats.in_cart_count += 1
        elif status == "purchased":
            stats.purchased_count += 1
        elif status == "skipped":
            stats.skipped_count += 1

        if status != "skipped":
            stats.total_estimated_cost += item.price
        if item.is_urgent:
            stats.urgent_items_count += 1

        events.add(item.event_id)
        stats.items_by_category[item.category] = stats.items_by_category.get(item.category, 0) + 1
        if item.retailer:
            stats.items_by_retailer[item.retailer] = stats.items_by_retailer.get(item.retailer, 0) + 1
        stats.items_by_event[item.event_id] = stats.items_by_event.get(item.event_id, 0) + 1

    # Purchase amounts are not tracked yet, so nothing has actually been spent.
    stats.total_actual_cost = 0.0
    stats.remaining_budget = stats.total_estimated_cost - stats.total_actual_cost
    stats.upcoming_events_count = len(events)
    return stats


def group_by_retailer(items: Iterable[ShoppingItem]) -> List[RetailerGroup]:
    """Purchase items grouped by retailer, largest group first."""

    groups: Dict[str, List[ShoppingItem]] = {}
    for item in items:
        if item.is_closet_item:
            continue
        groups.setdefault(item.retailer or UNKNOWN_RETAILER, []).append(item)
    result = [
        RetailerGroup(retailer=retailer, items=grouped, total_cost=sum(entry.price for entry in grouped))
        for retailer, grouped in groups.items()
    ]
    return sorted(result, key=lambda group: len(group.items), reverse=True)


def get_event_summaries(items: Iterable[ShoppingItem]) -> List[EventShoppingSummary]:
    """Per-event counts and costs, soonest event first."""

    summaries: Dict[str, EventShoppingSummary] = {}
    for item in items:
        summary = summaries.get(item.event_id)
        if summary is None:
            summary = EventShoppingSummary(
                event_id=item.event_id,
                event_type=item.event_type,
                event_date=item.event_date,
                days_until_event=item.days_until_event,
                is_urgent=item.is_urgent,
            )
            summaries[item.event_id] = summary
        summary.item_count += 1
        if item.purchase_status == "unpurchased":
            summary.unpurchased_count += 1
        if item.purchase_status != "skipped":
            summary.total_cost += item.price
    return sorted(summaries.values(), key=lambda summary: summary.event_date)


def get_unique_retailers(items: Iterable[ShoppingItem]) -> List[str]:
    return sorted({item.retailer for item in items if item.retailer})


__all__ = [
    "UNKNOWN_RETAILER",
    "apply_filters",
    "calculate_stats",
    "get_event_summaries",
    "get_unique_retailers",
    "group_by_retailer",
    "sort_items",
]
