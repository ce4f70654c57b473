"""Ordering and text/category filtering of discovered events."""
from typing import List, Optional

from discovery.models import EventRecord

ALL_CATEGORIES = 'all'


def rank_by_distance(records: List[EventRecord]) -> List[EventRecord]:
    """
    Sort records by ascending distance_km, records without a distance last.

    The sort is stable: equal distances and records without a distance
    keep their input order.
    """
    return sorted(
        records,
        key=lambda record: (
            record.distance_km is None,
            record.distance_km if record.distance_km is not None else 0.0
        )
    )


def search_events(
    records: List[EventRecord],
    query: Optional[str] = '',
    category: Optional[str] = ALL_CATEGORIES
) -> List[EventRecord]:
    """
    Filter records by free text and category.

    Args:
        records: Records to filter
        query: Case-insensitive substring matched against title, city,
            venue name and category, whitespace included; blank means no
            text filtering
        category: Category tag to keep, or "all" for no category filtering

    Returns:
        Matching records in input order
    """
    needle = (query or '').lower()
    match_text = bool(needle.strip())
    wanted_category = (category or ALL_CATEGORIES).strip().lower()

    results = []
    for record in records:
        if match_text and needle not in _searchable_text(record):
            continue
        if wanted_category != ALL_CATEGORIES:
            if (record.category or '').strip().lower() != wanted_category:
                continue
        results.append(record)

    return results


def _searchable_text(record: EventRecord) -> str:
    parts = [record.title, record.city, record.venue_name, record.category]
    return ' '.join(part for part in parts if part).lower()
