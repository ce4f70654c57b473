"""Map marker placement for co-located events."""
import dataclasses
import logging
import math
from collections import OrderedDict
from typing import Dict, List, Tuple

from discovery.geo import is_geolocated
from discovery.models import EventRecord, MarkerRecord

logger = logging.getLogger(__name__)

COORDINATE_PRECISION = 6
OFFSET_RADIUS_DEGREES = 0.0003


def group_and_offset(records: List[EventRecord]) -> List[MarkerRecord]:
    """
    Turn records into map markers, spreading co-located ones on a circle.

    Records whose coordinates match to 6 decimal places form one group.
    A lone record renders at its own coordinates. Member i of a group of
    n > 1 renders at angle i * 360 / n degrees on a circle of
    OFFSET_RADIUS_DEGREES around the shared point. The layout depends only
    on input order, so the same input always yields the same positions.

    Args:
        records: Events to place; records without a location are skipped

    Returns:
        MarkerRecord list in input order
    """
    groups: Dict[Tuple[float, float], List[int]] = OrderedDict()
    placeable = []

    for record in records:
        if not is_geolocated(record):
            logger.debug(f"Event '{record.id}' has no location, no marker placed")
            continue
        key = (
            round(record.latitude, COORDINATE_PRECISION),
            round(record.longitude, COORDINATE_PRECISION)
        )
        groups.setdefault(key, []).append(len(placeable))
        placeable.append(record)

    markers: List[MarkerRecord] = [None] * len(placeable)

    for members in groups.values():
        group_size = len(members)
        for group_index, position in enumerate(members):
            record = placeable[position]
            render_latitude, render_longitude = _offset(
                record.latitude, record.longitude, group_index, group_size
            )
            markers[position] = MarkerRecord(
                **_fields_of(record),
                render_latitude=render_latitude,
                render_longitude=render_longitude,
                group_size=group_size,
                group_index=group_index
            )

    shared = sum(1 for members in groups.values() if len(members) > 1)
    logger.info(
        f"Placed {len(markers)} markers in {len(groups)} locations "
        f"({shared} shared)"
    )
    return markers


def _offset(latitude: float, longitude: float, index: int, size: int) -> Tuple[float, float]:
    if size == 1:
        return latitude, longitude

    angle = math.radians(index * (360.0 / size))
    return (
        latitude + OFFSET_RADIUS_DEGREES * math.cos(angle),
        longitude + OFFSET_RADIUS_DEGREES * math.sin(angle)
    )


def _fields_of(record: EventRecord) -> dict:
    # Shallow; price_range stays a PriceRange.
    return {
        f.name: getattr(record, f.name)
        for f in dataclasses.fields(EventRecord)
    }
