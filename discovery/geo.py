"""Great-circle distance and radius filtering."""
import dataclasses
import logging
import math
from typing import List, Optional

from discovery.models import EventRecord, Origin, RadiusFilterResult

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the haversine distance between two points.

    Out-of-range coordinates are not rejected; the result is then
    numerically valid but meaningless.

    Args:
        lat1: Latitude of the first point in degrees
        lon1: Longitude of the first point in degrees
        lat2: Latitude of the second point in degrees
        lon2: Longitude of the second point in degrees

    Returns:
        Distance in kilometres
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def is_geolocated(record: EventRecord) -> bool:
    """Return True if the record carries both coordinates as finite numbers."""
    if record.latitude is None or record.longitude is None:
        return False
    return math.isfinite(record.latitude) and math.isfinite(record.longitude)


def filter_by_radius(
    records: List[EventRecord],
    origin: Optional[Origin],
    radius_km: Optional[float]
) -> RadiusFilterResult:
    """
    Keep the records that lie within radius_km of origin.

    Each kept record is a copy with distance_km attached; the input
    records are not modified.

    Args:
        records: Normalized event records
        origin: Position to measure from, or None when location is unknown
        radius_km: Maximum distance, or None to attach distances without
            excluding anything

    Returns:
        RadiusFilterResult with the kept records and the number of records
        excluded because they have no location
    """
    if origin is None:
        logger.info("No origin supplied, skipping distance computation")
        return RadiusFilterResult(records=list(records), excluded_no_location=0)

    kept = []
    excluded_no_location = 0

    for record in records:
        if not is_geolocated(record):
            if radius_km is None:
                kept.append(dataclasses.replace(record, distance_km=None))
            else:
                excluded_no_location += 1
            continue

        distance = distance_km(
            origin.latitude,
            origin.longitude,
            record.latitude,
            record.longitude
        )
        if radius_km is None or distance <= radius_km:
            kept.append(dataclasses.replace(record, distance_km=distance))

    logger.info(
        f"Radius filter kept {len(kept)} of {len(records)} events "
        f"({excluded_no_location} without location)"
    )
    return RadiusFilterResult(
        records=kept,
        excluded_no_location=excluded_no_location
    )
