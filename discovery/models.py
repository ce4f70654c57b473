"""Data models for nearby event discovery."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SourceKind(str, Enum):
    """Upstream shape a raw event record was read from."""
    TICKETMASTER = 'ticketmaster'
    SYMPLA = 'sympla'
    INTERNAL = 'internal'


@dataclass(frozen=True)
class Origin:
    """Position a discovery request is centered on."""
    latitude: float
    longitude: float


@dataclass
class PriceRange:
    """Ticket price range as reported by the source."""
    min: Optional[float] = None
    max: Optional[float] = None
    currency: Optional[str] = None


@dataclass
class EventRecord:
    """Canonical event, rebuilt from upstream sources on every request."""
    id: str
    title: str
    start_date: str
    source: str
    image_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    venue_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    source_url: Optional[str] = None
    price_range: Optional[PriceRange] = None
    category: Optional[str] = None
    description: Optional[str] = None
    distance_km: Optional[float] = None


@dataclass
class MarkerRecord(EventRecord):
    """Event placed on the map, possibly nudged off a shared point."""
    render_latitude: float = 0.0
    render_longitude: float = 0.0
    group_size: int = 1
    group_index: int = 0


@dataclass
class FavoriteRecord:
    """Point-in-time copy of an event a user marked as favorite."""
    user_id: str
    event_id: str
    title: str
    start_date: str
    favorited_at: int
    image_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    venue_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    source_url: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = None


@dataclass
class UserCreatedEvent:
    """Event authored by a user and persisted in the local store."""
    event_id: str
    owner_id: str
    title: str
    created_at: int
    updated_at: Optional[int] = None
    start_date: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    venue_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    source_url: Optional[str] = None
    category: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    currency: Optional[str] = None


@dataclass
class RadiusFilterResult:
    """Records within the radius plus the count that had no location."""
    records: list[EventRecord]
    excluded_no_location: int = 0


@dataclass
class FetchResult:
    """Result of one discovery fetch."""
    records: list[EventRecord]
    source_used: str
    degraded: bool
    dropped_count: int = 0
    excluded_no_location: int = 0
    errors: list[str] = field(default_factory=list)
