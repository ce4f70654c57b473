"""Event normalizer mapping upstream event payloads to EventRecord."""
import hashlib
import logging
import math
from datetime import date, datetime
from typing import Any, List, Optional

from bs4 import BeautifulSoup

from discovery.models import EventRecord, PriceRange, SourceKind

logger = logging.getLogger(__name__)

DATE_UNKNOWN = 'Date unknown'
UNTITLED_EVENT = 'Untitled event'


class EventNormalizer:
    """Normalizer for events coming from ticketing APIs and the local store."""

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000

    DATE_FORMATS = [
        '%Y-%m-%d',      # ISO 8601
        '%m/%d/%Y',      # US format
        '%d/%m/%Y',      # European format
        '%B %d, %Y',     # Full month name
        '%b %d, %Y',     # Abbreviated month name
        '%Y/%m/%d',      # Alternative ISO format
    ]

    DATETIME_FORMATS = [
        '%Y-%m-%dT%H:%M:%S%z',
        '%Y-%m-%dT%H:%M:%SZ',
        '%Y-%m-%dT%H:%M:%S',
        '%Y-%m-%dT%H:%M',
        '%Y-%m-%d %H:%M:%S',
        '%Y-%m-%d %H:%M',
    ]

    TIME_FORMATS = [
        '%H:%M',         # 24-hour format
        '%H:%M:%S',      # 24-hour with seconds
        '%I:%M %p',      # 12-hour format with AM/PM
        '%I:%M%p',       # 12-hour format without space
    ]

    def __init__(
        self,
        date_format: str = '%d %b %Y, %H:%M',
        date_only_format: str = '%d %b %Y'
    ):
        """
        Initialize the normalizer.

        Args:
            date_format: strftime pattern for events with a start time
            date_only_format: strftime pattern for events with a date only
        """
        self.date_format = date_format
        self.date_only_format = date_only_format
        self.dropped_count = 0
        self.total_dropped = 0

    def normalize_events(
        self,
        raw_records: List[dict],
        source_kind: SourceKind
    ) -> List[EventRecord]:
        """
        Normalize a batch of raw upstream records.

        Records that cannot be minimally parsed are dropped and counted in
        dropped_count (this batch) and total_dropped (all batches).

        Args:
            raw_records: Raw event dictionaries from one source
            source_kind: Shape of the raw records

        Returns:
            List of EventRecord objects in input order
        """
        records = []
        dropped = 0

        for raw in raw_records:
            try:
                record = self.normalize_event(raw, source_kind)
            except Exception as e:
                logger.warning(
                    f"Failed to normalize {source_kind.value} event: {e}"
                )
                record = None

            if record is None:
                dropped += 1
                continue
            records.append(record)

        self.dropped_count = dropped
        self.total_dropped += dropped

        logger.info(
            f"Normalized {len(records)} {source_kind.value} events out of "
            f"{len(raw_records)} total ({dropped} dropped)"
        )
        return records

    def normalize_event(
        self,
        raw: dict,
        source_kind: SourceKind
    ) -> Optional[EventRecord]:
        """
        Normalize a single raw record.

        Args:
            raw: Raw event dictionary
            source_kind: Shape of the raw record

        Returns:
            EventRecord, or None if the record has neither id nor title
        """
        if not isinstance(raw, dict):
            logger.warning(f"Skipping non-object {source_kind.value} record")
            return None

        if source_kind == SourceKind.TICKETMASTER:
            fields = self._ticketmaster_fields(raw)
        elif source_kind == SourceKind.SYMPLA:
            fields = self._sympla_fields(raw)
        else:
            fields = self._internal_fields(raw)

        return self._build_record(fields, source_kind)

    def _build_record(self, fields: dict, source_kind: SourceKind) -> Optional[EventRecord]:
        event_id = _text(fields.get('id'))
        title = _text(fields.get('title'))

        if not event_id and not title:
            logger.warning(
                f"Dropping {source_kind.value} event without id and title"
            )
            return None

        start_date = self._format_start_date(
            _text(fields.get('date')),
            _text(fields.get('time'))
        )
        venue_name = _text(fields.get('venue_name'))

        if not event_id:
            event_id = self.generate_event_id(title, start_date, venue_name or '')
        title = (title or UNTITLED_EVENT)[:self.MAX_TITLE_LENGTH]

        latitude = _number(fields.get('latitude'))
        longitude = _number(fields.get('longitude'))
        if latitude is None or longitude is None:
            latitude = longitude = None

        return EventRecord(
            id=event_id,
            title=title,
            start_date=start_date,
            source=source_kind.value,
            image_url=_text(fields.get('image_url')),
            latitude=latitude,
            longitude=longitude,
            venue_name=venue_name,
            address=_text(fields.get('address')),
            city=_text(fields.get('city')),
            region=_text(fields.get('region')),
            source_url=_text(fields.get('source_url')),
            price_range=_price_range(
                fields.get('price_min'),
                fields.get('price_max'),
                fields.get('currency')
            ),
            category=_text(fields.get('category')),
            description=self._clean_description(fields.get('description'))
        )

    def _ticketmaster_fields(self, raw: dict) -> dict:
        start = (raw.get('dates') or {}).get('start') or {}
        venues = (raw.get('_embedded') or {}).get('venues') or [{}]
        venue = venues[0] or {}
        location = venue.get('location') or {}

        images = [img for img in raw.get('images') or [] if img.get('url')]
        image_url = None
        if images:
            image_url = max(images, key=lambda img: img.get('width') or 0)['url']

        prices = raw.get('priceRanges') or [{}]
        price = prices[0] or {}

        category = None
        classifications = raw.get('classifications') or []
        if classifications:
            classification = classifications[0] or {}
            category = (
                (classification.get('segment') or {}).get('name')
                or (classification.get('genre') or {}).get('name')
            )

        return {
            'id': raw.get('id'),
            'title': raw.get('title') or raw.get('name'),
            'date': start.get('localDate') or start.get('dateTime'),
            'time': start.get('localTime') if start.get('localDate') else None,
            'image_url': image_url,
            'latitude': location.get('latitude'),
            'longitude': location.get('longitude'),
            'venue_name': venue.get('name'),
            'address': (venue.get('address') or {}).get('line1'),
            'city': (venue.get('city') or {}).get('name'),
            'region': (
                (venue.get('state') or {}).get('stateCode')
                or (venue.get('state') or {}).get('name')
            ),
            'source_url': raw.get('url'),
            'price_min': price.get('min'),
            'price_max': price.get('max'),
            'currency': price.get('currency'),
            'category': category,
            'description': raw.get('info') or raw.get('description'),
        }

    def _sympla_fields(self, raw: dict) -> dict:
        address = raw.get('address') or {}
        category = raw.get('category_prim') or {}

        return {
            'id': raw.get('id'),
            'title': raw.get('title') or raw.get('name'),
            'date': raw.get('start_date'),
            'image_url': raw.get('image'),
            'latitude': address.get('lat'),
            'longitude': address.get('lng', address.get('lon')),
            'venue_name': address.get('name'),
            'address': address.get('address'),
            'city': address.get('city'),
            'region': address.get('state'),
            'source_url': raw.get('url'),
            'category': category.get('name') if isinstance(category, dict) else category,
            'description': raw.get('detail') or raw.get('description'),
        }

    def _internal_fields(self, raw: dict) -> dict:
        return {
            'id': raw.get('id') or raw.get('event_id'),
            'title': raw.get('title') or raw.get('name'),
            'date': raw.get('start_date') or raw.get('date'),
            'time': raw.get('time'),
            'image_url': raw.get('image_url') or raw.get('image'),
            'latitude': raw.get('latitude'),
            'longitude': raw.get('longitude'),
            'venue_name': raw.get('venue_name'),
            'address': raw.get('address'),
            'city': raw.get('city'),
            'region': raw.get('region') or raw.get('state'),
            'source_url': raw.get('source_url') or raw.get('url'),
            'price_min': raw.get('price_min'),
            'price_max': raw.get('price_max'),
            'currency': raw.get('currency'),
            'category': raw.get('category'),
            'description': raw.get('description'),
        }

    def _format_start_date(self, date_str: Optional[str], time_str: Optional[str]) -> str:
        """
        Compose a display string from a date and an optional time.

        Args:
            date_str: Date or full timestamp in one of the supported formats
            time_str: Separate start time, if the source provides one

        Returns:
            Formatted display string, the raw value if it cannot be parsed,
            or DATE_UNKNOWN when no date is given
        """
        if not date_str:
            return DATE_UNKNOWN

        day = self._parse_date(date_str)
        if day:
            start_time = self._parse_time(time_str) if time_str else None
            if start_time:
                return datetime.combine(day, start_time).strftime(self.date_format)
            return day.strftime(self.date_only_format)

        moment = self._parse_datetime(date_str)
        if moment:
            return moment.strftime(self.date_format)

        logger.debug(f"Keeping unrecognized date format: {date_str}")
        return date_str

    def _parse_date(self, date_str: str) -> Optional[date]:
        for fmt in self.DATE_FORMATS:
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                continue
        return None

    def _parse_datetime(self, date_str: str) -> Optional[datetime]:
        for fmt in self.DATETIME_FORMATS:
            try:
                return datetime.strptime(date_str, fmt)
            except ValueError:
                continue

        # Millisecond timestamps such as 2025-11-01T18:00:00.000Z
        try:
            return datetime.fromisoformat(date_str.replace('Z', '+00:00'))
        except ValueError:
            return None

    def _parse_time(self, time_str: str):
        for fmt in self.TIME_FORMATS:
            try:
                return datetime.strptime(time_str, fmt).time()
            except ValueError:
                continue
        return None

    def _clean_description(self, description: Any) -> Optional[str]:
        text = _text(description)
        if not text:
            return None

        plain = BeautifulSoup(text, 'html.parser').get_text(separator=' ', strip=True)
        return plain[:self.MAX_DESCRIPTION_LENGTH] or None

    def generate_event_id(self, title: str, date: str, venue: str) -> str:
        """
        Generate an identifier for a record that arrived without one.

        Args:
            title: Event title
            date: Formatted start date
            venue: Venue name, or empty string

        Returns:
            SHA256 hex digest of title, date and venue
        """
        composite = f"{title}|{date}|{venue}"
        return hashlib.sha256(composite.encode('utf-8')).hexdigest()


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip().replace(',', '.'))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _price_range(minimum: Any, maximum: Any, currency: Any) -> Optional[PriceRange]:
    price_min = _number(minimum)
    price_max = _number(maximum)
    if price_min is None and price_max is None:
        return None
    return PriceRange(min=price_min, max=price_max, currency=_text(currency))
