"""Source selection and fallback between the remote catalog and the local store."""
import logging
from typing import List, Optional

import requests
from botocore.exceptions import BotoCoreError, ClientError

from discovery.event_normalizer import EventNormalizer
from discovery.exceptions import BothSourcesFailed, SourceUnavailable
from discovery.geo import filter_by_radius
from discovery.models import EventRecord, FetchResult, Origin, SourceKind

logger = logging.getLogger(__name__)

SOURCE_REMOTE = 'remote'
SOURCE_LOCAL = 'local'
SOURCES = (SOURCE_REMOTE, SOURCE_LOCAL)


class EventReconciler:
    """
    Fetches events from exactly one source per request.

    The preferred source is tried first. If it fails, the other source is
    used and the result is marked degraded. Records from the two sources
    are never mixed in one result.
    """

    def __init__(self, catalog_client, event_store, normalizer: Optional[EventNormalizer] = None):
        """
        Initialize the reconciler.

        Args:
            catalog_client: TicketingCatalogClient for the remote catalog
            event_store: DynamoDBEventStore for locally persisted events
            normalizer: EventNormalizer to use (a default one if omitted)
        """
        self.catalog_client = catalog_client
        self.event_store = event_store
        self.normalizer = normalizer or EventNormalizer()

    def fetch_events(
        self,
        origin: Optional[Origin],
        radius_km: Optional[float],
        source_preference: str = SOURCE_REMOTE
    ) -> FetchResult:
        """
        Fetch, normalize and radius-filter events from one source.

        Args:
            origin: Position of the user, or None if location is unavailable
            radius_km: Search radius in kilometres
            source_preference: "remote" or "local"

        Returns:
            FetchResult with records from a single source

        Raises:
            ValueError: If source_preference is unknown
            BothSourcesFailed: If neither source could be read
        """
        if source_preference not in SOURCES:
            raise ValueError(f"Unknown source preference: {source_preference}")

        fallback = SOURCE_LOCAL if source_preference == SOURCE_REMOTE else SOURCE_REMOTE
        failures: List[SourceUnavailable] = []

        for source in (source_preference, fallback):
            try:
                records = self._load(source, origin, radius_km)
            except SourceUnavailable as e:
                logger.warning(
                    f"Event source failed: {e}",
                    extra={'source': source, 'error_type': type(e.cause).__name__}
                )
                failures.append(e)
                continue

            dropped_count = self.normalizer.dropped_count
            filtered = filter_by_radius(records, origin, radius_km)
            degraded = source != source_preference

            if degraded:
                logger.warning(f"Serving degraded response from {source} source")

            return FetchResult(
                records=filtered.records,
                source_used=source,
                degraded=degraded,
                dropped_count=dropped_count,
                excluded_no_location=filtered.excluded_no_location,
                errors=[str(failure) for failure in failures]
            )

        logger.error("Both event sources failed")
        raise BothSourcesFailed(failures)

    def _load(
        self,
        source: str,
        origin: Optional[Origin],
        radius_km: Optional[float]
    ) -> List[EventRecord]:
        """
        Read and normalize all records of one source.

        Raises:
            SourceUnavailable: On transport, status, payload or storage errors
        """
        if source == SOURCE_REMOTE:
            try:
                raw_records = self.catalog_client.fetch_events(origin, radius_km)
            except (requests.RequestException, ValueError) as e:
                raise SourceUnavailable(source, e) from e
            return self.normalizer.normalize_events(
                raw_records, self.catalog_client.source_kind
            )

        try:
            snapshot = self.event_store.get_all_events()
        except (ClientError, BotoCoreError) as e:
            raise SourceUnavailable(source, e) from e
        raw_records = [
            {'id': event_id, **attributes}
            for event_id, attributes in snapshot.items()
        ]
        return self.normalizer.normalize_events(raw_records, SourceKind.INTERNAL)
