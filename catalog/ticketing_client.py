"""HTTP clients for remote ticketing catalogs."""
import logging
import math
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import requests

from discovery.models import Origin, SourceKind

logger = logging.getLogger(__name__)


class TicketingCatalogClient(ABC):
    """Base client for a remote ticketing catalog returning JSON events."""

    source_kind: SourceKind

    def __init__(
        self,
        timeout: float = 10,
        max_retries: int = 3,
        retry_delay: float = 1,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the catalog client.

        Args:
            timeout: HTTP request timeout in seconds (default: 10)
            max_retries: Attempts per request before giving up (default: 3)
            retry_delay: Base delay in seconds for exponential backoff
            session: Optional requests session to reuse
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.session = session or requests.Session()

    @abstractmethod
    def fetch_events(self, origin: Optional[Origin], radius_km: Optional[float]) -> List[dict]:
        """
        Fetch raw event payloads near origin.

        Args:
            origin: Position to search around, or None for no geo hint
            radius_km: Search radius hint in kilometres

        Returns:
            List of raw event dictionaries in the catalog's own shape

        Raises:
            requests.RequestException: If the catalog cannot be reached
            ValueError: If the payload does not have the expected shape
        """

    def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> dict:
        """
        GET a JSON document with retry logic.

        Args:
            url: Endpoint URL
            params: Query parameters
            headers: Extra request headers

        Returns:
            Decoded JSON body

        Raises:
            requests.RequestException: If all retry attempts fail
            ValueError: If the body is not a JSON object
        """
        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Fetching {self.source_kind.value} catalog "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                response = self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout
                )
                response.raise_for_status()
                break

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    # Calculate exponential backoff delay
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(
                f"Unexpected {self.source_kind.value} payload: {type(data).__name__}"
            )
        return data


class TicketmasterClient(TicketingCatalogClient):
    """Client for the Ticketmaster Discovery API."""

    BASE_URL = "https://app.ticketmaster.com/discovery/v2/events.json"
    PAGE_SIZE = 200

    source_kind = SourceKind.TICKETMASTER

    def __init__(self, api_key: str, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    def fetch_events(self, origin: Optional[Origin], radius_km: Optional[float]) -> List[dict]:
        params = {
            'apikey': self.api_key,
            'size': str(self.PAGE_SIZE),
        }
        if origin is not None:
            params['latlong'] = f"{origin.latitude},{origin.longitude}"
            params['sort'] = 'distance,asc'
            # Infinite or NaN radius means no radius hint
            if radius_km is not None and math.isfinite(radius_km):
                params['radius'] = str(max(1, round(radius_km)))
                params['unit'] = 'km'

        data = self._get_json(self.BASE_URL, params=params)
        embedded = data.get('_embedded') or {}
        if not isinstance(embedded, dict):
            raise ValueError(
                f"Unexpected Ticketmaster _embedded: {type(embedded).__name__}"
            )
        events = _event_list(embedded.get('events'), 'Ticketmaster')

        logger.info(f"Fetched {len(events)} events from Ticketmaster")
        return events


class SymplaClient(TicketingCatalogClient):
    """Client for the Sympla public events API."""

    BASE_URL = "https://api.sympla.com.br/public/v4/events"

    source_kind = SourceKind.SYMPLA

    def __init__(self, token: str, **kwargs):
        super().__init__(**kwargs)
        self.token = token

    def fetch_events(self, origin: Optional[Origin], radius_km: Optional[float]) -> List[dict]:
        # Sympla has no geo search; radius filtering happens after normalization
        data = self._get_json(
            self.BASE_URL,
            headers={
                'Content-Type': 'application/json',
                's_token': self.token,
            }
        )
        events = _event_list(data.get('data'), 'Sympla')

        logger.info(f"Fetched {len(events)} events from Sympla")
        return events


def _event_list(value, catalog_name: str) -> List[dict]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(
            f"Unexpected {catalog_name} event list: {type(value).__name__}"
        )
    return value
