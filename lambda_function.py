"""AWS Lambda handler for nearby event discovery."""
import json
import logging
import math
import os
import time
from dataclasses import asdict
from typing import Any, Dict, Optional

from catalog.ticketing_client import SymplaClient, TicketmasterClient
from discovery.event_normalizer import EventNormalizer
from discovery.exceptions import BothSourcesFailed
from discovery.markers import group_and_offset
from discovery.models import Origin
from discovery.ranking import ALL_CATEGORIES, rank_by_distance, search_events
from discovery.reconciler import SOURCE_REMOTE, SOURCES, EventReconciler
from storage.event_store import DynamoDBEventStore
from storage.image_store import S3ImageStore


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


class InvalidRequest(ValueError):
    """Query parameters of a discovery request are invalid."""


def parse_request(event: Dict[str, Any], default_radius_km: float) -> Dict[str, Any]:
    """
    Read discovery parameters from an API Gateway proxy event.

    Args:
        event: API Gateway event payload
        default_radius_km: Radius used when the request names none

    Returns:
        Dict with origin, radius_km, query, category, source and view

    Raises:
        InvalidRequest: If a parameter is malformed
    """
    params = event.get('queryStringParameters') or {}

    lat = params.get('lat')
    lon = params.get('lon')
    origin = None
    if lat not in (None, '') or lon not in (None, ''):
        if lat in (None, '') or lon in (None, ''):
            raise InvalidRequest("lat and lon must be given together")
        try:
            origin = Origin(latitude=float(lat), longitude=float(lon))
        except ValueError:
            raise InvalidRequest(f"Invalid coordinates: {lat}, {lon}")
        if not (-90 <= origin.latitude <= 90 and -180 <= origin.longitude <= 180):
            raise InvalidRequest(f"Coordinates out of range: {lat}, {lon}")

    radius_km = default_radius_km
    if params.get('radius_km'):
        try:
            radius_km = float(params['radius_km'])
        except ValueError:
            raise InvalidRequest(f"Invalid radius_km: {params['radius_km']}")
        if math.isnan(radius_km):
            raise InvalidRequest("radius_km must be a number")
        if radius_km < 0:
            raise InvalidRequest("radius_km must not be negative")

    source = params.get('source') or SOURCE_REMOTE
    if source not in SOURCES:
        raise InvalidRequest(f"Unknown source: {source}")

    view = params.get('view') or 'list'
    if view not in ('list', 'map'):
        raise InvalidRequest(f"Unknown view: {view}")

    return {
        'origin': origin,
        'radius_km': radius_km,
        'query': params.get('q') or '',
        'category': params.get('category') or ALL_CATEGORIES,
        'source': source,
        'view': view,
    }


def build_catalog_client(timeout: float, max_retries: int):
    """Create the remote catalog client named by CATALOG_PROVIDER."""
    provider = os.environ.get('CATALOG_PROVIDER', 'ticketmaster')
    if provider == 'sympla':
        return SymplaClient(
            token=os.environ.get('SYMPLA_TOKEN', ''),
            timeout=timeout,
            max_retries=max_retries
        )
    return TicketmasterClient(
        api_key=os.environ.get('TICKETMASTER_API_KEY', ''),
        timeout=timeout,
        max_retries=max_retries
    )


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for nearby event discovery.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    # Read configuration from environment variables
    table_name = os.environ.get('EVENTS_TABLE', 'nearby-events')
    images_bucket = os.environ.get('IMAGES_BUCKET')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    default_radius_km = float(os.environ.get('DEFAULT_RADIUS_KM', '50'))
    timeout_seconds = float(os.environ.get('TIMEOUT_SECONDS', '10'))
    max_retries = int(os.environ.get('MAX_RETRIES', '3'))

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()

    try:
        request = parse_request(event or {}, default_radius_km)
    except InvalidRequest as e:
        logger.warning(f"Rejected discovery request: {e}")
        return _response(400, {'message': 'Invalid request', 'error': str(e)})

    logger.info(
        "Discovery request started",
        extra={
            'source_preference': request['source'],
            'radius_km': request['radius_km'],
            'has_origin': request['origin'] is not None,
            'view': request['view']
        }
    )

    try:
        image_store: Optional[S3ImageStore] = None
        if images_bucket:
            image_store = S3ImageStore(bucket_name=images_bucket)

        reconciler = EventReconciler(
            catalog_client=build_catalog_client(timeout_seconds, max_retries),
            event_store=DynamoDBEventStore(
                table_name=table_name,
                image_store=image_store,
                timeout=timeout_seconds
            ),
            normalizer=EventNormalizer()
        )

        try:
            result = reconciler.fetch_events(
                request['origin'],
                request['radius_km'],
                source_preference=request['source']
            )
        except BothSourcesFailed as e:
            logger.error(
                f"No event source available: {e}",
                extra={'error_type': type(e).__name__}
            )
            duration = time.time() - start_time
            return _response(503, {
                'message': 'Could not load events right now. Please try again.',
                'retryable': True,
                'errors': [str(failure) for failure in e.failures],
                'duration_seconds': round(duration, 2)
            })

        records = rank_by_distance(result.records)
        records = search_events(records, request['query'], request['category'])
        if request['view'] == 'map':
            records = group_and_offset(records)

        duration = time.time() - start_time

        logger.info(
            "Discovery request completed",
            extra={
                'duration_seconds': round(duration, 2),
                'source_used': result.source_used,
                'degraded': result.degraded,
                'returned': len(records)
            }
        )

        return _response(200, {
            'records': [asdict(record) for record in records],
            'source_used': result.source_used,
            'degraded': result.degraded,
            'statistics': {
                'returned': len(records),
                'dropped': result.dropped_count,
                'excluded_no_location': result.excluded_no_location,
                'duration_seconds': round(duration, 2)
            },
            'errors': result.errors
        })

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"Discovery request failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return _response(500, {
            'message': 'Discovery failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })
