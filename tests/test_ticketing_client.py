"""Unit tests for the ticketing catalog clients."""
from urllib.parse import parse_qs, urlparse

import pytest
import responses
from requests.exceptions import RequestException, Timeout

from catalog.ticketing_client import SymplaClient, TicketingCatalogClient, TicketmasterClient
from discovery.models import Origin, SourceKind

TICKETMASTER_URL = "https://app.ticketmaster.com/discovery/v2/events.json"
SYMPLA_URL = "https://api.sympla.com.br/public/v4/events"


def query_of(call):
    return parse_qs(urlparse(call.request.url).query)


class TestTicketmasterClient:
    """Test cases for TicketmasterClient class."""

    @responses.activate
    def test_fetch_events_success(self):
        """Test successful fetch returns the embedded events."""
        responses.add(
            responses.GET,
            TICKETMASTER_URL,
            json={'_embedded': {'events': [{'id': 'a', 'name': 'Show A'}, {'id': 'b'}]}},
            status=200
        )

        client = TicketmasterClient(api_key='key-123', retry_delay=0)
        events = client.fetch_events(Origin(-23.55, -46.63), 50)

        assert [e['id'] for e in events] == ['a', 'b']
        params = query_of(responses.calls[0])
        assert params['apikey'] == ['key-123']
        assert params['latlong'] == ['-23.55,-46.63']
        assert params['radius'] == ['50']
        assert params['unit'] == ['km']

    @responses.activate
    def test_fetch_events_without_origin(self):
        """Test no geo parameters are sent when location is unknown."""
        responses.add(responses.GET, TICKETMASTER_URL, json={'page': {}}, status=200)

        client = TicketmasterClient(api_key='key-123', retry_delay=0)
        events = client.fetch_events(None, 50)

        assert events == []
        params = query_of(responses.calls[0])
        assert 'latlong' not in params
        assert 'radius' not in params

    @responses.activate
    def test_fetch_events_with_retry_success(self):
        """Test retry logic succeeds after initial failures."""
        responses.add(responses.GET, TICKETMASTER_URL, body="Server Error", status=500)
        responses.add(responses.GET, TICKETMASTER_URL, body="Server Error", status=503)
        responses.add(
            responses.GET,
            TICKETMASTER_URL,
            json={'_embedded': {'events': [{'id': 'a'}]}},
            status=200
        )

        client = TicketmasterClient(api_key='key', retry_delay=0)
        events = client.fetch_events(Origin(0, 0), 10)

        assert len(events) == 1
        assert len(responses.calls) == 3

    @responses.activate
    def test_fetch_events_all_retries_fail(self):
        """Test that exception is raised when all retries fail."""
        for _ in range(3):
            responses.add(responses.GET, TICKETMASTER_URL, body="Server Error", status=500)

        client = TicketmasterClient(api_key='key', retry_delay=0)

        with pytest.raises(RequestException):
            client.fetch_events(Origin(0, 0), 10)

        assert len(responses.calls) == 3

    @responses.activate
    def test_fetch_events_timeout(self):
        """Test timeout handling."""
        for _ in range(2):
            responses.add(responses.GET, TICKETMASTER_URL, body=Timeout("Request timed out"))

        client = TicketmasterClient(api_key='key', max_retries=2, retry_delay=0)

        with pytest.raises(Timeout):
            client.fetch_events(Origin(0, 0), 10)

        assert len(responses.calls) == 2

    @responses.activate
    def test_fetch_events_malformed_json(self):
        """Test that a non-JSON body raises ValueError."""
        responses.add(responses.GET, TICKETMASTER_URL, body="<html>oops</html>", status=200)

        client = TicketmasterClient(api_key='key', retry_delay=0)

        with pytest.raises(ValueError):
            client.fetch_events(Origin(0, 0), 10)

    @responses.activate
    def test_fetch_events_unexpected_payload(self):
        """Test that a JSON array instead of an object raises ValueError."""
        responses.add(responses.GET, TICKETMASTER_URL, json=[1, 2, 3], status=200)

        client = TicketmasterClient(api_key='key', retry_delay=0)

        with pytest.raises(ValueError):
            client.fetch_events(Origin(0, 0), 10)

    @pytest.mark.parametrize('radius_km', [float('inf'), float('nan')])
    @responses.activate
    def test_fetch_events_non_finite_radius(self, radius_km):
        """Test that an unbounded radius sends no radius hint."""
        responses.add(
            responses.GET,
            TICKETMASTER_URL,
            json={'_embedded': {'events': [{'id': 'a'}]}},
            status=200
        )

        client = TicketmasterClient(api_key='key', retry_delay=0)
        events = client.fetch_events(Origin(-23.55, -46.63), radius_km)

        assert [e['id'] for e in events] == ['a']
        params = query_of(responses.calls[0])
        assert params['latlong'] == ['-23.55,-46.63']
        assert 'radius' not in params
        assert 'unit' not in params

    @pytest.mark.parametrize('body', [
        {'_embedded': 'oops'},
        {'_embedded': {'events': 'oops'}},
        {'_embedded': {'events': {'id': 'a'}}},
    ])
    @responses.activate
    def test_fetch_events_malformed_embedded(self, body):
        """Test that a wrongly shaped event list raises ValueError."""
        responses.add(responses.GET, TICKETMASTER_URL, json=body, status=200)

        client = TicketmasterClient(api_key='key', retry_delay=0)

        with pytest.raises(ValueError):
            client.fetch_events(Origin(0, 0), 10)

    def test_source_kind(self):
        assert TicketmasterClient(api_key='key').source_kind == SourceKind.TICKETMASTER


class TestSymplaClient:
    """Test cases for SymplaClient class."""

    @responses.activate
    def test_fetch_events_sends_token(self):
        """Test token header and data extraction."""
        responses.add(
            responses.GET,
            SYMPLA_URL,
            json={'data': [{'id': 1, 'name': 'Feira'}]},
            status=200
        )

        client = SymplaClient(token='tok', retry_delay=0)
        events = client.fetch_events(Origin(-23.55, -46.63), 25)

        assert events == [{'id': 1, 'name': 'Feira'}]
        assert responses.calls[0].request.headers['s_token'] == 'tok'

    @responses.activate
    def test_fetch_events_unauthorized(self):
        """Test that a 401 is raised after retries."""
        for _ in range(3):
            responses.add(responses.GET, SYMPLA_URL, json={'error': 'denied'}, status=401)

        client = SymplaClient(token='bad', retry_delay=0)

        with pytest.raises(RequestException):
            client.fetch_events(None, None)

    @responses.activate
    def test_fetch_events_malformed_data(self):
        """Test that a non-list data field raises ValueError."""
        responses.add(responses.GET, SYMPLA_URL, json={'data': 'oops'}, status=200)

        client = SymplaClient(token='tok', retry_delay=0)

        with pytest.raises(ValueError):
            client.fetch_events(None, None)


def test_catalog_client_is_abstract():
    with pytest.raises(TypeError):
        TicketingCatalogClient()
