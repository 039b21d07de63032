"""
Tests for the Registry API Client

These tests use mocking to avoid hitting the real API.
The live smoke test is marked integration (use --run-integration).
"""

import os

import pytest
import requests
from unittest.mock import Mock, patch

from config import Config
from scrapers.registry_client import (
    RegistryAPIClient,
    RegistryAPIError,
    RegistryPageResponse,
    MAX_RETRIES,
    format_address,
    parse_registry_record,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def mock_api_key(monkeypatch):
    """Set FOIA_API_KEY on the loaded config."""
    monkeypatch.setattr(Config, "FOIA_API_KEY", "test-api-key-12345")


@pytest.fixture
def mock_rate_limiter():
    with patch("scrapers.registry_client.get_scraper_rate_limiter") as limiter:
        limiter.return_value.wait = Mock()
        yield limiter


def make_component(unit_id, title="Unit", parent_id="agency-1", **attrs):
    attributes = {"title": title, "abbreviation": f"U{unit_id}"}
    attributes.update(attrs)
    return {
        "type": "agency_component",
        "id": unit_id,
        "attributes": attributes,
        "relationships": {"agency": {"data": {"type": "agency", "id": parent_id}}},
    }


def make_page(count, start=0, parent_id="agency-1"):
    return {
        "data": [make_component(f"unit-{start + i}", title=f"Unit {start + i}", parent_id=parent_id)
                 for i in range(count)],
        "included": [
            {
                "type": "agency",
                "id": parent_id,
                "attributes": {"name": "Department of Justice", "abbreviation": "DOJ"},
            }
        ],
    }


def ok_response(payload):
    response = Mock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = payload
    return response


def error_response(status_code):
    response = Mock()
    response.ok = False
    response.status_code = status_code
    return response


# =============================================================================
# Parsing
# =============================================================================

class TestParseRegistryRecord:
    """Tests for JSON:API component parsing."""

    def test_parent_resolved_from_included(self):
        parents = {
            "agency-1": {"id": "agency-1", "attributes": {"name": "Department of Justice", "abbreviation": "DOJ"}}
        }
        record = parse_registry_record(make_component("abc", title="Office of Information Policy"), parents)

        assert record.unit_id == "abc"
        assert record.title == "Office of Information Policy"
        assert record.parent_agency_id == "agency-1"
        assert record.parent_agency_name == "Department of Justice"
        assert record.parent_abbreviation == "DOJ"

    def test_missing_parent_gives_empty_names(self):
        record = parse_registry_record(make_component("abc", parent_id="unknown"), {})
        assert record.parent_agency_name == ""
        assert record.parent_abbreviation == ""

    def test_emails_collected_in_order_without_duplicates(self):
        component = make_component(
            "abc",
            emails=["foia@doj.gov"],
            submission_address={"email": "mail@doj.gov"},
            foia_officer={"email": "foia@doj.gov", "name": "Jane Roe", "phone": "202-555-0100"},
            request_form={"email": "form@doj.gov"},
        )
        record = parse_registry_record(component)

        assert record.structured_emails == ["foia@doj.gov", "mail@doj.gov", "form@doj.gov"]
        assert record.foia_officer == "Jane Roe"
        assert record.phone == "202-555-0100"

    def test_non_string_emails_dropped(self):
        component = make_component(
            "abc",
            emails=[{"address": "x@doj.gov"}, None, 42, " foia@doj.gov "],
            foia_officer={"email": {"value": "officer@doj.gov"}},
            submission_address="441 G St NW",
        )
        assert parse_registry_record(component).structured_emails == ["foia@doj.gov"]

    def test_emails_mapping_ignored(self):
        component = make_component("abc", emails={"main": "foia@doj.gov"})
        assert parse_registry_record(component).structured_emails == []

    def test_website_falls_back_to_request_form(self):
        component = make_component("abc", request_form={"uri": "https://doj.gov/form"})
        assert parse_registry_record(component).website == "https://doj.gov/form"

    def test_phone_falls_back_to_public_liaison(self):
        component = make_component("abc", public_liaison={"phone": "(202) 555-0199"})
        assert parse_registry_record(component).phone == "(202) 555-0199"


class TestFormatAddress:

    def test_full_address(self):
        address = {
            "address_lines": ["Office of Information Policy", "441 G St NW"],
            "city": "Washington",
            "state": "DC",
            "zip": "20530",
        }
        assert format_address(address) == "Office of Information Policy, 441 G St NW, Washington, DC 20530"

    def test_empty_address(self):
        assert format_address(None) == ""
        assert format_address({}) == ""


# =============================================================================
# Client
# =============================================================================

class TestRegistryAPIClientInit:

    def test_init_with_config_key(self, mock_api_key, mock_rate_limiter):
        client = RegistryAPIClient()
        assert client.api_key == "test-api-key-12345"
        assert client._session.headers["X-API-Key"] == "test-api-key-12345"

    def test_init_with_explicit_key(self, mock_rate_limiter):
        client = RegistryAPIClient(api_key="explicit-key")
        assert client.api_key == "explicit-key"

    def test_init_without_key_raises(self, monkeypatch, mock_rate_limiter):
        monkeypatch.setattr(Config, "FOIA_API_KEY", "")
        with pytest.raises(RegistryAPIError) as exc_info:
            RegistryAPIClient()
        assert "FOIA_API_KEY" in str(exc_info.value)


class TestFetchPage:

    def test_success(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.return_value = ok_response(make_page(3))

            response = RegistryAPIClient().fetch_page(page_size=50, offset=0)

            assert isinstance(response, RegistryPageResponse)
            assert response.success
            assert response.raw_count == 3
            assert [r.unit_id for r in response.records] == ["unit-0", "unit-1", "unit-2"]
            assert response.records[0].parent_abbreviation == "DOJ"

            params = mock_get.call_args.kwargs["params"]
            assert params["include"] == "agency"
            assert params["page[limit]"] == 50
            assert params["page[offset]"] == 0

    def test_http_error_not_retried(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.return_value = error_response(500)

            response = RegistryAPIClient().fetch_page(page_size=50, offset=100)

            assert not response.success
            assert response.status_code == 500
            assert mock_get.call_count == 1

    @patch("scrapers.registry_client.time.sleep")
    def test_transport_error_retried_then_failed(self, mock_sleep, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.side_effect = requests.exceptions.ConnectionError("connection reset")

            response = RegistryAPIClient().fetch_page(page_size=50, offset=0)

            assert not response.success
            assert mock_get.call_count == MAX_RETRIES
            assert response.retry_count == MAX_RETRIES
            assert mock_sleep.call_count == MAX_RETRIES - 1

    @patch("scrapers.registry_client.time.sleep")
    def test_transport_error_recovers(self, mock_sleep, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.side_effect = [requests.exceptions.Timeout("slow"), ok_response(make_page(2))]

            response = RegistryAPIClient().fetch_page(page_size=50, offset=0)

            assert response.success
            assert response.retry_count == 1
            assert len(response.records) == 2

    def test_malformed_json_fails_page(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            bad = ok_response(None)
            bad.json.side_effect = ValueError("Expecting value")
            mock_get.return_value = bad

            response = RegistryAPIClient().fetch_page(page_size=50, offset=0)

            assert not response.success
            assert "Malformed" in response.error

    @pytest.mark.parametrize("body", [None, [{"id": "x"}], {"data": {"id": "x"}}])
    def test_wrong_body_shape_fails_page(self, body, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.return_value = ok_response(body)

            response = RegistryAPIClient().fetch_page(page_size=50, offset=0)

            assert not response.success
            assert "Malformed" in response.error
            assert mock_get.call_count == 1

    def test_non_object_items_skipped(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            payload = make_page(2)
            payload["data"].insert(1, "garbage")
            payload["included"].append(None)
            mock_get.return_value = ok_response(payload)

            response = RegistryAPIClient().fetch_page(page_size=50, offset=0)

            assert response.success
            assert [r.unit_id for r in response.records] == ["unit-0", "unit-1"]
            assert response.records[0].parent_agency_name == "Department of Justice"


class TestFetchPagination:

    def test_short_page_stops_after_one_request(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.return_value = ok_response(make_page(30))

            records = RegistryAPIClient().fetch_all(page_size=50)

            assert len(records) == 30
            assert mock_get.call_count == 1

    def test_full_pages_continue_until_short(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.side_effect = [
                ok_response(make_page(2, start=0)),
                ok_response(make_page(2, start=2)),
                ok_response(make_page(1, start=4)),
            ]

            ids = RegistryAPIClient().fetch_unit_ids(page_size=2)

            assert ids == ["unit-0", "unit-1", "unit-2", "unit-3", "unit-4"]
            offsets = [c.kwargs["params"]["page[offset]"] for c in mock_get.call_args_list]
            assert offsets == [0, 2, 4]

    def test_empty_page_stops(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.side_effect = [ok_response(make_page(2)), ok_response({"data": [], "included": []})]

            records = RegistryAPIClient().fetch_all(page_size=2)

            assert len(records) == 2
            assert mock_get.call_count == 2

    def test_failed_page_keeps_earlier_records(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.side_effect = [ok_response(make_page(2)), error_response(503)]

            records = RegistryAPIClient().fetch_all(page_size=2)

            assert [r.unit_id for r in records] == ["unit-0", "unit-1"]

    def test_page_ceiling(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.side_effect = lambda *a, **kw: ok_response(make_page(2))

            records = RegistryAPIClient(max_pages=3).fetch_all(page_size=2)

            assert len(records) == 6
            assert mock_get.call_count == 3

    def test_fetch_is_lazy(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.return_value = ok_response(make_page(2))

            iterator = RegistryAPIClient().fetch(page_size=2)
            assert mock_get.call_count == 0

            next(iterator)
            assert mock_get.call_count == 1

    @pytest.mark.parametrize("body", [None, [{"id": "x"}]])
    def test_wrong_body_shape_ends_enumeration(self, body, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.return_value = ok_response(body)
            assert list(RegistryAPIClient().fetch(50)) == []

    def test_wrong_body_shape_keeps_earlier_pages(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.side_effect = [ok_response(make_page(2)), ok_response(None)]

            records = RegistryAPIClient().fetch_all(page_size=2)

            assert [r.unit_id for r in records] == ["unit-0", "unit-1"]

    def test_invalid_page_size(self, mock_api_key, mock_rate_limiter):
        with pytest.raises(ValueError):
            list(RegistryAPIClient().fetch(page_size=-1))


class TestFetchUnit:

    def test_found(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            payload = make_page(1)
            payload["data"] = payload["data"][0]
            mock_get.return_value = ok_response(payload)

            record = RegistryAPIClient().fetch_unit("unit-0")

            assert record.unit_id == "unit-0"
            assert record.parent_agency_name == "Department of Justice"

    def test_not_found(self, mock_api_key, mock_rate_limiter):
        with patch("requests.Session.get") as mock_get:
            mock_get.return_value = error_response(404)
            assert RegistryAPIClient().fetch_unit("missing") is None


# =============================================================================
# Integration
# =============================================================================

@pytest.mark.integration
def test_live_registry_first_page():
    """Fetch one real page (needs FOIA_API_KEY and network)."""
    if not os.getenv("FOIA_API_KEY"):
        pytest.skip("FOIA_API_KEY not set")

    with RegistryAPIClient(api_key=os.getenv("FOIA_API_KEY")) as client:
        response = client.fetch_page(page_size=5, offset=0)

    assert response.success
    assert response.records
    assert all(r.unit_id for r in response.records)
