"""
Unit tests for the OneMap client and its payload models.
"""

import pytest
import requests

from conftest import FakeResponse, FakeSession, onemap_row
from subzone_resolver.cache.models import OneMapResult
from subzone_resolver.clients.onemap import ONEMAP_SEARCH_URL, OneMapClient
from subzone_resolver.errors import OneMapNetworkError, OneMapResponseError
from subzone_resolver.stages import AddressStage


def test_search_sends_expected_params():
    session = FakeSession(FakeResponse({
        "found": 1,
        "totalNumPages": 1,
        "pageNum": 1,
        "results": [onemap_row("123 BEDOK NORTH ST 1", 1.33, 103.93, postal="460123")],
    }))
    client = OneMapClient(session=session, timeout=5)

    response = client.search("460123")

    request = session.requests[0]
    assert request["url"] == ONEMAP_SEARCH_URL
    assert request["params"] == {
        "searchVal": "460123",
        "returnGeom": "Y",
        "getAddrDetails": "Y",
        "pageNum": 1,
    }
    assert request["timeout"] == 5
    assert not response.is_empty
    assert response.results[0].coordinates() == (1.33, 103.93)
    assert response.results[0].postal_code == "460123"


def test_token_sets_bearer_header():
    session = FakeSession()
    OneMapClient(session=session, token="secret")
    assert session.headers["Authorization"] == "Bearer secret"


def test_empty_response():
    session = FakeSession(FakeResponse({"found": 0, "totalNumPages": 0, "pageNum": 1, "results": []}))
    assert OneMapClient(session=session).search("nowhere").is_empty


def test_null_fields_do_not_reject_other_rows():
    blank_row = onemap_row("BEDOK NORTH DEPOT", 1.3330, 103.9380)
    blank_row["ROAD_NAME"] = None
    blank_row["BUILDING"] = None
    payload = {
        "found": 2,
        "totalNumPages": 1,
        "pageNum": 1,
        "results": [onemap_row("BEDOK MALL", 1.3249, 103.9294, road_name="NEW UPPER CHANGI ROAD"), blank_row],
    }

    response = OneMapClient(session=FakeSession(FakeResponse(payload))).search("Bedok Mall")
    assert len(response.results) == 2
    assert response.results[1].ROAD_NAME == ""
    assert response.results[1].BUILDING == ""
    assert response.results[1].LONGTITUDE is None

    stage = AddressStage(OneMapClient(session=FakeSession(FakeResponse(payload))))
    result = stage.run("Bedok Mall")
    assert result.success
    assert result.geocode_result.address == "BEDOK MALL"


def test_missing_found_count_is_not_empty():
    payload = {"results": [onemap_row("BEDOK MALL", 1.3249, 103.9294)]}

    response = OneMapClient(session=FakeSession(FakeResponse(payload))).search("Bedok Mall")
    assert response.found is None
    assert not response.is_empty

    stage = AddressStage(OneMapClient(session=FakeSession(FakeResponse(payload))))
    assert stage.run("Bedok Mall").success


def test_http_error_raises_network_error():
    session = FakeSession(FakeResponse({}, status_code=503))
    with pytest.raises(OneMapNetworkError) as exc_info:
        OneMapClient(session=session).search("460123")
    assert exc_info.value.status_code == 503


def test_transport_error_raises_network_error():
    session = FakeSession(requests.ConnectionError("connection refused"))
    with pytest.raises(OneMapNetworkError):
        OneMapClient(session=session).search("460123")


def test_non_json_body_raises_response_error():
    session = FakeSession(FakeResponse(json_error=True))
    with pytest.raises(OneMapResponseError):
        OneMapClient(session=session).search("460123")


def test_unexpected_shape_raises_response_error():
    session = FakeSession(FakeResponse(["not", "a", "dict"]))
    with pytest.raises(OneMapResponseError):
        OneMapClient(session=session).search("460123")

    session = FakeSession(FakeResponse({"found": "many", "results": []}))
    with pytest.raises(OneMapResponseError):
        OneMapClient(session=session).search("460123")


def test_result_coordinates_edge_cases():
    assert OneMapResult(LATITUDE="1.3", LONGITUDE="abc").coordinates() is None
    assert OneMapResult(LATITUDE="", LONGITUDE="103.8").coordinates() is None
    assert OneMapResult(LATITUDE="nan", LONGITUDE="103.8").coordinates() is None
    # Misspelled longitude key used by some OneMap responses
    assert OneMapResult(LATITUDE="1.3", LONGTITUDE="103.8").coordinates() == (1.3, 103.8)
    # Numeric values are coerced to strings
    assert OneMapResult(LATITUDE=1.3, LONGITUDE=103.8).coordinates() == (1.3, 103.8)


def test_result_address_and_postal():
    row = OneMapResult(SEARCHVAL="TAMPINES MALL", ADDRESS="", POSTAL="NIL")
    assert row.display_address == "TAMPINES MALL"
    assert row.postal_code is None
