"""
Shared fixtures for synopticts tests.

HTTP is mocked by replacing ``SynopticClient._client`` with a Mock whose
``get`` returns canned Synoptic JSON for each endpoint.
"""

import copy
import logging
from unittest.mock import Mock

import pytest

from synopticts.client import SynopticClient
from synopticts.config import SynopticConfig
from synopticts.datastore import SynopticDataStore


def pytest_configure(config):
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


SUMMARY_OK = {
    "RESPONSE_CODE": 1,
    "RESPONSE_MESSAGE": "OK",
    "NUMBER_OF_OBJECTS": 1,
    "VERSION": "v2.21.0",
}

NETWORKS_JSON = {
    "MNET": [
        {
            "ID": "153",
            "SHORTNAME": "UUNET",
            "LONGNAME": "University of Utah Mesonet",
            "CATEGORY": "10",
            "ACTIVE_STATIONS": 45,
            "TOTAL_STATIONS": 70,
            "PERCENT_ACTIVE": "64.3",
        },
        {
            "ID": "1",
            "SHORTNAME": "NWS/FAA",
            "LONGNAME": "National Weather Service/Federal Aviation Administration",
            "CATEGORY": "1",
        },
        {
            "ID": "2",
            "SHORTNAME": "RAWS",
            "LONGNAME": "Interagency Remote Automatic Weather Stations",
            "CATEGORY": "2",
            "UNDOCUMENTED": {"ignored": True},
        },
        {
            "ID": "65",
            "SHORTNAME": "CO DOT",
            "LONGNAME": "Colorado Department of Transportation",
            "CATEGORY": "4",
        },
    ],
    "SUMMARY": SUMMARY_OK,
}

VARIABLES_JSON = {
    "VARIABLES": [
        {"air_temp": {"long_name": "Temperature", "unit": "Celsius"}},
        {"wind_speed": {"long_name": "Wind Speed", "unit": "m/s"}},
        {"Relative_humidity": {"long_name": "Relative Humidity", "unit": "%"}},
    ],
    "SUMMARY": SUMMARY_OK,
}

WBB_METADATA_JSON = {
    "STATION": [
        {
            "STID": "WBB",
            "NAME": "U of U William Browning Building",
            "MNET_ID": "153",
            "STATE": "UT",
            "STATUS": "ACTIVE",
            "TIMEZONE": "America/Denver",
            "LATITUDE": "40.76623",
            "LONGITUDE": "-111.84755",
            "ELEVATION": "4806",
            "ELEV_DEM": "",
            "QC_FLAGGED": False,
            "SENSOR_VARIABLES": {
                "air_temp": {
                    "air_temp_value_1": {
                        "period_of_record": {
                            "start": "2020-01-01T00:00:00Z",
                            "end": "2023-01-01T00:00:00Z",
                        }
                    }
                }
            },
        }
    ],
    "UNITS": {"air_temp": "Fahrenheit", "position": "ft", "elevation": "ft"},
    "SUMMARY": SUMMARY_OK,
}

WIND_METADATA_JSON = {
    "STATION": [
        {
            "STID": "KSLC",
            "NAME": "Salt Lake City International Airport",
            "MNET_ID": "1",
            "STATE": "UT",
            "STATUS": "ACTIVE",
            "TIMEZONE": "America/Denver",
            "LATITUDE": "40.77069",
            "LONGITUDE": "-111.96503",
            "ELEVATION": None,
            "SENSOR_VARIABLES": {
                "wind_speed": {
                    "wind_speed_value_1": {
                        "period_of_record": {
                            "start": "1997-01-01T00:00:00Z",
                            "end": "2023-06-01T00:00:00Z",
                        }
                    },
                    "wind_speed_value_2": {
                        "period_of_record": {
                            "start": "2015-01-01T00:00:00Z",
                            "end": "2023-06-01T00:00:00Z",
                        }
                    },
                },
                "air_temp": {"air_temp_value_1": {}},
            },
        },
        {
            "STID": "EMPTY",
            "NAME": "Station Without Sensors",
            "MNET_ID": "999",
            "SENSOR_VARIABLES": {},
        },
    ],
    "UNITS": {"wind_speed": "m/s", "air_temp": "Celsius"},
    "SUMMARY": SUMMARY_OK,
}

WBB_TIMESERIES_JSON = {
    "STATION": [
        {
            "STID": "WBB",
            "NAME": "U of U William Browning Building",
            "TIMEZONE": "America/Denver",
            "OBSERVATIONS": {
                "date_time": ["2023-01-01T00:00:00Z", "2023-01-01T00:05:00Z"],
                "air_temp_set_1": [-5.6, None],
            },
        }
    ],
    "UNITS": {"position": "ft", "air_temp": "Celsius"},
    "SUMMARY": SUMMARY_OK,
}


def make_response(data):
    """Create a mock httpx response returning ``data`` from json()."""
    response = Mock()
    response.json.return_value = copy.deepcopy(data)
    response.raise_for_status.return_value = None
    return response


def route_responses(responses):
    """
    Create a ``get`` side effect returning the response for the requested endpoint.

    ``responses`` maps an endpoint ('networks', 'stations/metadata', ...) to
    JSON data or to an exception to raise.
    """

    def get(url, params=None):
        for endpoint, data in responses.items():
            if url.endswith("/" + endpoint):
                if isinstance(data, Exception):
                    raise data
                return make_response(data)
        raise AssertionError(f"Unexpected request: {url}")

    return get


@pytest.fixture
def config():
    return SynopticConfig(api_token="test-token", service_root_uri="https://synoptic.test/v2/")


@pytest.fixture
def responses():
    """Endpoint responses used by the mocked client; tests may replace entries."""
    return {
        "networks": NETWORKS_JSON,
        "variables": VARIABLES_JSON,
        "stations/metadata": WBB_METADATA_JSON,
        "stations/timeseries": WBB_TIMESERIES_JSON,
    }


@pytest.fixture
def client(config, responses):
    """SynopticClient with mocked HTTP transport."""
    client = SynopticClient(config)
    mock_http = Mock()
    mock_http.get.side_effect = route_responses(responses)
    client._client = mock_http
    return client


@pytest.fixture
def datastore(config, client):
    """SynopticDataStore with reference lists loaded through the mocked client."""
    return SynopticDataStore(config, client=client)


def requested_params(client, endpoint):
    """Return the query parameters of the last request to ``endpoint``."""
    for call in reversed(client._client.get.call_args_list):
        if call.args[0].endswith("/" + endpoint):
            return call.kwargs["params"]
    raise AssertionError(f"No request to {endpoint}")
