"""
HTTP client for the Synoptic Data web services.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from .config import SynopticConfig
from .decode import decode_record, decode_records
from .exceptions import ServiceError, SynopticConnectionError, SynopticError
from .models import Network, Summary, Variable

logger = logging.getLogger(__name__)

QueryParams = List[Tuple[str, str]]

REDACTED = "***"


def redact_params(params: Sequence[Tuple[str, str]]) -> QueryParams:
    """Return a copy of query parameters with the API token value hidden."""
    return [(k, REDACTED if k == "token" else v) for k, v in params]


class SynopticClient:
    """
    Client for the Synoptic Data REST API (https://docs.synopticdata.com/services).

    All requests are blocking GET requests.  The API token is sent as the
    ``token`` query parameter on every request.  Requests are not retried.
    """

    USER_AGENT = "synopticts/0.2.0"

    def __init__(self, config: Optional[SynopticConfig] = None):
        self.config = config or SynopticConfig()
        self.timeout = self.config.timeout
        self._client = httpx.Client(
            timeout=self.timeout,
            headers={
                "User-Agent": self.USER_AGENT,
                "Accept": "application/json",
            },
        )

    @property
    def base_url(self) -> str:
        return self.config.service_root_uri

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "SynopticClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _with_token(self, params: Optional[Sequence[Tuple[str, str]]]) -> QueryParams:
        return [("token", self.config.api_token)] + list(params or [])

    def request_url(
        self, endpoint: str, params: Optional[Sequence[Tuple[str, str]]] = None
    ) -> str:
        """
        Return the full request URL with the token redacted, for logging and
        for recording on time series.
        """
        url = httpx.URL(
            f"{self.base_url}/{endpoint}", params=redact_params(self._with_token(params))
        )
        return str(url)

    def _make_request(
        self,
        endpoint: str,
        params: Optional[Sequence[Tuple[str, str]]] = None,
        debug: bool = False,
    ) -> Any:
        """Make a request to the Synoptic API with error handling."""
        url = f"{self.base_url}/{endpoint}"
        level = logging.INFO if (debug or self.config.debug) else logging.DEBUG
        logger.log(level, f"Synoptic request: {self.request_url(endpoint, params)}")

        try:
            response = self._client.get(url, params=self._with_token(params))
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise SynopticConnectionError(f"Request timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ServiceError(f"Synoptic endpoint not found: {endpoint}") from e
            elif e.response.status_code == 429:
                raise SynopticConnectionError("Rate limit exceeded") from e
            elif e.response.status_code >= 500:
                raise SynopticConnectionError(
                    "Synoptic service temporarily unavailable"
                ) from e
            else:
                raise SynopticConnectionError(
                    f"HTTP error {e.response.status_code}: {e}"
                ) from e
        except httpx.RequestError as e:
            raise SynopticConnectionError(f"Network error: {e}") from e
        except json.JSONDecodeError as e:
            raise ServiceError(f"Invalid JSON response: {e}") from e

    def get_json(
        self,
        endpoint: str,
        params: Optional[Sequence[Tuple[str, str]]] = None,
        element: Optional[str] = None,
        debug: bool = False,
    ) -> Any:
        """
        Request an endpoint and return the decoded JSON.

        Args:
            endpoint: Path below the service root (e.g., 'stations/metadata')
            params: Query parameters, not including the token
            element: Optional top-level element to return instead of the whole document
            debug: Log the request at info level

        Returns:
            Decoded JSON, or the named element (None if it is not present)
        """
        data = self._make_request(endpoint, params, debug=debug)
        if element is None:
            return data
        if not isinstance(data, dict):
            return None
        return data.get(element)

    @staticmethod
    def check_summary(data: Any) -> Summary:
        """
        Check the SUMMARY object of a response.

        Raises:
            ServiceError: If SUMMARY is absent or RESPONSE_CODE is not success
        """
        node = data.get("SUMMARY") if isinstance(data, dict) else None
        if not isinstance(node, dict):
            raise ServiceError("Synoptic response does not include a SUMMARY")
        summary = decode_record(Summary, node)
        if not summary.is_success:
            raise ServiceError(
                f"Synoptic request failed (RESPONSE_CODE={summary.response_code}): "
                f"{summary.response_message}",
                response_code=summary.response_code,
                response_message=summary.response_message,
            )
        return summary

    def get_networks(self) -> List[Network]:
        """
        Get the list of Synoptic networks.

        Returns:
            List of Network objects from the 'MNET' array
        """
        try:
            nodes = self.get_json("networks", element="MNET")
            if nodes is None:
                raise ServiceError("Synoptic networks response has no MNET array")
            return decode_records(Network, nodes)
        except SynopticError:
            raise
        except Exception as e:
            raise ServiceError(f"Failed to retrieve network list: {e}") from e

    def get_variables(self) -> List[Variable]:
        """
        Get the list of Synoptic sensor variables.

        The 'VARIABLES' array holds single-key objects where the key is the
        variable name, for example ``{"air_temp": {"long_name": ..., "unit": ...}}``.

        Returns:
            List of Variable objects
        """
        try:
            nodes = self.get_json("variables", element="VARIABLES")
            if nodes is None:
                raise ServiceError("Synoptic variables response has no VARIABLES array")
            variables = []
            for node in nodes:
                if not isinstance(node, dict):
                    continue
                for name, detail in node.items():
                    variables.append(
                        decode_record(
                            Variable,
                            detail if isinstance(detail, dict) else {},
                            name=name,
                        )
                    )
            return variables
        except SynopticError:
            raise
        except Exception as e:
            raise ServiceError(f"Failed to retrieve variable list: {e}") from e

    def get_station_metadata(
        self, params: Optional[Sequence[Tuple[str, str]]] = None, debug: bool = False
    ) -> Dict[str, Any]:
        """
        Query station metadata including sensor variables.

        Args:
            params: Additional query parameters (stid, var and filter parameters)
            debug: Log the request at info level

        Returns:
            Decoded response with 'STATION', 'UNITS' and 'SUMMARY' elements
        """
        query: QueryParams = [("complete", "1"), ("sensorvars", "1")]
        query.extend(params or [])
        data = self.get_json("stations/metadata", query, debug=debug)
        self.check_summary(data)
        return data

    def timeseries_params(
        self,
        station_id: str,
        variable: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        units: Optional[str] = None,
    ) -> QueryParams:
        """Query parameters for a 'stations/timeseries' request (without token)."""
        params: QueryParams = [
            ("stid", station_id),
            ("vars", variable),
            ("obtimezone", "local"),
            ("units", units or self.config.units),
        ]
        if start:
            params.append(("start", start))
        if end:
            params.append(("end", end))
        return params

    def get_station_timeseries(
        self,
        station_id: str,
        variable: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        units: Optional[str] = None,
        debug: bool = False,
    ) -> Dict[str, Any]:
        """
        Get observations for one station and sensor variable.

        Args:
            station_id: Station identifier (STID)
            variable: Base sensor variable name (e.g., 'air_temp')
            start: Start of the window in UTC, formatted YYYYmmddHHMM
            end: End of the window in UTC, formatted YYYYmmddHHMM
            units: Unit system, defaults to the configured units
            debug: Log the request at info level

        Returns:
            Decoded response with 'STATION', 'UNITS' and 'SUMMARY' elements
        """
        params = self.timeseries_params(station_id, variable, start, end, units)
        data = self.get_json("stations/timeseries", params, debug=debug)
        self.check_summary(data)
        return data
