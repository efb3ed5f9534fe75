"""
Time series catalog built from Synoptic station metadata.

The ``stations/metadata`` response nests sensor variables by name::

    STATION[] -> SENSOR_VARIABLES{variable -> {variable_out -> {period_of_record}}}

Each (station, variable, variable_out) combination is one catalog entry.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .client import SynopticClient
from .decode import decode_record, to_float
from .exceptions import AmbiguousMatchError, NoMatchError, ValidationError
from .filters import FilterClause, FilterTranslator
from .models import (
    DEFAULT_DATA_SOURCE,
    SYNOPTIC_DATA_INTERVAL,
    CatalogEntry,
    MetadataStation,
)
from .reference import ReferenceData, normalize_shortname
from .tsid import TSIdent

logger = logging.getLogger(__name__)

# Separates the sensor variable and sensor variable output in a data type
DATA_TYPE_SEPARATOR = "-"


def split_data_type(data_type: str) -> Tuple[str, Optional[str]]:
    """
    Split a data type into sensor variable and optional sensor variable output.

    ``air_temp`` gives ``("air_temp", None)`` and
    ``wind_speed-wind_speed_value_2`` gives ``("wind_speed", "wind_speed_value_2")``.
    """
    if DATA_TYPE_SEPARATOR in data_type:
        variable, variable_out = data_type.split(DATA_TYPE_SEPARATOR, 1)
        return variable, variable_out
    return data_type, None


def clean_data_type(data_type: Optional[str]) -> str:
    """Remove a trailing note such as ' - Temperature' from a data type choice."""
    if not data_type:
        return ""
    return data_type.split(" - ", 1)[0].strip()


def is_wildcard(value: Optional[str]) -> bool:
    return value is None or value.strip() in ("", "*")


def check_single_data_type(tsid: TSIdent) -> None:
    """Raise ValidationError if a single time series identifier has a wildcard data type."""
    if is_wildcard(tsid.data_type):
        raise ValidationError(
            f"TSID ({tsid}) data type cannot be * when matching a single time series."
        )


class CatalogBuilder:
    """Queries station metadata and flattens it into catalog entries."""

    def __init__(
        self,
        client: SynopticClient,
        reference: ReferenceData,
        translator: Optional[FilterTranslator] = None,
    ):
        self.client = client
        self.reference = reference
        self.translator = translator or FilterTranslator(reference)

    def build_catalog(
        self,
        identifier: Optional[Union[str, TSIdent]] = None,
        data_type: Optional[str] = None,
        interval: Optional[str] = None,
        filter_clauses: Optional[Iterable[FilterClause]] = None,
        debug: bool = False,
    ) -> List[CatalogEntry]:
        """
        Build the list of time series available from Synoptic.

        Args:
            identifier: Time series identifier to resolve to exactly one entry.
                If given, the other filters are ignored.
            data_type: Sensor variable to limit the query ('*' or None for all)
            interval: Data interval to match ('*' or None for all)
            filter_clauses: Station filters, translated to query parameters
            debug: Log requests at info level

        Returns:
            List of CatalogEntry

        Raises:
            ParseError: If the identifier is malformed
            ServiceError: If the metadata request fails
            NoMatchError: If the identifier matches no entry
            AmbiguousMatchError: If the identifier matches more than one entry
        """
        if identifier is not None:
            return [self.find_entry(identifier, debug=debug)]

        if not is_wildcard(interval) and (
            interval.strip().lower() != SYNOPTIC_DATA_INTERVAL.lower()
        ):
            logger.debug(f"No Synoptic time series have interval '{interval}'")
            return []

        params: List[Tuple[str, str]] = []
        variable = clean_data_type(data_type)
        if not is_wildcard(variable):
            params.append(("var", split_data_type(variable)[0]))
        params.extend(self.translator.to_query_params(filter_clauses or []))

        data = self.client.get_station_metadata(params, debug=debug)
        entries = self.flatten(data)
        logger.info(f"Read {len(entries)} time series catalog entries.")
        return entries

    def find_entry(
        self, identifier: Union[str, TSIdent], debug: bool = False
    ) -> CatalogEntry:
        """
        Resolve a time series identifier to its catalog entry.

        All entries in the station metadata that match the identifier are
        found first, and exactly one match is required.

        Raises:
            ValidationError: If the data type is blank or the * wildcard
            NoMatchError: If no entry matches
            AmbiguousMatchError: If more than one entry matches
        """
        tsid = identifier if isinstance(identifier, TSIdent) else TSIdent.parse(identifier)
        check_single_data_type(tsid)
        variable, variable_out = split_data_type(tsid.data_type)
        params = [("stid", tsid.location), ("var", variable)]

        data = self.client.get_station_metadata(params, debug=debug)
        matches = [
            entry
            for entry in self.flatten(data)
            if entry.station_id.lower() == tsid.location.lower()
            and entry.sensor_variable == variable
            and (variable_out is None or entry.sensor_variable_out == variable_out)
        ]
        if not matches:
            raise NoMatchError(f"No Synoptic time series matches '{tsid}'")
        if len(matches) > 1:
            raise AmbiguousMatchError(
                f"{len(matches)} Synoptic time series match '{tsid}', "
                "specify the sensor variable output in the data type",
                match_count=len(matches),
            )
        return matches[0]

    def flatten(self, data: Dict[str, Any]) -> List[CatalogEntry]:
        """Create catalog entries from a ``stations/metadata`` response."""
        units = data.get("UNITS")
        if not isinstance(units, dict):
            units = {}
        entries: List[CatalogEntry] = []
        for node in data.get("STATION") or []:
            if not isinstance(node, dict):
                continue
            station = decode_record(MetadataStation, node)
            entries.extend(self._station_entries(station, units))
        return entries

    def _network_shortname(self, station: MetadataStation) -> str:
        network = self.reference.lookup_network(station.mnet_id)
        if network is None or not network.shortname:
            return ""
        return normalize_shortname(network.shortname)

    def _station_entries(
        self, station: MetadataStation, units: Dict[str, Any]
    ) -> List[CatalogEntry]:
        sensor_variables = station.sensor_variables or {}
        if not sensor_variables:
            logger.warning(f"Station '{station.stid}' has no sensor variables, skipping.")
            return []

        mnet = self._network_shortname(station)
        data_source = mnet or DEFAULT_DATA_SOURCE
        entries = []
        for variable, outputs in sensor_variables.items():
            if not isinstance(outputs, dict):
                continue
            for variable_out, detail in outputs.items():
                period = {}
                if isinstance(detail, dict) and isinstance(
                    detail.get("period_of_record"), dict
                ):
                    period = detail["period_of_record"]
                if len(outputs) == 1:
                    data_type = variable
                else:
                    data_type = f"{variable}{DATA_TYPE_SEPARATOR}{variable_out}"
                entries.append(
                    CatalogEntry(
                        station_id=station.stid,
                        sensor_variable=variable,
                        sensor_variable_out=variable_out,
                        data_type=data_type,
                        station_name=station.name,
                        data_source=data_source,
                        data_units=str(units.get(variable) or ""),
                        station_mnet=mnet,
                        station_mnet_id=station.mnet_id,
                        station_state=station.state,
                        station_status=station.status,
                        station_timezone=station.timezone,
                        station_latitude=to_float(station.latitude),
                        station_longitude=to_float(station.longitude),
                        station_elevation=to_float(station.elevation),
                        station_elev_dem=to_float(station.elev_dem),
                        station_qc_flagged=station.qc_flagged,
                        sensor_start=str(period.get("start") or ""),
                        sensor_end=str(period.get("end") or ""),
                    )
                )
        logger.debug(f"Station '{station.stid}' has {len(entries)} time series.")
        return entries
