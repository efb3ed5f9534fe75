"""
Synoptic datastore: the object a host application creates for each configured
Synoptic connection.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from .catalog import CatalogBuilder
from .client import SynopticClient
from .config import SynopticConfig
from .filters import FilterClause, FilterTranslator, choices
from .models import (
    SYNOPTIC_DATA_INTERVAL,
    CatalogEntry,
    Network,
    NwsCwa,
    ObservationSeries,
    ReadOptions,
    ReadResult,
    State,
    Variable,
)
from .reader import DateLike, TimeSeriesReader
from .reference import ReferenceData, ReferenceSnapshot
from .tsid import TSIdent

logger = logging.getLogger(__name__)

PLUGIN_VERSION = "0.2.0"

PLUGIN_PROPERTIES = {
    "Name": "Synoptic data web services plugin",
    "Description": "Datastore adapter to read Synoptic weather observations as time series.",
    "Author": "synopticts developers",
    "Version": PLUGIN_VERSION,
}

# Display columns for a time series list, keyed by CatalogEntry.to_dict() names
CATALOG_COLUMNS = [
    ("station_id", "Station ID"),
    ("station_name", "Station Name"),
    ("data_source", "Data Source"),
    ("data_type", "Data Type"),
    ("data_interval", "Interval"),
    ("data_units", "Units"),
    ("sensor_variable", "Sensor Variable"),
    ("sensor_variable_out", "Sensor Variable (Out)"),
    ("sensor_start", "Start (UTC)"),
    ("sensor_end", "End (UTC)"),
    ("station_timezone", "Station Time Zone"),
    ("station_state", "State"),
    ("station_status", "Status"),
    ("station_qc_flagged", "QC Flagged"),
    ("station_mnet", "Network"),
    ("station_mnet_id", "Network ID"),
    ("station_longitude", "Longitude"),
    ("station_latitude", "Latitude"),
    ("station_elevation", "Elevation"),
    ("station_elev_dem", "Elevation (DEM)"),
]


class SynopticDataStore:
    """
    Datastore for the Synoptic Data web services.

    Reference lists are read when the datastore is created.  All requests are
    made on the caller's thread.

    Example:
        >>> config = SynopticConfig(api_token="...")
        >>> with SynopticDataStore(config) as ds:
        ...     entries = ds.read_time_series_catalog(
        ...         data_type="air_temp",
        ...         filter_clauses=[FilterClause("state", "Matches", ["CO"])],
        ...     )
        ...     results = ds.read_time_series_list(entries)
    """

    def __init__(
        self,
        config: Optional[SynopticConfig] = None,
        client: Optional[SynopticClient] = None,
        cwa_path: Optional[str] = None,
        load_reference: bool = True,
    ):
        self.config = config or SynopticConfig()
        self.client = client or SynopticClient(self.config)
        self.reference = ReferenceData(self.client, cwa_path=cwa_path)
        self.translator = FilterTranslator(
            self.reference, network_ids=self.config.network_filter_uses_id
        )
        self.catalog = CatalogBuilder(self.client, self.reference, self.translator)
        self.reader = TimeSeriesReader(self.client, self.catalog)
        self._catalog_cache: Optional[List[CatalogEntry]] = None
        if load_reference:
            self.reference.load_all(read_data=True)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def description(self) -> str:
        return self.config.description

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "SynopticDataStore":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # Reference lists

    def get_states(self, read_data: bool = False) -> List[State]:
        return self.reference.get_states(read_data)

    def get_networks(self, read_data: bool = False) -> List[Network]:
        return self.reference.get_networks(read_data)

    def get_nws_cwa_list(self, read_data: bool = False) -> List[NwsCwa]:
        return self.reference.get_nws_cwa_list(read_data)

    def get_variables(self, read_data: bool = False) -> List[Variable]:
        return self.reference.get_variables(read_data)

    def refresh(self) -> ReferenceSnapshot:
        """Read the reference lists again and discard the cached catalog."""
        self._catalog_cache = None
        return self.reference.refresh()

    def get_filter_choices(self) -> Dict[str, List[str]]:
        """Return the choices for each filter field, keyed by filter field key."""
        return choices(self.reference)

    def get_data_type_strings(
        self, interval: Optional[str] = None, include_wildcards: bool = True
    ) -> List[str]:
        """
        Return the data types that can be requested, from the variables list.

        The interval is accepted for consistency with other datastores; all
        Synoptic data types have the same interval.
        """
        names = sorted({v.name for v in self.get_variables() if v.name}, key=str.lower)
        if include_wildcards:
            return ["*"] + names + ["*"]
        return names

    def get_data_interval_strings(
        self, data_type: Optional[str] = None, include_wildcards: bool = True
    ) -> List[str]:
        """Return the data intervals that can be requested."""
        if include_wildcards:
            return ["*", SYNOPTIC_DATA_INTERVAL, "*"]
        return [SYNOPTIC_DATA_INTERVAL]

    # Catalog

    def get_time_series_catalog(self, read_data: bool = False) -> List[CatalogEntry]:
        """
        Return the unfiltered time series catalog, reading it on first use.

        Args:
            read_data: If True, read the catalog again
        """
        if read_data or self._catalog_cache is None:
            self._catalog_cache = self.read_time_series_catalog()
        return self._catalog_cache

    def read_time_series_catalog(
        self,
        identifier: Optional[Union[str, TSIdent]] = None,
        data_type: Optional[str] = None,
        interval: Optional[str] = None,
        filter_clauses: Optional[Iterable[FilterClause]] = None,
    ) -> List[CatalogEntry]:
        """Query Synoptic for the time series matching an identifier or filters."""
        return self.catalog.build_catalog(
            identifier=identifier,
            data_type=data_type,
            interval=interval,
            filter_clauses=filter_clauses,
            debug=self.config.debug,
        )

    def get_time_series_identifier(self, entry: CatalogEntry) -> str:
        return entry.to_tsid()

    def catalog_to_dataframe(self, entries: Iterable[CatalogEntry]) -> pd.DataFrame:
        """
        Return catalog entries as a table with display column names.

        The 'Problems' column is empty and 'Datastore' is the datastore name.
        """
        rows = []
        for entry in entries:
            values = entry.to_dict()
            row = {label: values[key] for key, label in CATALOG_COLUMNS}
            row["Problems"] = ""
            row["Datastore"] = self.name
            rows.append(row)
        columns = [label for _, label in CATALOG_COLUMNS] + ["Problems", "Datastore"]
        return pd.DataFrame(rows, columns=columns)

    # Time series

    def read_time_series(
        self,
        identifier: Union[str, TSIdent],
        start: DateLike = None,
        end: DateLike = None,
        options: Optional[ReadOptions] = None,
        read_data: bool = True,
    ) -> ObservationSeries:
        """Read one time series; any failure is raised."""
        return self.reader.read_series(identifier, start, end, options, read_data)

    def read_time_series_list(
        self,
        entries: Iterable[CatalogEntry],
        start: DateLike = None,
        end: DateLike = None,
        options: Optional[ReadOptions] = None,
        read_data: bool = True,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> List[ReadResult]:
        """
        Read the time series for catalog entries, one at a time in list order.

        A failed read is logged and returned as a result with ``error`` set;
        the remaining entries are still read.

        Args:
            entries: Catalog entries to read
            start: Start of the read window
            end: End of the read window
            options: Read options applied to every entry
            read_data: If False, only create the series with their properties
            cancel_requested: Called before each read; reading stops when it returns True

        Returns:
            List of ReadResult, one for each entry that was attempted
        """
        results: List[ReadResult] = []
        entries = list(entries)
        for i, entry in enumerate(entries):
            if cancel_requested is not None and cancel_requested():
                logger.info(f"Read canceled after {i} of {len(entries)} time series.")
                break
            tsid = entry.to_tsid()
            try:
                series = self.reader.read_entry(
                    entry, tsid, start, end, options, read_data=read_data
                )
                results.append(ReadResult(tsid=tsid, series=series))
            except Exception as e:
                logger.warning(f"Error reading time series {tsid}: {e}")
                results.append(ReadResult(tsid=tsid, error=e))
        return results

    # Host integration

    def get_plugin_properties(self) -> Dict[str, Any]:
        """Return a copy of the plugin properties (Name, Description, Author, Version)."""
        return dict(PLUGIN_PROPERTIES)

    def check_requirement(self, requirement: str) -> Tuple[bool, str]:
        """
        Check a requirement of the form ``@require datastore <name> <check> ...``.

        Supported checks are ``version <operator> <version>`` and
        ``configuration system_id <operator> <value>``.  Synoptic does not
        report a web service version or configuration properties, so these
        checks are never met.

        Returns:
            Tuple of (requirement met, message)
        """
        logger.info(f"Checking requirement: {requirement}")
        parts = requirement.split()
        note = ""
        if len(parts) > 2 and parts[2] != self.name:
            note = (
                f"\nCommand file datastore name '{parts[2]}' substitute that is "
                f"actually used is '{self.name}'"
            )
        if len(parts) < 4:
            return (
                False,
                "Requirement does not contain check type as one of: version, "
                f"configuration, for example: @require datastore {self.name} version ...",
            )
        check_type = parts[3].lower()
        if check_type == "version":
            return (
                False,
                "Web service version is unknown (services are down or software problem)."
                + note,
            )
        if check_type == "configuration":
            if len(parts) < 7:
                return (
                    False,
                    "Configuration requirement must have the form "
                    "'configuration <property> <operator> <value>'." + note,
                )
            property_name = parts[4]
            if property_name != "system_id":
                return (
                    False,
                    f"Check type '{parts[3]}' configuration property "
                    f"'{property_name}' is not supported." + note,
                )
            return (
                False,
                "Synoptic configuration 'system_id' value is not defined." + note,
            )
        return False, f"Check type '{parts[3]}' is not supported." + note


def create_datastore(properties: Mapping[str, Any]) -> SynopticDataStore:
    """
    Create a datastore from host datastore properties.

    Args:
        properties: Datastore configuration properties (Name, Description,
            ServiceRootURI, ApiToken, Debug, ...)

    Returns:
        SynopticDataStore with reference lists loaded
    """
    config = SynopticConfig.from_properties(properties)
    logger.info(f"Creating Synoptic datastore '{config.name}' for {config.service_root_uri}")
    return SynopticDataStore(config)
