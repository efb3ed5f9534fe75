"""
Data models for Synoptic reference data, time series catalog entries and
observation series.

Fields that are decoded from Synoptic JSON carry the JSON property name in
their ``metadata["json"]`` entry (see :mod:`synopticts.decode`).
"""

import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from .exceptions import ValidationError

# Interval used for all Synoptic time series.
SYNOPTIC_DATA_INTERVAL = "IrregSecond"

# Data source used in identifiers when the station network is not known.
DEFAULT_DATA_SOURCE = "Synoptic"

# Synoptic SUMMARY.RESPONSE_CODE for a successful request.
RESPONSE_CODE_SUCCESS = 1


def _json(name: str, convert: Any = None, default: Any = None) -> Any:
    return field(default=default, metadata={"json": name, "convert": convert})


@dataclass
class Network:
    """A Synoptic measurement network (one item of the 'MNET' array)."""

    id: Optional[int] = _json("ID", int)
    shortname: str = _json("SHORTNAME", str, "")
    longname: str = _json("LONGNAME", str, "")
    category: Optional[str] = _json("CATEGORY", str)
    url: Optional[str] = _json("URL", str)
    active_stations: Optional[int] = _json("ACTIVE_STATIONS", int)
    total_stations: Optional[int] = _json("TOTAL_STATIONS", int)
    reporting_stations: Optional[int] = _json("REPORTING_STATIONS", int)
    percent_active: Optional[float] = _json("PERCENT_ACTIVE", float)
    percent_reporting: Optional[float] = _json("PERCENT_REPORTING", float)
    last_observation: Optional[str] = _json("LAST_OBSERVATION", str)


@dataclass
class State:
    """A US state, used for the 'state' filter."""

    abbreviation: str
    name: str

    @property
    def choice(self) -> str:
        """Filter choice shown to users, for example 'CO - Colorado'."""
        return f"{self.abbreviation} - {self.name}"


@dataclass
class NwsCwa:
    """National Weather Service County Warning Area."""

    cwa: str
    filter_choice: str
    wfo: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None
    region: str = ""
    full_staid: str = ""
    city_state: str = ""
    city: str = ""
    state: str = ""
    st: str = ""


@dataclass
class Variable:
    """A Synoptic sensor variable; the name is the key of the JSON object."""

    name: str = ""
    long_name: str = _json("long_name", str, "")
    unit: str = _json("unit", str, "")


@dataclass
class Summary:
    """The 'SUMMARY' object included in every Synoptic response."""

    response_code: Optional[int] = _json("RESPONSE_CODE", int)
    response_message: str = _json("RESPONSE_MESSAGE", str, "")
    number_of_objects: Optional[int] = _json("NUMBER_OF_OBJECTS", int)
    function_used: Optional[str] = _json("FUNCTION_USED", str)
    version: Optional[str] = _json("VERSION", str)
    data_query_time: Optional[str] = _json("DATA_QUERY_TIME", str)
    data_parsing_time: Optional[str] = _json("DATA_PARSING_TIME", str)
    total_data_time: Optional[str] = _json("TOTAL_DATA_TIME", str)

    @property
    def is_success(self) -> bool:
        return self.response_code == RESPONSE_CODE_SUCCESS


@dataclass
class MetadataStation:
    """
    A station from the 'stations/metadata' service.

    Numeric fields are kept as returned; Synoptic may send strings, nulls or
    omit them, and they are converted when catalog entries are created.
    """

    stid: str = _json("STID", str, "")
    name: str = _json("NAME", str, "")
    state: Optional[str] = _json("STATE", str)
    status: Optional[str] = _json("STATUS", str)
    timezone: Optional[str] = _json("TIMEZONE", str)
    mnet_id: Optional[str] = _json("MNET_ID", str)
    latitude: Any = _json("LATITUDE")
    longitude: Any = _json("LONGITUDE")
    elevation: Any = _json("ELEVATION")
    elev_dem: Any = _json("ELEV_DEM")
    qc_flagged: Optional[bool] = _json("QC_FLAGGED", bool)
    sensor_variables: Optional[Dict[str, Any]] = _json("SENSOR_VARIABLES", dict)


@dataclass(frozen=True)
class CatalogEntry:
    """One addressable Synoptic time series (station, sensor variable, output)."""

    station_id: str
    sensor_variable: str
    sensor_variable_out: str
    data_type: str
    station_name: str = ""
    data_source: str = ""
    data_interval: str = SYNOPTIC_DATA_INTERVAL
    data_units: str = ""
    station_mnet: str = ""
    station_mnet_id: Optional[str] = None
    station_state: Optional[str] = None
    station_status: Optional[str] = None
    station_timezone: Optional[str] = None
    station_latitude: Optional[float] = None
    station_longitude: Optional[float] = None
    station_elevation: Optional[float] = None
    station_elev_dem: Optional[float] = None
    station_qc_flagged: Optional[bool] = None
    sensor_start: str = ""
    sensor_end: str = ""

    def to_tsid(self) -> str:
        """Return the time series identifier 'station.source.dataType.interval'."""
        source = self.data_source or DEFAULT_DATA_SOURCE
        data_type = self.data_type
        if "." in data_type:
            data_type = f"'{data_type}'"
        return f"{self.station_id}.{source}.{data_type}.{self.data_interval}"

    def to_dict(self) -> Dict[str, Any]:
        """Return the columns displayed for the time series list."""
        return {
            "station_id": self.station_id,
            "station_name": self.station_name,
            "data_source": self.data_source,
            "data_type": self.data_type,
            "data_interval": self.data_interval,
            "data_units": self.data_units,
            "sensor_variable": self.sensor_variable,
            "sensor_variable_out": self.sensor_variable_out,
            "sensor_start": self.sensor_start,
            "sensor_end": self.sensor_end,
            "station_timezone": self.station_timezone,
            "station_state": self.station_state,
            "station_status": self.station_status,
            "station_qc_flagged": self.station_qc_flagged,
            "station_mnet": self.station_mnet,
            "station_mnet_id": self.station_mnet_id,
            "station_longitude": self.station_longitude,
            "station_latitude": self.station_latitude,
            "station_elevation": self.station_elevation,
            "station_elev_dem": self.station_elev_dem,
        }


@dataclass
class DataPoint:
    """A single value in an observation series."""

    timestamp: datetime
    value: float
    flag: str = ""

    @property
    def is_missing(self) -> bool:
        return math.isnan(self.value)


@dataclass
class ObservationSeries:
    """
    Time-ordered values for one catalog entry.

    Missing values are stored as ``missing`` (NaN) rather than being omitted.
    """

    identifier: str
    alias: str = ""
    description: str = ""
    data_units: str = ""
    data_units_original: str = ""
    missing: float = math.nan
    date1: Optional[datetime] = None
    date2: Optional[datetime] = None
    date1_original: Optional[str] = None
    date2_original: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=OrderedDict)
    points: List[DataPoint] = field(default_factory=list)

    def is_missing(self, value: Optional[float]) -> bool:
        return value is None or math.isnan(value)

    def set_data_value(
        self, timestamp: datetime, value: Optional[float], flag: str = ""
    ) -> None:
        """Append a value; ``None`` is stored as the missing value."""
        if value is None:
            value = self.missing
        self.points.append(DataPoint(timestamp=timestamp, value=float(value), flag=flag))

    def set_property(self, name: str, value: Any) -> None:
        self.properties[name] = value

    def __len__(self) -> int:
        return len(self.points)

    def to_pandas(self) -> pd.DataFrame:
        """Return the values as a DataFrame with timestamp, value and flag columns."""
        return pd.DataFrame(
            {
                "timestamp": [p.timestamp for p in self.points],
                "value": [p.value for p in self.points],
                "flag": [p.flag for p in self.points],
            }
        )


@dataclass
class ReadOptions:
    """Options that control how a time series is read."""

    timezone: Optional[str] = None
    debug: bool = False
    irregular_interval: Optional[str] = None
    read_24hour_as_day: bool = False
    read_day_as_24hour: bool = False

    def validate(self) -> None:
        """Raise ValidationError if more than one read-mode option is set."""
        count = sum(
            [
                bool(self.irregular_interval),
                self.read_24hour_as_day,
                self.read_day_as_24hour,
            ]
        )
        if count > 1:
            raise ValidationError(
                "Can only specify one of IrregularInterval, Read24HourAsDay, "
                "and ReadDayAs24Hour."
            )


@dataclass
class ReadResult:
    """Outcome of reading one time series in a bulk read."""

    tsid: str
    series: Optional[ObservationSeries] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.series is not None
