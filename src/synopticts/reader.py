"""
Read Synoptic observations into time series.

Observations are requested with ``obtimezone=local`` so returned timestamps
are in the station's time zone.  The request window is sent in UTC, which is
what the ``stations/timeseries`` service expects for ``start`` and ``end``.
"""

import logging
import math
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd

from .catalog import CatalogBuilder, check_single_data_type
from .client import SynopticClient
from .exceptions import ParseError, ServiceError, ValidationError
from .models import CatalogEntry, ObservationSeries, ReadOptions
from .tsid import TimeInterval, TSIdent

logger = logging.getLogger(__name__)

# Format of the 'start' and 'end' request parameters (UTC, minute precision)
REQUEST_TIME_FORMAT = "%Y%m%d%H%M"

_VALUE_SUFFIX_RE = re.compile(r"_value_(\d+\w*)$")

_TIMESTAMP_FORMATS = ["%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M%z"]

DateLike = Union[datetime, str, None]


def value_array_name(sensor_variable_out: str) -> str:
    """
    Return the OBSERVATIONS array name for a sensor variable output.

    ``air_temp_value_1`` is returned in ``air_temp_set_1`` and derived
    ``dew_point_temperature_value_1d`` in ``dew_point_temperature_set_1d``.
    """
    return _VALUE_SUFFIX_RE.sub(r"_set_\1", sensor_variable_out)


def get_zone(name: Optional[str]) -> tzinfo:
    """Return the time zone for an IANA name, or UTC if the name is blank or unknown."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone '{name}', using UTC.")
        return timezone.utc


def parse_datetime(value: DateLike) -> Optional[datetime]:
    """
    Parse a read window date/time.

    Strings are parsed with pandas, for example '2023-06-15 08:00' or
    '2023-06-15T08:00:00-06:00'.  Blank values return None.

    Raises:
        ParseError: If the string is not a date/time
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return pd.Timestamp(text).to_pydatetime()
    except (ValueError, TypeError) as e:
        raise ParseError(f"Invalid date/time: {text!r}") from e


def to_request_time(value: datetime, station_zone: tzinfo) -> str:
    """
    Format a window date/time for a request, in UTC to the minute.

    Naive date/times are in the station's time zone.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=station_zone)
    return value.astimezone(timezone.utc).strftime(REQUEST_TIME_FORMAT)


def parse_timestamp(text: Any, station_zone: tzinfo) -> datetime:
    """
    Parse an OBSERVATIONS ``date_time`` element.

    Raises:
        ServiceError: If the timestamp cannot be parsed
    """
    if not isinstance(text, str):
        raise ServiceError(f"Invalid observation timestamp: {text!r}")
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.strptime(text, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=station_zone)
    except ValueError as e:
        raise ServiceError(f"Invalid observation timestamp: {text!r}") from e


def parse_value(value: Any) -> Optional[float]:
    """Return an observation value, or None for null."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ServiceError(f"Invalid observation value: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ServiceError(f"Invalid observation value: {value!r}") from e


def _truncate(value: datetime, precision: Optional[str]) -> datetime:
    if precision == "Year":
        return value.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    if precision == "Month":
        return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if precision == "Day":
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    if precision == "Hour":
        return value.replace(minute=0, second=0, microsecond=0)
    if precision == "Minute":
        return value.replace(second=0, microsecond=0)
    return value


def validate_request(tsid: TSIdent, options: ReadOptions) -> TimeInterval:
    """
    Check that a read request can be handled.

    Returns:
        The parsed interval of the requested identifier

    Raises:
        ValidationError: If the request is not supported
    """
    options.validate()
    check_single_data_type(tsid)
    if not tsid.interval:
        raise ValidationError(f"TSID ({tsid}) has no interval - cannot read time series.")
    try:
        interval = tsid.time_interval
    except ParseError as e:
        raise ValidationError(f"TSID ({tsid}) interval is invalid: {e}") from e

    override = None
    if options.irregular_interval:
        try:
            override = TimeInterval.parse(options.irregular_interval)
        except ParseError as e:
            raise ValidationError(
                f"IrregularInterval ({options.irregular_interval}) is invalid."
            ) from e
        if override.is_regular:
            raise ValidationError(
                f"IrregularInterval ({options.irregular_interval}) is not an irregular interval."
            )

    if override is not None and not interval.is_regular:
        raise ValidationError(
            f"TSID ({tsid}) is an irregular interval time series - "
            "it is redundant to request IrregularInterval."
        )
    if interval.base == "Day" and interval.multiplier != 1 and override is None:
        raise ValidationError(
            f"TSID ({tsid}) reading NDay interval is not supported. "
            "Use IrregularInterval=IrregDay or IrregHour."
        )
    if options.read_day_as_24hour and not (
        interval.base == "Day" and interval.multiplier == 1
    ):
        raise ValidationError(
            f"TSID ({tsid}) requesting reading day as 24 hour but input is not 1Day interval."
        )
    if options.read_24hour_as_day and not (
        interval.base == "Hour" and interval.multiplier == 24
    ):
        raise ValidationError(
            f"TSID ({tsid}) requesting reading 24 hour as day but input is not 24Hour interval."
        )
    if interval.is_regular and interval.base in ("Month", "Year") and override is None:
        raise ValidationError(
            f"TSID ({tsid}) reading {interval.base} interval is not supported. "
            f"Use IrregularInterval=Irreg{interval.base}."
        )
    if options.timezone:
        try:
            ZoneInfo(options.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValidationError(f"TimeZone ({options.timezone}) is not known.") from e
    return interval


def output_interval(tsid: TSIdent, options: ReadOptions) -> str:
    """Return the interval of the time series that is created for a request."""
    if options.irregular_interval:
        return str(TimeInterval.parse(options.irregular_interval))
    if options.read_24hour_as_day:
        return "1Day"
    if options.read_day_as_24hour:
        return "24Hour"
    return tsid.interval


class TimeSeriesReader:
    """Reads observation series for catalog entries."""

    def __init__(self, client: SynopticClient, catalog: CatalogBuilder):
        self.client = client
        self.catalog = catalog

    def read_series(
        self,
        identifier: Union[str, TSIdent],
        start: DateLike = None,
        end: DateLike = None,
        options: Optional[ReadOptions] = None,
        read_data: bool = True,
    ) -> ObservationSeries:
        """
        Read one time series.

        Args:
            identifier: Time series identifier 'station.source.dataType.interval'
            start: Start of the read window (default one month before end)
            end: End of the read window (default now)
            options: Read options
            read_data: If False, only create the series with its properties

        Returns:
            ObservationSeries

        Raises:
            ParseError: If the identifier is malformed
            ValidationError: If the request is not supported
            NoMatchError: If no catalog entry matches the identifier
            AmbiguousMatchError: If several catalog entries match the identifier
            ServiceError: If a Synoptic request fails
        """
        options = options or ReadOptions()
        tsid = identifier if isinstance(identifier, TSIdent) else TSIdent.parse(identifier)
        interval = validate_request(tsid, options)
        entry = self.catalog.find_entry(tsid, debug=self._debug(options))
        return self._read(entry, tsid, interval, start, end, options, read_data)

    def read_entry(
        self,
        entry: CatalogEntry,
        identifier: Optional[Union[str, TSIdent]] = None,
        start: DateLike = None,
        end: DateLike = None,
        options: Optional[ReadOptions] = None,
        read_data: bool = True,
    ) -> ObservationSeries:
        """
        Read the time series for a catalog entry without looking it up again.

        The identifier defaults to the entry's identifier.
        """
        options = options or ReadOptions()
        if identifier is None:
            identifier = entry.to_tsid()
        tsid = identifier if isinstance(identifier, TSIdent) else TSIdent.parse(identifier)
        interval = validate_request(tsid, options)
        return self._read(entry, tsid, interval, start, end, options, read_data)

    def _debug(self, options: ReadOptions) -> bool:
        return options.debug or self.client.config.debug

    def _window(
        self, start: DateLike, end: DateLike, station_zone: tzinfo
    ) -> Tuple[datetime, datetime]:
        window_end = parse_datetime(end)
        if window_end is None:
            window_end = datetime.now(station_zone).replace(second=0, microsecond=0)
        window_start = parse_datetime(start)
        if window_start is None:
            window_start = (
                pd.Timestamp(window_end) - pd.DateOffset(months=1)
            ).to_pydatetime()
        return window_start, window_end

    def _read(
        self,
        entry: CatalogEntry,
        tsid: TSIdent,
        interval: TimeInterval,
        start: DateLike,
        end: DateLike,
        options: ReadOptions,
        read_data: bool,
    ) -> ObservationSeries:
        out_tsid = tsid.with_interval(output_interval(tsid, options))
        series = ObservationSeries(
            identifier=str(out_tsid),
            description=entry.station_name,
            data_units=entry.data_units,
            data_units_original=entry.data_units,
            date1_original=entry.sensor_start or None,
            date2_original=entry.sensor_end or None,
        )
        station_zone = get_zone(entry.station_timezone)
        window_start, window_end = self._window(start, end, station_zone)
        adjust = self._timestamp_adjustment(interval, options)
        if interval.is_regular:
            series.date1 = adjust(window_start)
            series.date2 = adjust(window_end)
        self._set_properties(series, entry)

        if read_data:
            self._read_data(
                series, entry, window_start, window_end, station_zone, adjust, options
            )
            if not interval.is_regular and series.points:
                series.date1 = series.points[0].timestamp
                series.date2 = series.points[-1].timestamp
        return series

    @staticmethod
    def _timestamp_adjustment(interval: TimeInterval, options: ReadOptions) -> Any:
        """
        Return a function that adjusts observation timestamps for the output interval.

        Daily values are recorded at midnight ending the day and are moved to
        the previous day.
        """
        override = (
            TimeInterval.parse(options.irregular_interval)
            if options.irregular_interval
            else None
        )
        is_1day = interval.is_regular and interval.base == "Day" and interval.multiplier == 1
        is_24hour = (
            interval.is_regular and interval.base == "Hour" and interval.multiplier == 24
        )

        def shift_day(value: datetime) -> datetime:
            return _truncate(value - timedelta(days=1), "Day")

        if is_1day and options.read_day_as_24hour:
            return lambda value: _truncate(value, "Hour")
        if is_1day and (override is None or override.precision == "Day"):
            return shift_day
        if is_24hour and options.read_24hour_as_day:
            return shift_day
        if override is not None:
            return lambda value: _truncate(value, override.precision)
        return lambda value: value

    def _set_properties(self, series: ObservationSeries, entry: CatalogEntry) -> None:
        for name, value in [
            ("station_id", entry.station_id),
            ("station_name", entry.station_name),
            ("station_latitude", entry.station_latitude),
            ("station_longitude", entry.station_longitude),
            ("station_elevation", entry.station_elevation),
            ("station_elev_dem", entry.station_elev_dem),
            ("station_timezone", entry.station_timezone),
            ("station_state", entry.station_state),
            ("station_status", entry.station_status),
            ("station_qc_flagged", entry.station_qc_flagged),
            ("station_mnet", entry.station_mnet),
            ("station_mnet_id", entry.station_mnet_id),
            ("sensor_variable", entry.sensor_variable),
            ("sensor_variable_out", entry.sensor_variable_out),
            ("sensor_start", entry.sensor_start),
            ("sensor_end", entry.sensor_end),
        ]:
            series.set_property(name, value)

    @staticmethod
    def _station_block(data: Dict[str, Any], station_id: str) -> Dict[str, Any]:
        stations = data.get("STATION")
        if not isinstance(stations, list) or not stations:
            raise ServiceError(f"Synoptic response has no data for station '{station_id}'")
        for station in stations:
            if isinstance(station, dict) and str(station.get("STID", "")).lower() == (
                station_id.lower()
            ):
                return station
        returned = [str(s.get("STID")) for s in stations if isinstance(s, dict)]
        raise ServiceError(
            f"Synoptic response has no data for station '{station_id}' "
            f"(stations returned: {', '.join(returned)})"
        )

    def _read_data(
        self,
        series: ObservationSeries,
        entry: CatalogEntry,
        window_start: datetime,
        window_end: datetime,
        station_zone: tzinfo,
        adjust: Any,
        options: ReadOptions,
    ) -> None:
        request_start = to_request_time(window_start, station_zone)
        request_end = to_request_time(window_end, station_zone)
        params = self.client.timeseries_params(
            entry.station_id, entry.sensor_variable, request_start, request_end
        )
        series.set_property(
            "ts.request_url", self.client.request_url("stations/timeseries", params)
        )
        data = self.client.get_station_timeseries(
            entry.station_id,
            entry.sensor_variable,
            request_start,
            request_end,
            debug=self._debug(options),
        )

        units = data.get("UNITS")
        if isinstance(units, dict) and units.get(entry.sensor_variable):
            series.data_units = str(units[entry.sensor_variable])
            series.data_units_original = series.data_units

        station = self._station_block(data, entry.station_id)
        observations = station.get("OBSERVATIONS")
        if not isinstance(observations, dict):
            observations = {}
        array_name = value_array_name(entry.sensor_variable_out)
        values: Optional[List[Any]] = observations.get(array_name)
        if values is None:
            logger.warning(
                f"No '{array_name}' observations for station '{entry.station_id}'."
            )
            series.set_property("ts.value_count", 0)
            return
        timestamps: List[Any] = observations.get("date_time") or []
        if len(timestamps) != len(values):
            raise ServiceError(
                f"Synoptic returned {len(timestamps)} timestamps and "
                f"{len(values)} '{array_name}' values for station '{entry.station_id}'"
            )

        output_zone = ZoneInfo(options.timezone) if options.timezone else None
        for text, raw in zip(timestamps, values):
            timestamp = parse_timestamp(text, station_zone)
            if output_zone is not None:
                timestamp = timestamp.astimezone(output_zone)
            value = parse_value(raw)
            series.set_data_value(adjust(timestamp), value)

        missing = sum(1 for p in series.points if math.isnan(p.value))
        series.set_property("ts.value_count", len(series.points))
        logger.debug(
            f"Read {len(series.points)} values ({missing} missing) for {series.identifier}"
        )
