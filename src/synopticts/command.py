"""
ReadSynoptic command: parameter checks and execution.

The command reads one time series (``StationId`` + ``DataType`` + ``Interval``)
or all time series matching ``WhereN`` filters.  Parameter values are the
strings entered in the host command.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional

from .catalog import is_wildcard
from .datastore import SynopticDataStore
from .exceptions import ParseError, SynopticError, ValidationError
from .filters import FilterClause, check_filters, parse_filters
from .models import DEFAULT_DATA_SOURCE, ObservationSeries, ReadOptions
from .reader import parse_datetime
from .tsid import TimeInterval, TSIdent

logger = logging.getLogger(__name__)

# Host commands allow up to this many WhereN parameters
MAX_WHERE = 25

_PROPERTY_RE = re.compile(r"\$\{ts:([^}]+)\}")


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _parse_flag(value: Optional[str]) -> Optional[bool]:
    """Parse a True/False parameter; blank is False and anything else is None."""
    if _is_blank(value):
        return False
    text = str(value).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    return None


@dataclass
class ReadSynopticParameters:
    """ReadSynoptic command parameters as entered in the command."""

    datastore: str = ""
    data_type: str = "*"
    interval: str = ""
    station_id: str = ""
    ts_short_name: str = ""
    where: List[str] = field(default_factory=list)
    alias: str = ""
    input_start: str = ""
    input_end: str = ""
    irregular_interval: str = ""
    read_24hour_as_day: str = ""
    read_day_as_24hour: str = ""
    timezone: str = ""
    debug: str = ""

    @classmethod
    def from_properties(cls, props: Mapping[str, Any]) -> "ReadSynopticParameters":
        """Create parameters from host command parameter names (DataStore, Where1, ...)."""

        def get(name: str, default: str = "") -> str:
            value = props.get(name)
            return default if value is None else str(value)

        where = [get(f"Where{i}") for i in range(1, MAX_WHERE + 1)]
        return cls(
            datastore=get("DataStore"),
            data_type=get("DataType", "*") or "*",
            interval=get("Interval"),
            station_id=get("StationId"),
            ts_short_name=get("TsShortName"),
            where=[w for w in where if w],
            alias=get("Alias"),
            input_start=get("InputStart"),
            input_end=get("InputEnd"),
            irregular_interval=get("IrregularInterval"),
            read_24hour_as_day=get("Read24HourAsDay"),
            read_day_as_24hour=get("ReadDayAs24Hour"),
            timezone=get("Timezone"),
            debug=get("Debug"),
        )

    @property
    def active_where(self) -> List[str]:
        """WhereN values that specify a field (a blank filter starts with ';')."""
        return [w for w in self.where if w.strip() and not w.startswith(";")]

    @property
    def reads_single(self) -> bool:
        return not _is_blank(self.station_id)

    @property
    def reads_multiple(self) -> bool:
        return len(self.active_where) > 0

    def read_options(self) -> ReadOptions:
        return ReadOptions(
            timezone=self.timezone.strip() or None,
            debug=bool(_parse_flag(self.debug)),
            irregular_interval=self.irregular_interval.strip() or None,
            read_24hour_as_day=bool(_parse_flag(self.read_24hour_as_day)),
            read_day_as_24hour=bool(_parse_flag(self.read_day_as_24hour)),
        )

    def filter_clauses(self) -> List[FilterClause]:
        return parse_filters(self.active_where)


def check_parameters(
    params: ReadSynopticParameters, filter_warning: Optional[str] = None
) -> None:
    """
    Check command parameters before any request is made.

    Args:
        params: Command parameters
        filter_warning: Result of checking the filters; if None the WhereN
            filters are checked here when multiple time series are read

    Raises:
        ValidationError: Listing every problem that was found
    """
    problems = []
    if _is_blank(params.datastore):
        problems.append("The datastore must be specified.")

    for name, value in [("start", params.input_start), ("end", params.input_end)]:
        if _is_blank(value):
            continue
        try:
            parse_datetime(value)
        except ParseError:
            problems.append(f'The input {name} date/time "{value}" is not a valid date/time.')

    if not _is_blank(params.irregular_interval):
        try:
            irregular = not TimeInterval.parse(params.irregular_interval).is_regular
        except ParseError:
            irregular = False
        if not irregular:
            problems.append(f"Invalid irregular interval ({params.irregular_interval}).")

    read_24hour_as_day = _parse_flag(params.read_24hour_as_day)
    if read_24hour_as_day is None:
        problems.append("The Read24HourAsDay parameter value is invalid.")
    read_day_as_24hour = _parse_flag(params.read_day_as_24hour)
    if read_day_as_24hour is None:
        problems.append("The ReadDayAs24Hour parameter value is invalid.")
    if (
        sum(
            [
                not _is_blank(params.irregular_interval),
                bool(read_24hour_as_day),
                bool(read_day_as_24hour),
            ]
        )
        > 1
    ):
        problems.append(
            "Can only specify one of IrregularInterval, Read24HourAsDay, "
            "and ReadDayAs24Hour parameters."
        )
    if _parse_flag(params.debug) is None:
        problems.append("The Debug parameter value is invalid.")

    data_type = (params.data_type or "*").strip()
    if params.reads_single and data_type == "*":
        problems.append("The data type cannot be * when matching a single time series.")
    if params.reads_single and params.reads_multiple:
        problems.append(
            "Parameters are specified to match a single time series and multiple "
            "time series (but not both)."
        )
    if not params.reads_single and not params.reads_multiple and data_type == "*":
        problems.append(
            "Parameters must be specified to match a single time series OR multiple "
            "time series (reading ALL time series is prohibited)."
        )
    if params.reads_single and is_wildcard(params.interval):
        problems.append(
            "The interval must be specified when reading a single time series "
            "(wildcard cannot be used)."
        )

    if filter_warning is None and params.reads_multiple:
        try:
            filter_warning = check_filters(params.filter_clauses())
        except SynopticError as e:
            filter_warning = str(e)
    if filter_warning:
        problems.append(filter_warning)

    if problems:
        raise ValidationError(
            f"There were {len(problems)} problems with command parameters:\n"
            + "\n".join(problems)
        )


def single_identifier(params: ReadSynopticParameters) -> str:
    """
    Return the identifier for a single time series read.

    ``TsShortName`` is the sensor variable output and is appended to the data
    type when given, for example ``WBB.Synoptic.wind_speed-wind_speed_value_2.IrregSecond``.
    """
    data_type = params.data_type.strip()
    if not is_wildcard(params.ts_short_name):
        data_type = f"{data_type}-{params.ts_short_name.strip()}"
    return str(
        TSIdent(
            location=params.station_id.strip(),
            source=DEFAULT_DATA_SOURCE,
            data_type=data_type,
            interval=params.interval.strip(),
        )
    )


def expand_alias(alias: str, series: ObservationSeries) -> str:
    """
    Expand an alias template for a time series.

    ``%L`` is the location, ``%S`` the source, ``%T`` the data type, ``%I`` the
    interval and ``${ts:name}`` a time series property.
    """
    if not alias:
        return ""
    tsid = TSIdent.parse(series.identifier)
    text = (
        alias.replace("%L", tsid.location)
        .replace("%S", tsid.source)
        .replace("%T", tsid.data_type)
        .replace("%I", tsid.interval)
    )

    def property_value(match: "re.Match[str]") -> str:
        value = series.properties.get(match.group(1))
        return "" if value is None else str(value)

    return _PROPERTY_RE.sub(property_value, text)


def read_synoptic(
    datastore: SynopticDataStore,
    params: ReadSynopticParameters,
    read_data: bool = True,
    cancel_requested: Optional[Callable[[], bool]] = None,
) -> List[ObservationSeries]:
    """
    Run the ReadSynoptic command.

    A single time series read raises on any error.  When reading multiple
    time series, an error building the catalog is raised, while an error
    reading one time series is logged and the other time series are still read.

    Returns:
        The time series that were read
    """
    check_parameters(params)
    options = params.read_options()
    start = parse_datetime(params.input_start)
    end = parse_datetime(params.input_end)

    if params.reads_single:
        tsid = single_identifier(params)
        logger.info(f'Reading a single Synoptic time series "{tsid}"')
        series = datastore.read_time_series(tsid, start, end, options, read_data)
        if params.alias:
            series.alias = expand_alias(params.alias, series)
        return [series]

    logger.info("Reading multiple Synoptic time series using filters.")
    entries = datastore.read_time_series_catalog(
        data_type=params.data_type,
        interval=params.interval,
        filter_clauses=params.filter_clauses(),
    )
    if not entries:
        logger.warning("No time series were read from the Synoptic web service.")
        return []
    logger.info(f"Reading {len(entries)} time series...")

    results = datastore.read_time_series_list(
        entries, start, end, options, read_data, cancel_requested=cancel_requested
    )
    series_list = []
    for result in results:
        if not result.ok:
            continue
        if params.alias:
            result.series.alias = expand_alias(params.alias, result.series)
        series_list.append(result.series)
    failed = len(results) - len(series_list)
    if failed:
        logger.warning(f"{failed} of {len(results)} Synoptic time series could not be read.")
    if not series_list:
        logger.warning("No time series were read from the Synoptic web service.")
    return series_list
