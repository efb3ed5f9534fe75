"""
Tests for reading observations into time series.
"""

import math
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import httpx
import pytest

from conftest import SUMMARY_OK, WBB_METADATA_JSON, requested_params
from synopticts.catalog import CatalogBuilder
from synopticts.exceptions import ParseError, ServiceError, ValidationError
from synopticts.models import ReadOptions
from synopticts.reader import (
    TimeSeriesReader,
    output_interval,
    parse_datetime,
    to_request_time,
    validate_request,
    value_array_name,
)
from synopticts.reference import ReferenceData
from synopticts.tsid import TSIdent

WBB_TSID = "WBB.Synoptic.air_temp.IrregSecond"


@pytest.fixture
def reader(client):
    return TimeSeriesReader(client, CatalogBuilder(client, ReferenceData(client)))


def timeseries_json(date_time, values, array_name="air_temp_set_1"):
    return {
        "STATION": [
            {
                "STID": "WBB",
                "OBSERVATIONS": {"date_time": date_time, array_name: values},
            }
        ],
        "UNITS": {"air_temp": "Celsius"},
        "SUMMARY": SUMMARY_OK,
    }


class TestHelpers:
    def test_value_array_name(self):
        """Test OBSERVATIONS array name for a sensor output."""
        assert value_array_name("air_temp_value_1") == "air_temp_set_1"
        assert value_array_name("wind_speed_value_2") == "wind_speed_set_2"
        assert value_array_name("dew_point_temperature_value_1d") == (
            "dew_point_temperature_set_1d"
        )

    def test_request_time_denver(self):
        """Test local time converted to UTC request time."""
        local = datetime(2023, 6, 15, 8, 0)
        assert to_request_time(local, ZoneInfo("America/Denver")) == "202306151400"

    def test_request_time_truncates_seconds(self):
        """Test request time to the minute."""
        local = datetime(2023, 1, 15, 8, 30, 59)
        assert to_request_time(local, ZoneInfo("America/Denver")) == "202301151530"

    def test_request_time_aware(self):
        """Test aware date/time request time."""
        aware = datetime(2023, 6, 15, 8, 0, tzinfo=timezone.utc)
        assert to_request_time(aware, ZoneInfo("America/Denver")) == "202306150800"

    def test_parse_datetime(self):
        """Test parsing window date/times."""
        assert parse_datetime("2023-06-15 08:00") == datetime(2023, 6, 15, 8, 0)
        assert parse_datetime("") is None
        assert parse_datetime(None) is None
        with pytest.raises(ParseError):
            parse_datetime("not a date")


class TestValidateRequest:
    """Test read preconditions, all checked before any request."""

    def test_blank_interval(self):
        """Test identifier without interval rejected."""
        with pytest.raises(ValidationError, match="no interval"):
            validate_request(TSIdent.parse("WBB.Synoptic.air_temp"), ReadOptions())

    def test_irregular_override_redundant(self):
        """Test irregular override on an irregular identifier rejected."""
        with pytest.raises(ValidationError, match="redundant"):
            validate_request(
                TSIdent.parse(WBB_TSID), ReadOptions(irregular_interval="IrregHour")
            )

    def test_nday_requires_override(self):
        """Test NDay interval requires an override."""
        tsid = TSIdent.parse("WBB.Synoptic.air_temp.7Day")
        with pytest.raises(ValidationError, match="NDay"):
            validate_request(tsid, ReadOptions())
        validate_request(tsid, ReadOptions(irregular_interval="IrregDay"))

    def test_day_as_24hour_requires_1day(self):
        """Test ReadDayAs24Hour requires 1Day."""
        with pytest.raises(ValidationError, match="not 1Day"):
            validate_request(
                TSIdent.parse("WBB.Synoptic.air_temp.24Hour"),
                ReadOptions(read_day_as_24hour=True),
            )

    def test_24hour_as_day_requires_24hour(self):
        """Test Read24HourAsDay requires 24Hour."""
        with pytest.raises(ValidationError, match="not 24Hour"):
            validate_request(
                TSIdent.parse("WBB.Synoptic.air_temp.1Day"),
                ReadOptions(read_24hour_as_day=True),
            )

    @pytest.mark.parametrize("interval", ["Month", "Year"])
    def test_month_year_require_override(self, interval):
        """Test Month and Year intervals require an override."""
        tsid = TSIdent.parse(f"WBB.Synoptic.air_temp.{interval}")
        with pytest.raises(ValidationError, match=interval):
            validate_request(tsid, ReadOptions())
        validate_request(tsid, ReadOptions(irregular_interval=f"Irreg{interval}"))

    def test_multiple_read_modes(self):
        """Test more than one read mode rejected."""
        options = ReadOptions(read_24hour_as_day=True, irregular_interval="IrregHour")
        with pytest.raises(ValidationError, match="only specify one"):
            validate_request(TSIdent.parse("WBB.Synoptic.air_temp.24Hour"), options)

    def test_unknown_timezone(self):
        """Test unknown output time zone rejected."""
        with pytest.raises(ValidationError, match="TimeZone"):
            validate_request(TSIdent.parse(WBB_TSID), ReadOptions(timezone="Mars/Olympus"))

    def test_output_interval(self):
        """Test output identifier interval."""
        tsid = TSIdent.parse("WBB.Synoptic.air_temp.1Day")
        assert output_interval(tsid, ReadOptions()) == "1Day"
        assert output_interval(tsid, ReadOptions(irregular_interval="irreghour")) == "IrregHour"
        assert output_interval(tsid, ReadOptions(read_day_as_24hour=True)) == "24Hour"
        tsid24 = TSIdent.parse("WBB.Synoptic.air_temp.24Hour")
        assert output_interval(tsid24, ReadOptions(read_24hour_as_day=True)) == "1Day"

    def test_rejected_before_request(self, reader, client):
        """Test invalid request rejected without a request."""
        with pytest.raises(ValidationError):
            reader.read_series(
                "WBB.Synoptic.air_temp.24Hour",
                options=ReadOptions(read_24hour_as_day=True, irregular_interval="IrregHour"),
            )
        client._client.get.assert_not_called()

    def test_wildcard_data_type_rejected(self, reader, client):
        """Test wildcard data type rejected for a single time series."""
        with pytest.raises(ValidationError, match="data type cannot be"):
            reader.read_series("WBB.Synoptic.*.IrregSecond")
        client._client.get.assert_not_called()


class TestReadSeries:
    """Test reading a time series end to end with mocked responses."""

    def test_two_points_second_missing(self, reader):
        """Test values read with the missing value kept."""
        series = reader.read_series(WBB_TSID, "2023-01-01 00:00", "2023-01-02 00:00")

        assert len(series.points) == 2
        first, second = series.points
        assert first.value == pytest.approx(-5.6)
        assert not first.is_missing
        assert second.is_missing
        assert math.isnan(second.value)
        assert series.is_missing(second.value)
        assert first.timestamp == datetime(2023, 1, 1, 0, 0, tzinfo=timezone.utc)

    def test_series_metadata(self, reader):
        """Test series description, units and period."""
        series = reader.read_series(WBB_TSID, "2023-01-01 00:00", "2023-01-02 00:00")

        assert series.identifier == WBB_TSID
        assert series.description == "U of U William Browning Building"
        assert series.data_units == "Celsius"
        assert series.date1_original == "2020-01-01T00:00:00Z"
        assert series.date2_original == "2023-01-01T00:00:00Z"
        assert series.date1 == series.points[0].timestamp
        assert series.date2 == series.points[-1].timestamp

    def test_series_properties(self, reader):
        """Test series properties."""
        series = reader.read_series(WBB_TSID, "2023-01-01 00:00", "2023-01-02 00:00")

        props = series.properties
        assert props["station_id"] == "WBB"
        assert props["station_latitude"] == pytest.approx(40.76623)
        assert props["station_timezone"] == "America/Denver"
        assert props["station_mnet"] == "UUNET"
        assert props["sensor_variable"] == "air_temp"
        assert props["sensor_variable_out"] == "air_temp_value_1"
        assert props["sensor_start"] == "2020-01-01T00:00:00Z"
        assert props["ts.value_count"] == 2
        assert httpx.URL(props["ts.request_url"]).params["token"] == "***"
        assert "test-token" not in props["ts.request_url"]

    def test_request_window_converted_to_utc(self, reader, client):
        """Test request window sent in UTC."""
        reader.read_series(WBB_TSID, datetime(2023, 6, 15, 8, 0), datetime(2023, 6, 16, 8, 0))

        params = requested_params(client, "stations/timeseries")
        assert ("start", "202306151400") in params
        assert ("end", "202306161400") in params
        assert ("stid", "WBB") in params
        assert ("vars", "air_temp") in params
        assert ("obtimezone", "local") in params

    def test_default_window(self, reader, client):
        """Test default one month window."""
        reader.read_series(WBB_TSID)

        params = dict(requested_params(client, "stations/timeseries"))
        start = datetime.strptime(params["start"], "%Y%m%d%H%M")
        end = datetime.strptime(params["end"], "%Y%m%d%H%M")
        assert 27 <= (end - start).days <= 31

    def test_metadata_only(self, reader, client):
        """Test reading without data."""
        series = reader.read_series(WBB_TSID, read_data=False)

        assert series.points == []
        assert series.data_units == "Fahrenheit"
        assert "ts.request_url" not in series.properties
        urls = [c.args[0] for c in client._client.get.call_args_list]
        assert not any(u.endswith("stations/timeseries") for u in urls)

    def test_missing_value_array(self, reader, responses, caplog):
        """Test missing value array."""
        responses["stations/timeseries"] = timeseries_json(
            ["2023-01-01T00:00:00Z"], [1.0], array_name="air_temp_set_2"
        )

        series = reader.read_series(WBB_TSID, "2023-01-01", "2023-01-02")

        assert series.points == []
        assert series.properties["ts.value_count"] == 0
        assert "No 'air_temp_set_1' observations" in caplog.text

    def test_unequal_arrays(self, reader, responses):
        """Test timestamp and value arrays of different lengths."""
        responses["stations/timeseries"] = timeseries_json(["2023-01-01T00:00:00Z"], [1.0, 2.0])

        with pytest.raises(ServiceError, match="1 timestamps and 2"):
            reader.read_series(WBB_TSID, "2023-01-01", "2023-01-02")

    def test_bad_timestamp_fails_read(self, reader, responses):
        """Test invalid timestamp fails the read."""
        responses["stations/timeseries"] = timeseries_json(
            ["2023-01-01T00:00:00Z", "yesterday"], [1.0, 2.0]
        )

        with pytest.raises(ServiceError, match="timestamp"):
            reader.read_series(WBB_TSID, "2023-01-01", "2023-01-02")

    def test_bad_value_fails_read(self, reader, responses):
        """Test invalid value fails the read."""
        responses["stations/timeseries"] = timeseries_json(["2023-01-01T00:00:00Z"], ["warm"])

        with pytest.raises(ServiceError, match="value"):
            reader.read_series(WBB_TSID, "2023-01-01", "2023-01-02")

    def test_service_error(self, reader, responses):
        """Test service error raised."""
        responses["stations/timeseries"] = {
            "SUMMARY": {"RESPONSE_CODE": -1, "RESPONSE_MESSAGE": "Invalid token."}
        }

        with pytest.raises(ServiceError, match="Invalid token"):
            reader.read_series(WBB_TSID, "2023-01-01", "2023-01-02")

    def test_other_station_data_rejected(self, reader, responses):
        """Test response for a different station raised as ServiceError."""
        data = timeseries_json(["2023-01-01T00:00:00Z"], [1.0])
        data["STATION"][0]["STID"] = "KSLC"
        responses["stations/timeseries"] = data

        with pytest.raises(ServiceError, match="no data for station 'WBB'"):
            reader.read_series(WBB_TSID, "2023-01-01", "2023-01-02")

    def test_local_timestamps(self, reader, responses):
        """Test timestamps with offsets."""
        responses["stations/timeseries"] = timeseries_json(
            ["2023-06-15T08:00:00-0600", "2023-06-15T08:05:00-0600"], [70.1, 70.3]
        )

        series = reader.read_series(WBB_TSID, "2023-06-15", "2023-06-16")

        assert series.points[0].timestamp.astimezone(timezone.utc) == datetime(
            2023, 6, 15, 14, 0, tzinfo=timezone.utc
        )

    def test_output_timezone(self, reader):
        """Test output time zone conversion."""
        series = reader.read_series(
            WBB_TSID, "2023-01-01", "2023-01-02", ReadOptions(timezone="America/Denver")
        )

        assert series.points[0].timestamp.utcoffset().total_seconds() == -7 * 3600
        assert series.points[0].timestamp.hour == 17

    def test_irregular_override_truncates(self, reader, responses):
        """Test timestamps truncated to the override precision."""
        responses["stations/timeseries"] = timeseries_json(
            ["2023-06-15T08:05:00-0600", "2023-06-15T09:55:00-0600"], [1.0, 2.0]
        )

        series = reader.read_series(
            "WBB.Synoptic.air_temp.1Hour",
            "2023-06-15",
            "2023-06-16",
            ReadOptions(irregular_interval="IrregHour"),
        )

        assert series.identifier == "WBB.Synoptic.air_temp.IrregHour"
        assert [p.timestamp.hour for p in series.points] == [8, 9]
        assert all(p.timestamp.minute == 0 for p in series.points)

    def test_day_values_shift_to_previous_day(self, reader, responses):
        """Test daily values moved to the previous day."""
        responses["stations/timeseries"] = timeseries_json(["2023-06-16T00:00:00-0600"], [1.0])

        series = reader.read_series("WBB.Synoptic.air_temp.1Day", "2023-06-15", "2023-06-17")

        assert series.identifier == "WBB.Synoptic.air_temp.1Day"
        assert series.points[0].timestamp.date() == datetime(2023, 6, 15).date()
        assert series.date1 == datetime(2023, 6, 14)

    def test_read_day_as_24hour(self, reader, responses):
        """Test daily values read as 24-hour values."""
        responses["stations/timeseries"] = timeseries_json(["2023-06-16T00:10:00-0600"], [1.0])

        series = reader.read_series(
            "WBB.Synoptic.air_temp.1Day",
            "2023-06-15",
            "2023-06-17",
            ReadOptions(read_day_as_24hour=True),
        )

        assert series.identifier == "WBB.Synoptic.air_temp.24Hour"
        assert series.points[0].timestamp.day == 16
        assert series.points[0].timestamp.minute == 0

    def test_read_entry_skips_catalog_lookup(self, reader, client):
        """Test reading an entry without a catalog lookup."""
        entry = reader.catalog.flatten(WBB_METADATA_JSON)[0]
        client._client.get.reset_mock()

        series = reader.read_entry(entry, start="2023-01-01", end="2023-01-02")

        assert series.identifier == "WBB.UUNET.air_temp.IrregSecond"
        urls = [c.args[0] for c in client._client.get.call_args_list]
        assert not any(u.endswith("stations/metadata") for u in urls)
        assert len(series.points) == 2
