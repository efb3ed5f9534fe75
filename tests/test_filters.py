"""
Tests for filter clause parsing and translation.
"""

import pytest

from synopticts.exceptions import ParseError, ValidationError
from synopticts.filters import (
    MISSING_LOCATION_WARNING,
    FilterClause,
    FilterTranslator,
    check_filters,
    choices,
    parse_filters,
)
from synopticts.reference import ReferenceData, read_nws_cwa


class TestFilterClause:
    """Test parsing of Field;Operator;Value strings."""

    def test_parse_matches(self):
        """Test parsing a Matches clause."""
        clause = FilterClause.parse("State;Matches;CO - Colorado")
        assert clause.field == "State"
        assert clause.operator == "Matches"
        assert clause.values == ["CO - Colorado"]

    def test_parse_in(self):
        """Test parsing an In clause."""
        clause = FilterClause.parse("status;in;ACTIVE, INACTIVE")
        assert clause.operator == "In"
        assert clause.values == ["ACTIVE", "INACTIVE"]

    def test_parse_in_cwa_choices(self):
        """Test parsing an In list of CWA choices that contain commas."""
        by_code = {c.cwa: c.filter_choice for c in read_nws_cwa()}
        text = f"NWS CWA;In;{by_code['BOU']},{by_code['GJT']}, {by_code['PUB']}"

        clause = FilterClause.parse(text)

        assert clause.values == [by_code["BOU"], by_code["GJT"], by_code["PUB"]]

    def test_parse_in_state_codes(self):
        """Test parsing an In list of plain state codes."""
        assert FilterClause.parse("State;In;CO,UT").values == ["CO", "UT"]

    def test_parse_empty_value(self):
        """Test parsing an empty value."""
        clause = FilterClause.parse("Station - ID;Matches;")
        assert clause.values == []
        assert clause.is_empty

    @pytest.mark.parametrize("operator", ["Contains", "StartsWith", "EndsWith"])
    def test_substring_operators_rejected(self, operator):
        """Test substring operators rejected."""
        with pytest.raises(ValidationError, match=operator):
            FilterClause.parse(f"Station - ID;{operator};WB")

    @pytest.mark.parametrize(
        "text",
        ["State;Matches", "Elevation;Matches;5000", "State;Equals;CO", "a;b;c;d"],
    )
    def test_parse_invalid(self, text):
        """Test malformed clauses rejected."""
        with pytest.raises(ParseError):
            FilterClause.parse(text)

    def test_parse_filters_skips_blank(self):
        """Test blank Where strings skipped."""
        clauses = parse_filters(["State;Matches;CO", "", None, "  "])
        assert len(clauses) == 1


class TestFilterTranslator:
    """Test translation into Synoptic query parameters."""

    @pytest.fixture
    def translator(self, client):
        return FilterTranslator(ReferenceData(client))

    def test_state_and_cwa_use_code(self, translator):
        """Test state and CWA choices sent as codes."""
        params = translator.to_query_params(
            [
                FilterClause("State", "Matches", ["CO - Colorado"]),
                FilterClause("NWS CWA", "Matches", ["BOU - CO, Boulder"]),
            ]
        )
        assert params == [("state", "CO"), ("cwa", "BOU")]

    def test_list_values(self, translator):
        """Test list values joined with commas."""
        params = translator.to_query_params(
            [FilterClause("state", "In", ["CO - Colorado", "UT - Utah"])]
        )
        assert params == [("state", "CO,UT")]

    def test_station_and_status(self, translator):
        """Test station ID and status values."""
        params = translator.to_query_params(
            [
                FilterClause("Station - ID", "Matches", ["WBB"]),
                FilterClause("Status", "Matches", ["active"]),
            ]
        )
        assert params == [("stid", "WBB"), ("status", "ACTIVE")]

    def test_empty_values_dropped(self, translator):
        """Test empty values dropped."""
        params = translator.to_query_params(
            [
                FilterClause("State", "Matches", []),
                FilterClause("stid", "Matches", ["  "]),
                FilterClause("cwa", "Matches", ["GJT"]),
            ]
        )
        assert params == [("cwa", "GJT")]

    def test_cwa_choice_list(self, translator):
        """Test an In list of CWA choices sent as codes."""
        clause = FilterClause.parse("NWS CWA;In;BOU - CO, Boulder,GJT - CO, Grand Junction")

        assert translator.to_query_params([clause]) == [("cwa", "BOU,GJT")]

    def test_network_short_name_sent_as_id(self, translator):
        """Test network short names sent as ids."""
        params = translator.to_query_params(
            [FilterClause("Network", "In", ["RAWS", "CO_DOT", "UNKNOWN"])]
        )
        assert params == [("network", "2,65,UNKNOWN")]

    def test_network_short_name_kept_when_disabled(self, client):
        """Test network short names sent unchanged."""
        translator = FilterTranslator(ReferenceData(client), network_ids=False)
        params = translator.to_query_params([FilterClause("network", "Matches", ["RAWS"])])
        assert params == [("network", "RAWS")]
        client._client.get.assert_not_called()


class TestCheckFilters:
    """Test the state/CWA requirement check."""

    def test_state_present(self):
        """Test state filter present."""
        assert check_filters([FilterClause("State", "Matches", ["CO"])]) == ""

    def test_cwa_present(self):
        """Test CWA filter present."""
        assert check_filters([FilterClause("NWS CWA", "Matches", ["BOU - CO, Boulder"])]) == ""

    def test_missing(self):
        """Test warning without state or CWA."""
        assert check_filters([FilterClause("Network", "Matches", ["RAWS"])]) == (
            MISSING_LOCATION_WARNING
        )

    def test_empty_state_does_not_count(self):
        """Test empty state filter not counted."""
        assert check_filters([FilterClause("State", "Matches", [])]) == (
            MISSING_LOCATION_WARNING
        )


def test_choices(client):
    """Test filter choice lists."""
    result = choices(ReferenceData(client))

    assert result["network"] == ["CO_DOT", "NWS/FAA", "RAWS", "UUNET"]
    assert "CO - Colorado" in result["state"]
    assert "BOU - CO, Boulder" in result["cwa"]
    assert result["status"] == ["ACTIVE", "INACTIVE"]
