"""
Integration tests against the live Synoptic web service.

These tests need network access and a token in ``SYNOPTIC_API_TOKEN``.  They
are deselected by default; run them with ``pytest -m network``.
"""

import os

import pytest

from synopticts.catalog import CatalogBuilder
from synopticts.client import SynopticClient
from synopticts.config import TOKEN_ENV_VAR, SynopticConfig
from synopticts.filters import FilterClause
from synopticts.reference import ReferenceData

pytestmark = [
    pytest.mark.network,
    pytest.mark.skipif(
        not os.getenv(TOKEN_ENV_VAR), reason=f"{TOKEN_ENV_VAR} is not set"
    ),
]


class TestSynopticService:
    """Test the client against the live service."""

    @pytest.fixture
    def client(self):
        """Create a client using the token from the environment."""
        with SynopticClient(SynopticConfig(timeout=60)) as client:
            yield client

    def test_get_networks(self, client):
        """Test reading the networks list."""
        networks = client.get_networks()

        assert len(networks) > 0
        shortnames = {n.shortname for n in networks}
        assert "RAWS" in shortnames

    def test_find_entry(self, client):
        """Test resolving a catalog identifier back to its entry."""
        builder = CatalogBuilder(client, ReferenceData(client))
        entries = builder.build_catalog(
            data_type="air_temp",
            filter_clauses=[FilterClause("Station - ID", "Matches", ["WBB"])],
        )
        assert entries

        entry = builder.find_entry(entries[0].to_tsid())

        assert entry == entries[0]
        assert entry.station_id == "WBB"
        assert entry.sensor_variable == "air_temp"
