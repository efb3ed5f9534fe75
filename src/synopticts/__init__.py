"""
Synoptic Data weather observations as time series.

Query Synoptic station metadata as a time series catalog and read
observations into time series with units and station properties.
"""

try:
    from importlib import metadata

    __version__ = metadata.version(__name__)
except Exception:
    __version__ = "unknown"

from .catalog import CatalogBuilder
from .client import SynopticClient
from .command import (
    ReadSynopticParameters,
    check_parameters,
    expand_alias,
    read_synoptic,
)
from .config import SynopticConfig
from .datastore import SynopticDataStore, create_datastore
from .exceptions import (
    AmbiguousMatchError,
    CatalogMatchError,
    NoMatchError,
    ParseError,
    ServiceError,
    SynopticConnectionError,
    SynopticError,
    ValidationError,
)
from .filters import FilterClause, FilterTranslator, check_filters
from .models import (
    CatalogEntry,
    DataPoint,
    Network,
    NwsCwa,
    ObservationSeries,
    ReadOptions,
    ReadResult,
    State,
    Summary,
    Variable,
)
from .reader import TimeSeriesReader
from .reference import ReferenceData, ReferenceSnapshot
from .tsid import TimeInterval, TSIdent

__all__ = [
    # Datastore
    "SynopticDataStore",
    "create_datastore",
    "SynopticConfig",
    "SynopticClient",
    "CatalogBuilder",
    "TimeSeriesReader",
    "ReferenceData",
    "ReferenceSnapshot",
    # Command
    "ReadSynopticParameters",
    "check_parameters",
    "expand_alias",
    "read_synoptic",
    # Filters
    "FilterClause",
    "FilterTranslator",
    "check_filters",
    # Models
    "CatalogEntry",
    "DataPoint",
    "Network",
    "NwsCwa",
    "ObservationSeries",
    "ReadOptions",
    "ReadResult",
    "State",
    "Summary",
    "Variable",
    "TimeInterval",
    "TSIdent",
    # Exceptions
    "SynopticError",
    "ParseError",
    "ValidationError",
    "ServiceError",
    "SynopticConnectionError",
    "CatalogMatchError",
    "NoMatchError",
    "AmbiguousMatchError",
]
