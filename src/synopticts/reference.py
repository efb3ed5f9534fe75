"""
Reference lists used for filter choices and catalog descriptions.

The lists are loaded once when a datastore is created and are kept until
``refresh()`` is called.  A failure loading one list is logged and leaves
that list empty without affecting the other lists.
"""

import logging
import re
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Callable, List, Optional, TypeVar, Union

import pandas as pd

from .client import SynopticClient
from .decode import to_float, to_int
from .models import Network, NwsCwa, State, Variable

logger = logging.getLogger(__name__)

T = TypeVar("T")

CWA_RESOURCE = "synoptic-nws-cwa.csv"

_WHITESPACE_RE = re.compile(r"\s+")

# Synoptic 'state' filter values: 50 states and the District of Columbia
STATES = [
    ("AL", "Alabama"),
    ("AK", "Alaska"),
    ("AZ", "Arizona"),
    ("AR", "Arkansas"),
    ("CA", "California"),
    ("CO", "Colorado"),
    ("CT", "Connecticut"),
    ("DE", "Delaware"),
    ("DC", "District of Columbia"),
    ("FL", "Florida"),
    ("GA", "Georgia"),
    ("HI", "Hawaii"),
    ("ID", "Idaho"),
    ("IL", "Illinois"),
    ("IN", "Indiana"),
    ("IA", "Iowa"),
    ("KS", "Kansas"),
    ("KY", "Kentucky"),
    ("LA", "Louisiana"),
    ("ME", "Maine"),
    ("MD", "Maryland"),
    ("MA", "Massachusetts"),
    ("MI", "Michigan"),
    ("MN", "Minnesota"),
    ("MS", "Mississippi"),
    ("MO", "Missouri"),
    ("MT", "Montana"),
    ("NE", "Nebraska"),
    ("NV", "Nevada"),
    ("NH", "New Hampshire"),
    ("NJ", "New Jersey"),
    ("NM", "New Mexico"),
    ("NY", "New York"),
    ("NC", "North Carolina"),
    ("ND", "North Dakota"),
    ("OH", "Ohio"),
    ("OK", "Oklahoma"),
    ("OR", "Oregon"),
    ("PA", "Pennsylvania"),
    ("RI", "Rhode Island"),
    ("SC", "South Carolina"),
    ("SD", "South Dakota"),
    ("TN", "Tennessee"),
    ("TX", "Texas"),
    ("UT", "Utah"),
    ("VT", "Vermont"),
    ("VA", "Virginia"),
    ("WA", "Washington"),
    ("WV", "West Virginia"),
    ("WI", "Wisconsin"),
    ("WY", "Wyoming"),
]


@dataclass
class ReferenceSnapshot:
    """The reference lists as last loaded."""

    states: List[State] = field(default_factory=list)
    networks: List[Network] = field(default_factory=list)
    cwa_list: List[NwsCwa] = field(default_factory=list)
    variables: List[Variable] = field(default_factory=list)


def normalize_shortname(shortname: str) -> str:
    """Replace whitespace in a network short name with underscores."""
    return _WHITESPACE_RE.sub("_", shortname.strip())


def read_states() -> List[State]:
    return [State(abbreviation=abbrev, name=name) for abbrev, name in STATES]


def read_nws_cwa(path: Optional[Union[str, Path]] = None) -> List[NwsCwa]:
    """
    Read the NWS County Warning Area table.

    Args:
        path: CSV file to read, by default the table bundled with the package

    Returns:
        List of NwsCwa sorted by the FILTER_CHOICE_TO_SORT column
    """
    if path is None:
        resource = resources.files("synopticts") / "resources" / CWA_RESOURCE
        with resource.open("r", encoding="utf-8") as f:
            df = pd.read_csv(f, comment="#", dtype=str, keep_default_na=False)
    else:
        df = pd.read_csv(path, comment="#", dtype=str, keep_default_na=False)

    df.columns = [str(c).strip() for c in df.columns]
    for required in ("CWA", "FILTER_CHOICE"):
        if required not in df.columns:
            raise ValueError(f"NWS CWA table does not have the column {required}")
    df = df.apply(lambda col: col.str.strip())
    if "FILTER_CHOICE_TO_SORT" in df.columns:
        df = df.sort_values("FILTER_CHOICE_TO_SORT", kind="stable")

    def column(row: "pd.Series", name: str) -> str:
        return row[name] if name in row.index else ""

    cwa_list = []
    for _, row in df.iterrows():
        if not row["CWA"] or not row["FILTER_CHOICE"]:
            continue
        cwa_list.append(
            NwsCwa(
                cwa=row["CWA"],
                filter_choice=row["FILTER_CHOICE"],
                wfo=column(row, "WFO"),
                lat=to_float(column(row, "LAT")),
                lon=to_float(column(row, "LON")),
                region=column(row, "REGION"),
                full_staid=column(row, "FULLSTAID"),
                city_state=column(row, "CITYSTATE"),
                city=column(row, "CITY"),
                state=column(row, "STATE"),
                st=column(row, "ST"),
            )
        )
    return cwa_list


class ReferenceData:
    """
    In-memory cache of the Synoptic reference lists.

    Lists are read on first use; ``read_data=True`` forces a list to be read
    again.  There is no automatic invalidation.
    """

    def __init__(
        self, client: SynopticClient, cwa_path: Optional[Union[str, Path]] = None
    ):
        self.client = client
        self.cwa_path = cwa_path
        self._states: Optional[List[State]] = None
        self._networks: Optional[List[Network]] = None
        self._cwa_list: Optional[List[NwsCwa]] = None
        self._variables: Optional[List[Variable]] = None

    @staticmethod
    def _load(label: str, loader: Callable[[], List[T]]) -> List[T]:
        try:
            items = loader()
        except Exception as e:
            logger.warning(f"Error reading {label} list, using empty list: {e}")
            return []
        logger.info(f"Read {len(items)} {label}.")
        return items

    def get_states(self, read_data: bool = False) -> List[State]:
        if read_data or self._states is None:
            self._states = self._load("states", read_states)
        return self._states

    def get_networks(self, read_data: bool = False) -> List[Network]:
        if read_data or self._networks is None:
            self._networks = self._load("networks", self.client.get_networks)
        return self._networks

    def get_nws_cwa_list(self, read_data: bool = False) -> List[NwsCwa]:
        if read_data or self._cwa_list is None:
            self._cwa_list = self._load("NWS CWA", lambda: read_nws_cwa(self.cwa_path))
        return self._cwa_list

    def get_variables(self, read_data: bool = False) -> List[Variable]:
        if read_data or self._variables is None:
            self._variables = self._load("variables", self.client.get_variables)
        return self._variables

    def load_all(self, read_data: bool = False) -> ReferenceSnapshot:
        """
        Load all reference lists.

        Args:
            read_data: If True, read every list again; otherwise lists that
                were already loaded are returned from the cache

        Returns:
            ReferenceSnapshot holding the cached lists
        """
        return ReferenceSnapshot(
            states=self.get_states(read_data),
            networks=self.get_networks(read_data),
            cwa_list=self.get_nws_cwa_list(read_data),
            variables=self.get_variables(read_data),
        )

    def refresh(self) -> ReferenceSnapshot:
        """Read all reference lists again."""
        return self.load_all(read_data=True)

    def lookup_network(self, mnet_id: Union[int, str, None]) -> Optional[Network]:
        """
        Find a network by its numeric identifier.

        String identifiers, as used in station metadata, are converted to int;
        identifiers that are not integers match nothing.
        """
        network_id = to_int(mnet_id)
        if network_id is None:
            return None
        for network in self.get_networks():
            if network.id == network_id:
                return network
        return None

    def lookup_network_by_shortname(self, shortname: str) -> Optional[Network]:
        """
        Find a network by short name.

        Matching ignores case and treats whitespace and underscores alike, so
        names used in time series identifiers also match.
        """
        if not shortname:
            return None
        target = normalize_shortname(shortname).lower()
        for network in self.get_networks():
            if not network.shortname:
                continue
            if normalize_shortname(network.shortname).lower() == target:
                return network
        return None
