"""
Translation of filter clauses into Synoptic station query parameters.

Filter clauses come from the host as ``Field;Operator;Value`` strings, for
example ``State;Matches;CO - Colorado``.  Synoptic only supports exact
values or comma-separated lists of values, so substring operators are not
accepted.
"""

import logging
import re
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Dict, Iterable, List, Optional, Tuple

from .exceptions import ParseError, ValidationError
from .reference import ReferenceData, normalize_shortname

logger = logging.getLogger(__name__)

OPERATOR_MATCHES = "Matches"
OPERATOR_IN = "In"
OPERATORS = [OPERATOR_MATCHES, OPERATOR_IN]

# Operators offered by generic filter panels that Synoptic cannot evaluate
UNSUPPORTED_OPERATORS = ["Contains", "StartsWith", "EndsWith"]

STATUS_CHOICES = ["ACTIVE", "INACTIVE"]

MISSING_LOCATION_WARNING = "State or NWS CWA is required to limit the query."

# List separator before a display choice such as "GJT - CO, Grand Junction"
_CHOICE_SEPARATOR_RE = re.compile(r",\s*(?=[A-Z0-9]+ - )")


@dataclass(frozen=True)
class FilterField:
    """A filterable field: internal key, display label and Synoptic query parameter."""

    key: str
    label: str
    parameter: str
    # Values are display choices whose code is the token before " - "
    coded_choice: bool = False


FIELDS = [
    FilterField("network", "Network", "network"),
    FilterField("cwa", "NWS CWA", "cwa", coded_choice=True),
    FilterField("state", "State", "state", coded_choice=True),
    FilterField("stid", "Station - ID", "stid"),
    FilterField("status", "Status", "status"),
]

_FIELDS_BY_NAME: Dict[str, FilterField] = {}
for _field in FIELDS:
    _FIELDS_BY_NAME[_field.key.lower()] = _field
    _FIELDS_BY_NAME[_field.label.lower()] = _field


def get_field(name: str) -> FilterField:
    """
    Look up a filter field by internal key or display label.

    Raises:
        ParseError: If the field is not recognized
    """
    filter_field = _FIELDS_BY_NAME.get((name or "").strip().lower())
    if filter_field is None:
        raise ParseError(f"Unknown filter field: {name!r}")
    return filter_field


@dataclass
class FilterClause:
    """A (field, operator, values) filter triple."""

    field: str
    operator: str = OPERATOR_MATCHES
    values: List[str] = dataclass_field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "FilterClause":
        """
        Parse a ``Field;Operator;Value`` string.

        An ``In`` value is a comma-separated list.  For State and NWS CWA the
        list may hold display choices, which can themselves contain commas
        ("BOU - CO, Boulder,GJT - CO, Grand Junction"), so the list is split
        before each choice code.  The value may be empty, in which case the
        clause is ignored during translation.

        Raises:
            ParseError: If the string does not have three parts or the
                operator is not known
            ValidationError: If the operator is a disabled substring operator
        """
        parts = (text or "").split(";")
        if len(parts) != 3:
            raise ParseError(
                f"Filter {text!r} must have the form Field;Operator;Value"
            )
        name, operator, value = (p.strip() for p in parts)
        filter_field = get_field(name)
        operator = _check_operator(operator)
        if operator == OPERATOR_IN:
            values = [v.strip() for v in _split_list(value, filter_field) if v.strip()]
        else:
            values = [value] if value else []
        return cls(field=name, operator=operator, values=values)

    @property
    def filter_field(self) -> FilterField:
        return get_field(self.field)

    @property
    def is_empty(self) -> bool:
        return not any(v.strip() for v in self.values)


def _split_list(value: str, filter_field: FilterField) -> List[str]:
    if filter_field.coded_choice and " - " in value:
        return _CHOICE_SEPARATOR_RE.split(value)
    return value.split(",")


def _check_operator(operator: str) -> str:
    for supported in OPERATORS:
        if operator.lower() == supported.lower():
            return supported
    for unsupported in UNSUPPORTED_OPERATORS:
        if operator.lower() == unsupported.lower():
            raise ValidationError(
                f"Filter operator {unsupported} is not supported by Synoptic, "
                f"use {OPERATOR_MATCHES} or {OPERATOR_IN}"
            )
    raise ParseError(f"Unknown filter operator: {operator!r}")


def parse_filters(texts: Iterable[Optional[str]]) -> List[FilterClause]:
    """Parse ``WhereN`` strings, ignoring blank strings."""
    return [FilterClause.parse(t) for t in texts if t and t.strip()]


def _choice_code(value: str) -> str:
    """Return the code from a display choice like 'CO - Colorado'."""
    return value.split(" - ", 1)[0].strip() if " - " in value else value.strip()


class FilterTranslator:
    """
    Converts filter clauses into Synoptic ``stations/metadata`` query parameters.

    When ``network_ids`` is True and reference data is available, network
    short names are sent as numeric network ids.
    """

    def __init__(
        self, reference: Optional[ReferenceData] = None, network_ids: bool = True
    ):
        self.reference = reference
        self.network_ids = network_ids

    def _network_value(self, value: str) -> str:
        if not self.network_ids or self.reference is None or value.isdigit():
            return value
        network = self.reference.lookup_network_by_shortname(value)
        if network is None or network.id is None:
            logger.debug(f"Network '{value}' is not known, using the short name")
            return value
        return str(network.id)

    def _values(self, clause: FilterClause) -> List[str]:
        filter_field = clause.filter_field
        values = []
        for value in clause.values:
            value = value.strip()
            if not value:
                continue
            if filter_field.coded_choice:
                value = _choice_code(value)
            elif filter_field.key == "network":
                value = self._network_value(normalize_shortname(value))
            elif filter_field.key == "status":
                value = value.upper()
            values.append(value)
        return values

    def to_query_params(self, clauses: Iterable[FilterClause]) -> List[Tuple[str, str]]:
        """
        Translate filter clauses into query parameters.

        Clauses with empty values are dropped.

        Returns:
            List of (parameter, value) pairs; list values are comma-separated
        """
        params = []
        for clause in clauses:
            values = self._values(clause)
            if not values:
                continue
            params.append((clause.filter_field.parameter, ",".join(values)))
        return params


def check_filters(clauses: Iterable[FilterClause]) -> str:
    """
    Check whether filter clauses sufficiently limit a catalog query.

    Returns:
        Empty string if a state or NWS CWA filter is given, otherwise a
        warning message for the user
    """
    for clause in clauses:
        if clause.filter_field.key in ("state", "cwa") and not clause.is_empty:
            return ""
    return MISSING_LOCATION_WARNING


def choices(reference: ReferenceData) -> Dict[str, List[str]]:
    """
    Return the filter choice lists keyed by filter field key.

    Network short names are sorted and have whitespace replaced by underscores.
    """
    networks = sorted(
        {
            normalize_shortname(n.shortname)
            for n in reference.get_networks()
            if n.shortname
        },
        key=str.lower,
    )
    return {
        "network": networks,
        "cwa": [c.filter_choice for c in reference.get_nws_cwa_list()],
        "state": [s.choice for s in reference.get_states()],
        "stid": [],
        "status": list(STATUS_CHOICES),
    }
