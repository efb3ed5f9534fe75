"""
Time series identifier and time interval parsing.

Identifiers have the form ``location.source.dataType.interval[.scenario][~inputName]``.
A part that contains a period is enclosed in single quotes, for example
``KDEN.NWS.'precip.accum'.IrregSecond``.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from .exceptions import ParseError

_REGULAR_RE = re.compile(
    r"^(\d*)(Second|Sec|Minute|Min|Hour|Day|Week|Month|Year)$", re.IGNORECASE
)
_IRREGULAR_RE = re.compile(
    r"^Irreg(?:ular)?(Second|Minute|Hour|Day|Month|Year)?$", re.IGNORECASE
)
_ALIASES = {"sec": "Second", "min": "Minute"}


def _canonical_base(text: str) -> str:
    lower = text.lower()
    if lower in _ALIASES:
        return _ALIASES[lower]
    return lower.capitalize()


@dataclass(frozen=True)
class TimeInterval:
    """
    A parsed time interval such as ``5Minute``, ``1Day``, ``Month`` or ``IrregSecond``.

    For irregular intervals ``base`` is the timestamp precision (None for plain
    ``Irregular``) and ``multiplier`` is 0.
    """

    base: Optional[str]
    multiplier: int
    irregular: bool = False

    @property
    def is_regular(self) -> bool:
        return not self.irregular

    @property
    def precision(self) -> Optional[str]:
        """Timestamp precision; the base for both regular and irregular intervals."""
        return self.base

    @classmethod
    def parse(cls, text: str) -> "TimeInterval":
        """
        Parse an interval string.

        Raises:
            ParseError: If the string is not a recognized interval
        """
        value = (text or "").strip()
        match = _IRREGULAR_RE.match(value)
        if match:
            base = _canonical_base(match.group(1)) if match.group(1) else None
            return cls(base=base, multiplier=0, irregular=True)
        match = _REGULAR_RE.match(value)
        if match:
            multiplier = int(match.group(1)) if match.group(1) else 1
            if multiplier < 1:
                raise ParseError(f"Interval multiplier must be >= 1: {text!r}")
            return cls(base=_canonical_base(match.group(2)), multiplier=multiplier)
        raise ParseError(f"Invalid time interval: {text!r}")

    def __str__(self) -> str:
        if self.irregular:
            return f"Irreg{self.base}" if self.base else "Irregular"
        if self.base in ("Month", "Year") and self.multiplier == 1:
            return str(self.base)
        return f"{self.multiplier}{self.base}"


def _split_outside_quotes(text: str, separator: str) -> List[str]:
    parts = []
    current = []
    quoted = False
    for char in text:
        if char == "'":
            quoted = not quoted
            current.append(char)
        elif char == separator and not quoted:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    if quoted:
        raise ParseError(f"Unbalanced quote in time series identifier: {text!r}")
    parts.append("".join(current))
    return parts


def _unquote(part: str) -> str:
    if len(part) >= 2 and part.startswith("'") and part.endswith("'"):
        return part[1:-1]
    return part


def _quote(part: str) -> str:
    return f"'{part}'" if "." in part else part


@dataclass(frozen=True)
class TSIdent:
    """Parsed time series identifier."""

    location: str
    source: str
    data_type: str
    interval: str = ""
    scenario: str = ""
    input_name: str = ""

    @classmethod
    def parse(cls, text: str) -> "TSIdent":
        """
        Parse a time series identifier.

        The interval may be empty; callers that require an interval check it.

        Raises:
            ParseError: If the identifier has fewer than three parts, more
                than five parts or an empty location
        """
        if text is None or not text.strip():
            raise ParseError("Time series identifier is empty")
        value = text.strip()
        input_name = ""
        pieces = _split_outside_quotes(value, "~")
        if len(pieces) > 1:
            value = pieces[0]
            input_name = "~".join(pieces[1:])
        parts = _split_outside_quotes(value, ".")
        if len(parts) < 3:
            raise ParseError(
                f"Time series identifier {text!r} must have at least "
                "location.source.dataType"
            )
        if len(parts) > 5:
            raise ParseError(f"Time series identifier {text!r} has too many parts")
        parts = [_unquote(p.strip()) for p in parts]
        parts.extend([""] * (5 - len(parts)))
        location, source, data_type, interval, scenario = parts
        if not location:
            raise ParseError(f"Time series identifier {text!r} has no location")
        return cls(
            location=location,
            source=source,
            data_type=data_type,
            interval=interval,
            scenario=scenario,
            input_name=input_name,
        )

    @property
    def time_interval(self) -> TimeInterval:
        """Parsed interval; raises ParseError if the interval is blank or invalid."""
        return TimeInterval.parse(self.interval)

    def with_interval(self, interval: str) -> "TSIdent":
        return TSIdent(
            location=self.location,
            source=self.source,
            data_type=self.data_type,
            interval=interval,
            scenario=self.scenario,
            input_name=self.input_name,
        )

    def __str__(self) -> str:
        text = ".".join(
            [
                _quote(self.location),
                _quote(self.source),
                _quote(self.data_type),
                self.interval,
            ]
        )
        if self.scenario:
            text += "." + _quote(self.scenario)
        if self.input_name:
            text += "~" + self.input_name
        return text
