"""
Configuration for a Synoptic datastore.

A datastore is configured by the host application from a small set of
properties (the datastore configuration file).  The API token is passed on
every request as the ``token`` query parameter.
"""

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .exceptions import ValidationError

DEFAULT_SERVICE_ROOT_URI = "https://api.synopticdata.com/v2"
TOKEN_ENV_VAR = "SYNOPTIC_API_TOKEN"


def _parse_bool(name: str, value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValidationError(f"Property {name}={value!r} is invalid, expected True or False")


def _parse_int(name: str, value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Property {name}={value!r} is not an integer") from e


@dataclass
class SynopticConfig:
    """Settings for one configured Synoptic connection."""

    name: str = "Synoptic"
    description: str = ""
    service_root_uri: str = DEFAULT_SERVICE_ROOT_URI
    api_token: str = ""
    debug: bool = False
    timeout: int = 30
    # Unit system requested for observation values ('english' or 'metric').
    units: str = "english"
    # Send numeric network ids rather than short names in 'network' filters.
    network_filter_uses_id: bool = True

    def __post_init__(self) -> None:
        self.service_root_uri = self.service_root_uri.rstrip("/")
        if not self.api_token:
            self.api_token = os.getenv(TOKEN_ENV_VAR, "")

    @classmethod
    def from_properties(cls, props: Mapping[str, Any]) -> "SynopticConfig":
        """
        Create a configuration from host datastore properties.

        Recognized properties are ``Name``, ``Description``, ``ServiceRootURI``,
        ``ApiToken``, ``Debug``, ``Timeout``, ``Units`` and
        ``NetworkFilterUsesId``.  Unknown properties are ignored.

        Raises:
            ValidationError: If a boolean or integer property is malformed.
        """
        root: Optional[str] = props.get("ServiceRootURI")
        return cls(
            name=props.get("Name") or "Synoptic",
            description=props.get("Description") or "",
            service_root_uri=root or DEFAULT_SERVICE_ROOT_URI,
            api_token=props.get("ApiToken") or "",
            debug=_parse_bool("Debug", props.get("Debug"), False),
            timeout=_parse_int("Timeout", props.get("Timeout"), 30),
            units=props.get("Units") or "english",
            network_filter_uses_id=_parse_bool(
                "NetworkFilterUsesId", props.get("NetworkFilterUsesId"), True
            ),
        )
