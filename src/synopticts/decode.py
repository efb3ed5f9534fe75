"""
Decoding of Synoptic JSON objects into model dataclasses.

Model fields name their JSON property with ``metadata["json"]`` and an
optional ``metadata["convert"]`` callable.  JSON properties that are not
described by the model are ignored.
"""

import logging
from dataclasses import fields
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def to_float(value: Any) -> Optional[float]:
    """Convert a JSON value to float, returning None for null or non-numeric values."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def to_int(value: Any) -> Optional[int]:
    """Convert a JSON value to int, returning None for null or non-integer values."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        number = to_float(text)
        if number is not None and number.is_integer():
            return int(number)
        return None


def to_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    return None


_CONVERTERS = {
    int: to_int,
    float: to_float,
    bool: to_bool,
}


def _convert(value: Any, convert: Any) -> Any:
    if value is None or convert is None:
        return value
    if convert in _CONVERTERS:
        return _CONVERTERS[convert](value)
    if convert is str:
        return value if isinstance(value, str) else str(value)
    if convert is dict:
        return value if isinstance(value, dict) else None
    return convert(value)


def decode_record(cls: Type[T], node: Optional[Dict[str, Any]], **extra: Any) -> T:
    """
    Create a ``cls`` instance from a JSON object.

    Args:
        cls: Dataclass whose fields carry ``json`` metadata
        node: Decoded JSON object; None is treated as an empty object
        **extra: Field values that are not read from the JSON object

    Returns:
        Instance of ``cls``
    """
    node = node or {}
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):  # type: ignore[arg-type]
        key = f.metadata.get("json")
        if key is None or key not in node:
            continue
        kwargs[f.name] = _convert(node[key], f.metadata.get("convert"))
    kwargs.update(extra)
    return cls(**kwargs)


def decode_records(cls: Type[T], nodes: Optional[Iterable[Any]]) -> List[T]:
    """Decode a JSON array of objects, skipping elements that are not objects."""
    records = []
    for node in nodes or []:
        if not isinstance(node, dict):
            logger.debug(f"Skipping non-object element for {cls.__name__}: {node!r}")
            continue
        records.append(decode_record(cls, node))
    return records
