"""Conversion between Python values and DynamoDB item attributes."""
import math
from decimal import Decimal
from typing import Any


def to_item(values: dict) -> dict:
    """
    Convert a dict of Python values into a DynamoDB item.

    Floats become Decimal, None and empty strings are left out, and
    non-finite numbers are dropped since DynamoDB cannot store them.
    """
    item = {}
    for key, value in values.items():
        converted = _to_attribute(value)
        if converted is not None:
            item[key] = converted
    return item


def from_item(item: dict) -> dict:
    """Convert a DynamoDB item back into plain Python values."""
    return {key: _from_attribute(value) for key, value in item.items()}


def _to_attribute(value: Any) -> Any:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Decimal(str(value))
    if isinstance(value, dict):
        return to_item(value) or None
    if isinstance(value, (list, tuple)):
        converted = [_to_attribute(v) for v in value]
        return [v for v in converted if v is not None]
    return value


def _from_attribute(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return from_item(value)
    if isinstance(value, list):
        return [_from_attribute(v) for v in value]
    return value
