from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any


def normalize_network(network_id: str) -> str:
    """Return the wire form of a network ID (``base_sepolia`` -> ``base-sepolia``)."""
    return str(network_id).replace("_", "-")


def to_network_id(value: str) -> str:
    """Return the local form of a network ID (``base-sepolia`` -> ``base_sepolia``)."""
    return str(value).replace("-", "_")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def format_decimal(value: Decimal) -> str:
    """Render a Decimal without exponent notation or trailing zeros."""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def pretty_print_object(name: str, **details: Any) -> str:
    filtered = ", ".join(f"{k}: '{v}'" for k, v in details.items() if v is not None)
    return f"{name}{{{filtered}}}"
