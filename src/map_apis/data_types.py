from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

__all__ = ["ExternalPlace", "flexible_string", "parse_location"]


def flexible_string(value: Any) -> str:
    """
    Normalise a provider field that may arrive as a string or a list of strings.

    AMap returns `[]` instead of `""` for empty text fields such as `address`.
    A list yields its first element, anything else yields an empty string.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        if value and isinstance(value[0], str):
            return value[0]
        return ""
    return ""


def parse_location(location: Any) -> Optional[Tuple[float, float]]:
    """Parse an AMap `"lng,lat"` string. Returns None when it cannot be parsed."""
    text = flexible_string(location)
    if "," not in text:
        return None
    lng_str, lat_str = text.split(",", 1)
    try:
        return float(lng_str), float(lat_str)
    except ValueError:
        return None


@dataclass(frozen=True)
class ExternalPlace:
    """A nearby facility as returned by an external mapping provider."""

    name: str
    type_code: str
    location: str
    address: str = ""
    provider_id: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ExternalPlace":
        return cls(
            name=flexible_string(record.get("name")),
            type_code=flexible_string(record.get("typecode")),
            location=flexible_string(record.get("location")),
            address=flexible_string(record.get("address")),
            provider_id=flexible_string(record.get("id")),
        )
