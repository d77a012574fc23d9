from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

__all__ = [
    "AMapTypeEntry",
    "AMapTypeTable",
    "AMAP_TYPE_TABLE",
    "AMAP_SEARCH_TYPES",
    "DEFAULT_MAPPING",
    "map_external_type",
]

_DEFAULT_TABLE_PATH = Path(__file__).resolve().parent / "amap_type_mapping.csv"

DEFAULT_MAPPING: Tuple[str, str] = ("public", "community_service")

# Type codes requested from the provider; one request covers all of them.
AMAP_SEARCH_TYPES: Tuple[str, ...] = (
    "090000",  # medical and health care
    "141200",  # kindergarten
    "141300",  # primary school
    "141400",  # secondary school
    "100100",  # welfare
    "060400",  # supermarket
    "050000",  # catering
    "080000",  # sports and culture venues
    "110000",  # parks and squares
    "130000",  # government agencies
    "150200",  # bus stops
    "150500",  # metro stations
    "160100",  # banks
)


@dataclass(frozen=True)
class AMapTypeEntry:
    type_code: str
    category: str
    sub_type: str
    label: str = ""

    @property
    def mapping(self) -> Tuple[str, str]:
        return self.category, self.sub_type


class AMapTypeTable:
    """
    AMap (Gaode) POI type codes mapped onto the internal category/subtype vocabulary.

    Codes are six digits: two for the big category, two for the mid category,
    two for the sub category. Lookups fall back from the exact code to its
    mid-category wildcard (`XXXX00`) and finally to DEFAULT_MAPPING, so every
    input resolves to a pair.
    """

    def __init__(self, csv_path: Optional[Path] = None) -> None:
        self.csv_path = csv_path or _DEFAULT_TABLE_PATH
        self._lookup: Mapping[str, AMapTypeEntry] = MappingProxyType(self._load())

    def __len__(self) -> int:
        return len(self._lookup)

    def __contains__(self, code: object) -> bool:
        return code in self._lookup

    @property
    def entries(self) -> Mapping[str, AMapTypeEntry]:
        return self._lookup

    def lookup(self, code: Optional[str]) -> Tuple[str, str]:
        type_code = _normalize_code(code)
        entry = self._lookup.get(type_code)
        if entry is None and len(type_code) >= 4:
            entry = self._lookup.get(type_code[:4] + "00")
        if entry is None:
            return DEFAULT_MAPPING
        return entry.mapping

    def _load(self) -> Dict[str, AMapTypeEntry]:
        lookup: Dict[str, AMapTypeEntry] = {}
        with self.csv_path.open(newline="", encoding="utf-8") as handle:
            reader = csv.DictReader(handle)
            for row in reader:
                type_code = _clean_cell(row.get("typecode"))
                category = _clean_cell(row.get("category"))
                sub_type = _clean_cell(row.get("sub_type"))
                if not type_code or not category or not sub_type:
                    continue
                if type_code in lookup:
                    raise ValueError(f"Duplicate AMap type code in {self.csv_path.name}: {type_code}")
                lookup[type_code] = AMapTypeEntry(type_code, category, sub_type, _clean_cell(row.get("label")))
        return lookup


def _normalize_code(code: Optional[str]) -> str:
    # AMap joins multiple codes with "|"; the first one is the primary type.
    value = _clean_cell(code).split("|", 1)[0].strip()
    return value[:6]


def _clean_cell(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


AMAP_TYPE_TABLE = AMapTypeTable()


def map_external_type(code: Optional[str]) -> Tuple[str, str]:
    """Translate an AMap type code into (category, subtype). Never fails."""
    return AMAP_TYPE_TABLE.lookup(code)
