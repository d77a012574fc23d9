"""
Built-in reference tables.

Used whenever the backing store is empty or unreachable. Subtype codes in
DEFAULT_STANDARDS match the `sub_type` values stored in the local POI catalogue.

References:
  * GB 50180-2018 Standard for urban residential area planning and design
  * TD/T 1062-2021 Technical guide for community life circle planning
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Tuple

from life_circle.models import EvaluationStandard, POICategory, POISubType

__all__ = [
    "DEFAULT_STANDARDS",
    "DEFAULT_CATEGORIES",
    "CATEGORY_DISPLAY_NAMES",
    "GRADE_DESCRIPTIONS",
]


def _std(category: str, subtype: str, m15: int, m10: int, m5: int, required: bool, base: float) -> EvaluationStandard:
    return EvaluationStandard(
        category=category,
        subtype=subtype,
        min_count_5=m5,
        min_count_10=m10,
        min_count_15=m15,
        required=required,
        base_score=base,
    )


DEFAULT_STANDARDS: Tuple[EvaluationStandard, ...] = (
    _std("medical", "clinic", 1, 1, 0, True, 30),
    _std("medical", "pharmacy", 2, 1, 1, False, 10),
    _std("medical", "hospital", 1, 0, 0, False, 10),
    _std("medical", "dentist", 1, 0, 0, False, 5),
    _std("education", "kindergarten", 1, 1, 0, True, 25),
    _std("education", "school", 1, 0, 0, True, 25),
    _std("education", "college", 1, 0, 0, False, 10),
    _std("education", "library", 1, 0, 0, False, 10),
    _std("commerce", "supermarket", 1, 1, 0, True, 20),
    _std("commerce", "convenience", 3, 2, 1, False, 10),
    _std("commerce", "marketplace", 1, 0, 0, False, 10),
    _std("commerce", "restaurant", 2, 1, 0, False, 5),
    _std("culture", "park", 1, 0, 0, True, 20),
    _std("culture", "playground", 1, 0, 0, False, 10),
    _std("culture", "sports_centre", 1, 0, 0, False, 10),
    _std("culture", "community_centre", 1, 0, 0, False, 10),
    _std("culture", "cinema", 1, 0, 0, False, 5),
    _std("public", "police", 1, 0, 0, False, 15),
    _std("public", "post_office", 1, 0, 0, False, 15),
    _std("public", "townhall", 1, 0, 0, False, 20),
    _std("transport", "platform", 2, 1, 1, True, 15),
    _std("transport", "stop_position", 2, 1, 1, False, 10),
    _std("transport", "station", 1, 0, 0, False, 20),
    _std("transport", "bus_station", 1, 0, 0, False, 10),
    _std("elderly", "social_facility", 1, 0, 0, False, 25),
    # Not catalogued locally; only populated from the external provider.
    _std("child", "nursery", 1, 0, 0, False, 25),
)


def _cat(code: str, name: str, description: str, weight: float, *subs: Tuple[str, str, str]) -> POICategory:
    return POICategory(
        code=code,
        name=name,
        description=description,
        weight=weight,
        sub_types=tuple(POISubType(c, n, tag) for c, n, tag in subs),
    )


DEFAULT_CATEGORIES: Tuple[POICategory, ...] = (
    _cat(
        "medical", "Medical & Health",
        "Community health centres and stations, clinics, pharmacies",
        0.18,
        ("community_health", "Community health centre/station", "amenity=clinic"),
        ("hospital", "Hospital", "amenity=hospital"),
        ("pharmacy", "Pharmacy", "amenity=pharmacy"),
    ),
    _cat(
        "education", "Education",
        "Kindergartens, primary and secondary schools",
        0.18,
        ("kindergarten", "Kindergarten", "amenity=kindergarten"),
        ("primary", "Primary school", "amenity=school"),
        ("secondary", "Secondary school", "amenity=school"),
    ),
    _cat(
        "elderly", "Elderly Care",
        "Community elderly service centres, day care, senior activity rooms",
        0.12,
        ("elderly_center", "Community elderly service centre", "amenity=social_facility"),
        ("daycare", "Day care centre", "amenity=social_facility"),
        ("elderly_activity", "Senior activity room", "amenity=community_centre"),
    ),
    _cat(
        "commerce", "Commercial Services",
        "Fresh markets, supermarkets, convenience stores, restaurants",
        0.15,
        ("market", "Fresh market", "amenity=marketplace"),
        ("supermarket", "Supermarket", "shop=supermarket"),
        ("convenience", "Convenience store", "shop=convenience"),
        ("restaurant", "Restaurant", "amenity=restaurant"),
    ),
    _cat(
        "culture", "Culture & Sports",
        "Community cultural centres, sports fields, parks, reading rooms",
        0.12,
        ("culture_center", "Cultural activity centre", "amenity=community_centre"),
        ("sports_field", "Sports field", "leisure=pitch"),
        ("park", "Park", "leisure=park"),
        ("library", "Library/reading room", "amenity=library"),
    ),
    _cat(
        "public", "Public Services",
        "Community service centres, police posts, bank branches, post offices",
        0.10,
        ("community_service", "Community service centre", "amenity=townhall"),
        ("police", "Police post", "amenity=police"),
        ("bank", "Bank branch", "amenity=bank"),
        ("post", "Post office", "amenity=post_office"),
    ),
    _cat(
        "transport", "Transportation",
        "Bus stops, rail transit stations, public parking",
        0.10,
        ("bus_stop", "Bus stop", "highway=bus_stop"),
        ("metro", "Rail transit station", "railway=station"),
        ("parking", "Public parking", "amenity=parking"),
        ("bike_parking", "Bicycle parking", "amenity=bicycle_parking"),
    ),
    _cat(
        "child", "Childcare",
        "Nurseries, childcare institutions, children's play facilities",
        0.05,
        ("nursery", "Nursery/childcare", "amenity=childcare"),
        ("playground", "Playground", "leisure=playground"),
    ),
)

# "child" is intentionally absent: suggestions fall back to the stored category name.
CATEGORY_DISPLAY_NAMES: Mapping[str, str] = MappingProxyType({
    "medical": "Medical & Health",
    "education": "Education",
    "commerce": "Commercial Services",
    "culture": "Culture & Sports",
    "public": "Public Services",
    "transport": "Transportation",
    "elderly": "Elderly Care",
})

GRADE_DESCRIPTIONS: Mapping[str, str] = MappingProxyType({
    "A": "Excellent: the 15-minute life circle is fully equipped, facilities of every kind are in place and daily life is highly convenient.",
    "B": "Good: the life circle is well equipped and basically meets everyday needs.",
    "C": "Fair: the life circle basically meets needs, some facilities need improvement.",
    "D": "Poor: the life circle is under-equipped with several facility types missing; focused improvement is recommended.",
    "E": "Very poor: the life circle is severely under-equipped and urgently needs planning and construction.",
})
