from __future__ import annotations

import importlib
from pathlib import Path

import pytest

from map_apis.type_projection import (
    AMAP_SEARCH_TYPES,
    AMAP_TYPE_TABLE,
    DEFAULT_MAPPING,
    AMapTypeTable,
    map_external_type,
)


@pytest.mark.parametrize(
    "code, expected",
    [
        ("090100", ("medical", "community_health")),
        ("090500", ("medical", "pharmacy")),
        ("141201", ("education", "kindergarten")),
        ("141203", ("child", "nursery")),
        ("060402", ("commerce", "convenience")),
        ("150500", ("transport", "metro")),
        ("160100", ("public", "bank")),
    ],
)
def test_exact_codes(code, expected) -> None:
    assert map_external_type(code) == expected


def test_mid_category_wildcard() -> None:
    # 150299 is not listed; its mid category 150200 is.
    assert map_external_type("150299") == ("transport", "bus_stop")
    assert map_external_type("110199") == ("culture", "park")


@pytest.mark.parametrize("code", [None, "", "   ", "999999", "abc", "12", "0000000000"])
def test_unknown_codes_use_default(code) -> None:
    assert map_external_type(code) == DEFAULT_MAPPING


def test_multi_code_uses_first() -> None:
    assert map_external_type("090500|060400") == ("medical", "pharmacy")
    assert map_external_type(" 150200 ") == ("transport", "bus_stop")


def test_mapping_is_total_over_generated_codes() -> None:
    for big in range(0, 100, 7):
        for mid in range(0, 100, 13):
            for sub in (0, 1, 5, 99):
                category, sub_type = map_external_type(f"{big:02d}{mid:02d}{sub:02d}")
                assert category and sub_type


def test_table_is_immutable_and_loaded() -> None:
    assert len(AMAP_TYPE_TABLE) > 50
    assert "090100" in AMAP_TYPE_TABLE
    with pytest.raises(TypeError):
        AMAP_TYPE_TABLE.entries["999999"] = None  # type: ignore[index]


def test_search_types_resolve() -> None:
    for code in AMAP_SEARCH_TYPES:
        assert len(code) == 6
        assert map_external_type(code)


def test_duplicate_codes_rejected(tmp_path: Path) -> None:
    csv_path = tmp_path / "types.csv"
    csv_path.write_text(
        "typecode,category,sub_type,label\n090100,medical,clinic,A\n090100,medical,hospital,B\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="Duplicate"):
        AMapTypeTable(csv_path)


def test_module_import_builds_table() -> None:
    import map_apis.type_projection as type_projection

    reloaded = importlib.reload(type_projection)
    assert len(reloaded.AMAP_TYPE_TABLE) == len(AMAP_TYPE_TABLE)
    assert reloaded.map_external_type("090500") == ("medical", "pharmacy")
