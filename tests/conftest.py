from __future__ import annotations

import pytest

from fakes import FakeSpatialEngine
from life_circle.errors import SpatialEngineError


@pytest.fixture
def engine() -> FakeSpatialEngine:
    return FakeSpatialEngine()


@pytest.fixture
def spatial_error() -> SpatialEngineError:
    return SpatialEngineError("connection refused")
