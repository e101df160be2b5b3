"""
Shared test fixtures for shape conflict resolution tests.
"""
import sys
from pathlib import Path

import pytest
from shapely.geometry import box

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shape_guard.contracts import ConflictConfig, Shape, ShapeCategory


@pytest.fixture
def planar_config():
    """Metric coordinates, default thresholds."""
    return ConflictConfig(coordinate_mode="planar")


@pytest.fixture
def geodetic_config():
    return ConflictConfig(coordinate_mode="geodetic")


@pytest.fixture
def base_square():
    """A 100m x 100m polygon with its lower-left corner at the origin."""
    return Shape(
        shape_id="square",
        category=ShapeCategory.POLYGON,
        geometry=box(0, 0, 100, 100),
    )
