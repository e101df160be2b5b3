"""Tests for shape normalization and category/geometry invariants."""
import math

import pytest
from shapely.geometry import LineString, MultiPolygon, Point, Polygon, box

from shape_guard.contracts import ConflictConfig, Shape, ShapeCategory
from shape_guard.normalize import (
    InvalidGeometryKind,
    check_shape_invariants,
    normalize,
    shape_area_m2,
)


def _circle(shape_id="c", center=(0.0, 0.0), radius=50.0):
    return Shape(
        shape_id=shape_id,
        category=ShapeCategory.CIRCLE,
        geometry=Point(center),
        radius_m=radius,
    )


class TestExemptShapes:
    def test_line_is_exempt(self, planar_config):
        line = Shape("l", ShapeCategory.LINE, LineString([(0, 0), (10, 10)]))
        assert normalize(line, planar_config) is None

    def test_marker_is_exempt(self, planar_config):
        marker = Shape("m", ShapeCategory.MARKER, Point(5, 5))
        assert normalize(marker, planar_config) is None

    def test_exempt_area_is_zero(self, planar_config):
        line = Shape("l", ShapeCategory.LINE, LineString([(0, 0), (10, 10)]))
        assert shape_area_m2(line, planar_config) == 0.0


class TestPolygonPassThrough:
    def test_polygon_returned_unchanged(self, base_square, planar_config):
        assert normalize(base_square, planar_config) is base_square.geometry

    def test_multipolygon_returned_unchanged(self, planar_config):
        mp = MultiPolygon([box(0, 0, 10, 10), box(20, 20, 30, 30)])
        shape = Shape("mp", ShapeCategory.POLYGON, mp)
        assert normalize(shape, planar_config) is mp

    def test_rectangle_category(self, planar_config):
        rect = Shape("r", ShapeCategory.RECTANGLE, box(0, 0, 40, 20))
        assert normalize(rect, planar_config).area == pytest.approx(800.0)

    def test_self_intersecting_polygon_is_repaired(self, planar_config):
        bowtie = Polygon([(0, 0), (10, 10), (10, 0), (0, 10)])
        assert not bowtie.is_valid
        shape = Shape("bow", ShapeCategory.POLYGON, bowtie)
        geom = normalize(shape, planar_config)
        assert geom.is_valid
        assert geom.area > 0


class TestCircleNormalization:
    def test_circle_becomes_64_gon(self, planar_config):
        geom = normalize(_circle(radius=200.0), planar_config)
        assert isinstance(geom, Polygon)
        assert len(geom.exterior.coords) == 65  # closed ring
        expected = 0.5 * 64 * 200.0 ** 2 * math.sin(2 * math.pi / 64)
        assert geom.area == pytest.approx(expected)

    def test_segment_count_is_configurable(self):
        config = ConflictConfig(circle_segments=16)
        geom = normalize(_circle(), config)
        assert len(geom.exterior.coords) == 17

    def test_circle_shape_keeps_native_encoding(self, planar_config):
        circle = _circle()
        normalize(circle, planar_config)
        assert isinstance(circle.geometry, Point)
        assert circle.radius_m == 50.0

    def test_circle_area_in_geodetic_mode(self, geodetic_config):
        area = shape_area_m2(_circle(center=(2.35, 48.85), radius=500.0), geodetic_config)
        assert area == pytest.approx(math.pi * 500.0 ** 2, rel=1e-2)


class TestInvariantViolations:
    @pytest.mark.parametrize(
        "shape",
        [
            Shape("c1", ShapeCategory.CIRCLE, Point(0, 0)),
            Shape("c2", ShapeCategory.CIRCLE, Point(0, 0), radius_m=0.0),
            Shape("c3", ShapeCategory.CIRCLE, box(0, 0, 1, 1), radius_m=5.0),
            Shape("p1", ShapeCategory.POLYGON, Point(0, 0)),
            Shape("p2", ShapeCategory.POLYGON, Polygon()),
            Shape("p3", ShapeCategory.RECTANGLE, LineString([(0, 0), (1, 1)])),
            Shape("p4", ShapeCategory.POLYGON, box(0, 0, 1, 1), radius_m=3.0),
            Shape("l1", ShapeCategory.LINE, box(0, 0, 1, 1)),
            Shape("m1", ShapeCategory.MARKER, LineString([(0, 0), (1, 1)])),
        ],
        ids=lambda s: s.shape_id,
    )
    def test_mismatched_pairing_raises(self, shape, planar_config):
        with pytest.raises(InvalidGeometryKind):
            check_shape_invariants(shape)
        with pytest.raises(InvalidGeometryKind):
            normalize(shape, planar_config)

    def test_invalid_geometry_kind_is_value_error(self):
        assert issubclass(InvalidGeometryKind, ValueError)
