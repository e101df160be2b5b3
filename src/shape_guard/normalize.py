"""Shape -> polygonal geometry used by the boolean operations."""

from __future__ import annotations

from typing import Optional

from shapely.geometry import LineString, MultiLineString, MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry

from shape_guard.contracts import ConflictConfig, Shape, ShapeCategory
from shape_guard.measure import area_m2, circle_polygon


class InvalidGeometryKind(ValueError):
    """Category and geometry of a shape do not match."""


_AREAL = (Polygon, MultiPolygon)
_LINEAR = (LineString, MultiLineString)


def check_shape_invariants(shape: Shape) -> None:
    """Raise InvalidGeometryKind if the category/geometry pairing is broken."""
    geom = shape.geometry
    category = shape.category

    if category is ShapeCategory.CIRCLE:
        if not isinstance(geom, Point) or geom.is_empty:
            raise InvalidGeometryKind(
                f"Circle {shape.shape_id} needs a Point center, got {geom.geom_type}"
            )
        if shape.radius_m is None or not shape.radius_m > 0:
            raise InvalidGeometryKind(
                f"Circle {shape.shape_id} needs a positive radius, got {shape.radius_m}"
            )
        return

    if category in (ShapeCategory.POLYGON, ShapeCategory.RECTANGLE):
        if not isinstance(geom, _AREAL) or geom.is_empty:
            raise InvalidGeometryKind(
                f"{category.value} {shape.shape_id} needs a non-empty Polygon or "
                f"MultiPolygon, got {geom.geom_type}"
            )
    elif category is ShapeCategory.LINE:
        if not isinstance(geom, _LINEAR):
            raise InvalidGeometryKind(
                f"Line {shape.shape_id} needs a LineString, got {geom.geom_type}"
            )
    elif category is ShapeCategory.MARKER:
        if not isinstance(geom, Point):
            raise InvalidGeometryKind(
                f"Marker {shape.shape_id} needs a Point, got {geom.geom_type}"
            )

    if shape.radius_m is not None:
        raise InvalidGeometryKind(
            f"Only circles carry a radius ({shape.shape_id} is {category.value})"
        )


def normalize(
    shape: Shape, config: Optional[ConflictConfig] = None
) -> Optional[BaseGeometry]:
    """Return the polygonal form of *shape*, or ``None`` if it is exempt.

    Circles become a regular polygon with ``config.circle_segments`` sides.
    The shape itself is not modified.  Self-intersecting polygons are
    repaired with ``buffer(0)``.
    """
    config = config or ConflictConfig()
    check_shape_invariants(shape)

    if shape.is_exempt:
        return None

    if shape.category is ShapeCategory.CIRCLE:
        center = shape.geometry
        return circle_polygon(
            (center.x, center.y),
            float(shape.radius_m),
            segments=config.circle_segments,
            mode=config.coordinate_mode,
        )

    geom = shape.geometry
    if not geom.is_valid:
        geom = geom.buffer(0)
        if geom.is_empty or not isinstance(geom, _AREAL):
            raise InvalidGeometryKind(
                f"{shape.category.value} {shape.shape_id} has no usable area after repair"
            )
    return geom


def shape_area_m2(shape: Shape, config: Optional[ConflictConfig] = None) -> float:
    """Area of the normalized form of *shape*; 0 for exempt shapes."""
    config = config or ConflictConfig()
    geom = normalize(shape, config)
    if geom is None:
        return 0.0
    return area_m2(geom, config.coordinate_mode)
