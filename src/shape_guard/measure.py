"""Area and circle approximation in planar or geodetic coordinates.

``planar``   coordinates are metric already (projected CRS); areas come
             straight from Shapely.
``geodetic`` coordinates are (longitude, latitude) degrees; areas use the
             spherical-excess ring formula and circles use great-circle
             destinations.

Boolean predicates and differences are always evaluated by Shapely on the
raw coordinates, whatever the mode.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

# Equatorial radius for area, mean radius for distances.
AREA_EARTH_RADIUS_M = 6378137.0
DISTANCE_EARTH_RADIUS_M = 6371008.8


def _bearings_rad(segments: int) -> np.ndarray:
    """Clockwise bearings from north, starting at 0."""
    return np.radians(np.arange(segments) * -360.0 / segments)


def circle_polygon(
    center: Tuple[float, float],
    radius_m: float,
    segments: int = 64,
    mode: str = "planar",
) -> Polygon:
    """Regular *segments*-gon approximating a circle of *radius_m*."""
    if radius_m <= 0:
        raise ValueError(f"radius_m must be positive, got {radius_m}")
    bearings = _bearings_rad(segments)
    cx, cy = float(center[0]), float(center[1])

    if mode == "planar":
        # Not Point.buffer: vertex 0 sits due north and the ring runs in the
        # same bearing order as the geodetic branch.
        xs = cx + radius_m * np.sin(bearings)
        ys = cy + radius_m * np.cos(bearings)
        return Polygon(np.column_stack([xs, ys]))

    if mode == "geodetic":
        lon1 = np.radians(cx)
        lat1 = np.radians(cy)
        delta = radius_m / DISTANCE_EARTH_RADIUS_M
        lat2 = np.arcsin(
            np.sin(lat1) * np.cos(delta)
            + np.cos(lat1) * np.sin(delta) * np.cos(bearings)
        )
        lon2 = lon1 + np.arctan2(
            np.sin(bearings) * np.sin(delta) * np.cos(lat1),
            np.cos(delta) - np.sin(lat1) * np.sin(lat2),
        )
        return Polygon(np.column_stack([np.degrees(lon2), np.degrees(lat2)]))

    raise ValueError(f"Unknown coordinate mode: {mode!r}")


def _ring_area_geodetic(coords: Sequence[Tuple[float, float]]) -> float:
    """Unsigned spherical area of a closed lon/lat ring in m^2."""
    pts = np.asarray(coords, dtype=float)
    if len(pts) > 1 and np.array_equal(pts[0], pts[-1]):
        pts = pts[:-1]
    if len(pts) < 3:
        return 0.0
    lon = np.radians(pts[:, 0])
    lat = np.radians(pts[:, 1])
    total = np.sum((np.roll(lon, -1) - np.roll(lon, 1)) * np.sin(lat))
    return float(abs(total) * AREA_EARTH_RADIUS_M * AREA_EARTH_RADIUS_M / 2.0)


def _polygon_area_geodetic(poly: Polygon) -> float:
    if poly.is_empty:
        return 0.0
    area = _ring_area_geodetic(poly.exterior.coords)
    for ring in poly.interiors:
        area -= _ring_area_geodetic(ring.coords)
    return max(area, 0.0)


def area_m2(geom: BaseGeometry, mode: str = "planar") -> float:
    """Area of a polygonal geometry in square meters."""
    if geom is None or geom.is_empty:
        return 0.0
    if mode == "planar":
        return float(geom.area)
    if mode == "geodetic":
        if isinstance(geom, Polygon):
            return _polygon_area_geodetic(geom)
        if isinstance(geom, MultiPolygon):
            return sum(_polygon_area_geodetic(g) for g in geom.geoms)
        return sum(
            _polygon_area_geodetic(g)
            for g in getattr(geom, "geoms", [])
            if isinstance(g, Polygon)
        )
    raise ValueError(f"Unknown coordinate mode: {mode!r}")
