"""GeoJSON exchange for drawn shapes.

Features follow the drawing surface's convention: ``properties.id`` holds the
shape id, ``properties.shapeType`` the category and ``properties.radius``
the circle radius in meters.  Every other property travels in
``Shape.metadata``.
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List

from shapely.errors import ShapelyError
from shapely.geometry import mapping, shape as geometry_from_geojson

from shape_guard.contracts import Shape, ShapeCategory

_RESERVED_PROPERTIES = ("id", "shapeType", "radius")

# Leaflet.draw layer types that differ from our category names.
_LAYER_TYPE_ALIASES = {"polyline": "line"}


def _parse_category(raw: Any) -> ShapeCategory:
    if not isinstance(raw, str):
        raise ValueError(f"Feature shapeType must be a string, got {raw!r}")
    name = _LAYER_TYPE_ALIASES.get(raw, raw)
    try:
        return ShapeCategory(name)
    except ValueError:
        raise ValueError(f"Unknown shapeType: {raw!r}") from None


def shape_from_feature(feature: Dict[str, Any]) -> Shape:
    """Build a Shape from a GeoJSON Feature dict."""
    if not isinstance(feature, dict) or feature.get("type") != "Feature":
        raise ValueError("Expected a GeoJSON Feature object")
    geometry = feature.get("geometry")
    if not geometry:
        raise ValueError("Feature has no geometry")
    properties = dict(feature.get("properties") or {})

    try:
        geom = geometry_from_geojson(geometry)
    except (KeyError, TypeError, AttributeError, ValueError, ShapelyError) as exc:
        raise ValueError(f"Malformed feature geometry: {exc}") from exc

    shape_id = properties.get("id") or str(uuid.uuid4())
    category = _parse_category(properties.get("shapeType"))

    radius = properties.get("radius")
    radius_m = float(radius) if radius is not None else None

    metadata = {
        key: value
        for key, value in properties.items()
        if key not in _RESERVED_PROPERTIES and value is not None
    }
    return Shape(
        shape_id=str(shape_id),
        category=category,
        geometry=geom,
        radius_m=radius_m,
        metadata=metadata,
    )


def shape_to_feature(shape: Shape) -> Dict[str, Any]:
    properties: Dict[str, Any] = dict(shape.metadata)
    properties["id"] = shape.shape_id
    properties["shapeType"] = shape.category.value
    if shape.radius_m is not None:
        properties["radius"] = float(shape.radius_m)
    return {
        "type": "Feature",
        "geometry": mapping(shape.geometry),
        "properties": properties,
    }


def feature_collection(shapes: Iterable[Shape]) -> Dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [shape_to_feature(s) for s in shapes],
    }


def read_features(path: Path) -> List[Shape]:
    """Read a FeatureCollection (or a bare Feature) from *path*."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if payload.get("type") == "FeatureCollection":
        return [shape_from_feature(f) for f in payload.get("features", [])]
    return [shape_from_feature(payload)]


def write_feature_collection(path: Path, shapes: Iterable[Shape]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(feature_collection(shapes), f, indent=2)
