"""Tests for GeoJSON feature <-> Shape mapping."""
import json
import uuid

import pytest
from shapely.geometry import LineString, Point, Polygon, box

from shape_guard.contracts import Shape, ShapeCategory
from shape_guard.geojson_io import (
    feature_collection,
    read_features,
    shape_from_feature,
    shape_to_feature,
    write_feature_collection,
)


def _feature(geometry, **properties):
    return {"type": "Feature", "geometry": geometry, "properties": properties}


class TestShapeFromFeature:
    def test_polygon_feature(self):
        feature = _feature(
            {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]},
            id="p1",
            shapeType="polygon",
        )
        shape = shape_from_feature(feature)
        assert shape.shape_id == "p1"
        assert shape.category is ShapeCategory.POLYGON
        assert isinstance(shape.geometry, Polygon)
        assert shape.radius_m is None
        assert shape.metadata == {}

    def test_circle_feature_reads_radius(self):
        feature = _feature(
            {"type": "Point", "coordinates": [13.4, 52.5]},
            id="c1",
            shapeType="circle",
            radius=250,
        )
        shape = shape_from_feature(feature)
        assert shape.category is ShapeCategory.CIRCLE
        assert isinstance(shape.geometry, Point)
        assert shape.radius_m == 250.0

    def test_polyline_maps_to_line(self):
        feature = _feature(
            {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
            id="l1",
            shapeType="polyline",
        )
        assert shape_from_feature(feature).category is ShapeCategory.LINE

    def test_missing_id_gets_uuid(self):
        feature = _feature(
            {"type": "Point", "coordinates": [0, 0]},
            shapeType="marker",
        )
        shape = shape_from_feature(feature)
        assert uuid.UUID(shape.shape_id)

    def test_extra_properties_go_to_metadata(self):
        feature = _feature(
            {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]},
            id="p",
            shapeType="rectangle",
            label="north field",
            owner=None,
        )
        assert shape_from_feature(feature).metadata == {"label": "north field"}

    def test_unknown_shape_type(self):
        feature = _feature({"type": "Point", "coordinates": [0, 0]}, shapeType="hexagon")
        with pytest.raises(ValueError, match="Unknown shapeType"):
            shape_from_feature(feature)

    def test_missing_shape_type(self):
        feature = _feature({"type": "Point", "coordinates": [0, 0]}, id="x")
        with pytest.raises(ValueError):
            shape_from_feature(feature)

    def test_not_a_feature(self):
        with pytest.raises(ValueError):
            shape_from_feature({"type": "Polygon", "coordinates": []})

    def test_missing_geometry(self):
        with pytest.raises(ValueError):
            shape_from_feature({"type": "Feature", "geometry": None, "properties": {}})


class TestShapeToFeature:
    def test_circle_keeps_radius(self):
        circle = Shape("c", ShapeCategory.CIRCLE, Point(1, 2), radius_m=30.0)
        feature = shape_to_feature(circle)
        assert feature["type"] == "Feature"
        assert feature["geometry"]["type"] == "Point"
        assert feature["properties"] == {"id": "c", "shapeType": "circle", "radius": 30.0}

    def test_polygon_has_no_radius(self):
        shape = Shape("p", ShapeCategory.POLYGON, box(0, 0, 1, 1), metadata={"label": "x"})
        props = shape_to_feature(shape)["properties"]
        assert "radius" not in props
        assert props["label"] == "x"
        assert props["shapeType"] == "polygon"

    def test_feature_collection(self):
        shapes = [
            Shape("a", ShapeCategory.POLYGON, box(0, 0, 1, 1)),
            Shape("b", ShapeCategory.LINE, LineString([(0, 0), (2, 2)])),
        ]
        fc = feature_collection(shapes)
        assert fc["type"] == "FeatureCollection"
        assert [f["properties"]["id"] for f in fc["features"]] == ["a", "b"]


class TestFiles:
    def test_write_then_read(self, tmp_path):
        shapes = [
            Shape("a", ShapeCategory.POLYGON, box(0, 0, 1, 1), metadata={"label": "x"}),
            Shape("c", ShapeCategory.CIRCLE, Point(5, 5), radius_m=2.0),
        ]
        path = tmp_path / "out" / "export.geojson"
        write_feature_collection(path, shapes)

        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["type"] == "FeatureCollection"

        loaded = read_features(path)
        assert [s.shape_id for s in loaded] == ["a", "c"]
        assert loaded[0].geometry.equals(box(0, 0, 1, 1))
        assert loaded[0].metadata == {"label": "x"}
        assert loaded[1].radius_m == 2.0

    def test_read_single_feature(self, tmp_path):
        path = tmp_path / "one.geojson"
        path.write_text(
            json.dumps(
                _feature({"type": "Point", "coordinates": [0, 0]}, id="m", shapeType="marker")
            ),
            encoding="utf-8",
        )
        assert [s.shape_id for s in read_features(path)] == ["m"]
