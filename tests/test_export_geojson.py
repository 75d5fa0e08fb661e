import json
import math

import polars as pl

from bigdays.helpers.export_geojson import (
    create_big_days_geojson,
    create_centroid_feature,
    create_footprint_feature,
    create_geojson_featurecollection,
)


def test_footprint_feature_for_collinear_big_day(big_day_table):
    row = big_day_table.row(0, named=True)
    feature = create_footprint_feature(row)

    assert feature["geometry"]["type"] == "LineString"
    properties = feature["properties"]
    assert properties["feature_type"] == "footprint"
    assert properties["local_day"] == "2011-04-27"
    # Infinite density is not valid JSON
    assert properties["density"] is None
    assert properties["density_defined"] is False
    assert "footprint_wkt" not in properties
    assert properties["member_event_ids"] == [0, 1, 2, 3, 4, 5]


def test_polygon_footprint_keeps_density():
    row = {
        "local_day": None,
        "cluster_id": 4,
        "n_events": 12,
        "density": 3.0e-6,
        "footprint_wkt": "POLYGON ((0 0, 2000 0, 2000 2000, 0 2000, 0 0))",
        "centroid_x": 1000.0,
        "centroid_y": 1000.0,
    }
    feature = create_footprint_feature(row)

    assert feature["geometry"]["type"] == "Polygon"
    assert feature["properties"]["density"] == 3.0e-6
    assert feature["properties"]["density_defined"] is True


def test_centroid_feature(big_day_table):
    row = big_day_table.row(1, named=True)
    feature = create_centroid_feature(row)

    assert feature["geometry"]["type"] == "Point"
    assert feature["geometry"]["coordinates"] == [row["centroid_x"], row["centroid_y"]]
    assert feature["properties"] == {
        "local_day": "2011-04-30",
        "cluster_id": 2,
        "n_events": 6,
        "feature_type": "centroid",
    }


def test_collection_crs_member():
    assert "crs" not in create_geojson_featurecollection([])
    collection = create_geojson_featurecollection([], crs_name="EPSG:5070")
    assert collection["crs"]["properties"]["name"] == "EPSG:5070"


def test_create_big_days_geojson(tmp_path, big_day_table):
    path = tmp_path / "footprints.geojson"
    n_features = create_big_days_geojson(big_day_table, str(path), crs_name="EPSG:5070")

    assert n_features == 2 * len(big_day_table)
    with open(path) as f:
        collection = json.load(f)

    assert collection["type"] == "FeatureCollection"
    assert len(collection["features"]) == n_features
    kinds = [feature["properties"]["feature_type"] for feature in collection["features"]]
    assert kinds == ["footprint", "centroid", "footprint", "centroid"]
    for feature in collection["features"]:
        for value in feature["properties"].values():
            assert not (isinstance(value, float) and not math.isfinite(value))


def test_empty_table_gives_empty_collection(tmp_path, big_day_table):
    path = tmp_path / "empty.geojson"
    assert create_big_days_geojson(big_day_table.clear(), str(path)) == 0

    with open(path) as f:
        assert json.load(f)["features"] == []


def test_timestamps_are_iso_strings(big_day_table):
    feature = create_footprint_feature(big_day_table.row(0, named=True))
    assert feature["properties"]["start_time"] == "2011-04-27T15:00:00"
    assert isinstance(big_day_table.schema["start_time"], pl.Datetime)
