#!/usr/bin/env python3
"""
GeoJSON Export Helper Module

Converts the big-day table into GeoJSON for map rendering: one footprint
feature (convex hull) and one centroid point per outbreak. Coordinates stay in
the projected metres of the event table; the projection name can be recorded
in the collection's "crs" member.
"""

import json
import math
from datetime import date, datetime
from typing import List, Optional

import polars as pl
from shapely import wkt
from shapely.geometry import mapping


def _json_value(value):
    """Convert table values to JSON-safe values (dates to ISO strings, inf/NaN to None)."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _big_day_properties(row: dict) -> dict:
    properties = {
        key: _json_value(value)
        for key, value in row.items()
        if key not in ("footprint_wkt", "centroid_x", "centroid_y")
    }
    density = row.get("density")
    properties["density_defined"] = density is not None and math.isfinite(density)
    return properties


def create_footprint_feature(row: dict) -> dict:
    """
    Create a feature holding the convex-hull footprint of one big day.

    Args:
        row (dict): Big-day table row (as from DataFrame.iter_rows(named=True))

    Returns:
        dict: GeoJSON feature (Polygon, LineString or Point geometry)
    """
    geometry = wkt.loads(row["footprint_wkt"])
    properties = _big_day_properties(row)
    properties["feature_type"] = "footprint"

    return {
        "type": "Feature",
        "geometry": mapping(geometry),
        "properties": properties,
    }


def create_centroid_feature(row: dict) -> dict:
    """Create a point feature for the footprint centroid of one big day."""
    return {
        "type": "Feature",
        "geometry": {
            "type": "Point",
            "coordinates": [float(row["centroid_x"]), float(row["centroid_y"])],
        },
        "properties": {
            "local_day": _json_value(row["local_day"]),
            "cluster_id": int(row["cluster_id"]),
            "n_events": int(row["n_events"]),
            "feature_type": "centroid",
        },
    }


def create_geojson_featurecollection(
    features: List[dict], crs_name: Optional[str] = None
) -> dict:
    """
    Create a GeoJSON FeatureCollection from a list of features.

    Args:
        features (list): List of GeoJSON features
        crs_name (str, optional): Projection identifier, e.g. "EPSG:5070"

    Returns:
        dict: GeoJSON FeatureCollection
    """
    collection = {"type": "FeatureCollection", "features": features}
    if crs_name:
        collection["crs"] = {"type": "name", "properties": {"name": crs_name}}
    return collection


def save_geojson(geojson: dict, filepath: str):
    """
    Save GeoJSON to file.

    Args:
        geojson (dict): GeoJSON object
        filepath (str): Output file path
    """
    with open(filepath, "w") as f:
        json.dump(geojson, f, indent=2, allow_nan=False)


def create_big_days_geojson(
    big_days: pl.DataFrame, output_path: str, crs_name: Optional[str] = None
) -> int:
    """
    Export footprints and centroids of every big day to one GeoJSON file.

    Args:
        big_days (pl.DataFrame): Big-day table
        output_path (str): Path to save the GeoJSON
        crs_name (str, optional): Projection identifier of the coordinates

    Returns:
        int: Total number of features created
    """
    all_features = []

    for row in big_days.iter_rows(named=True):
        all_features.append(create_footprint_feature(row))
        all_features.append(create_centroid_feature(row))

    geojson = create_geojson_featurecollection(all_features, crs_name)
    save_geojson(geojson, output_path)

    return len(all_features)
