"""
Export Helpers Package

GeoJSON export of big-day footprints and centroids for map rendering.
"""

from .export_geojson import (
    create_big_days_geojson,
    create_centroid_feature,
    create_footprint_feature,
    create_geojson_featurecollection,
    save_geojson,
)

__all__ = [
    "create_big_days_geojson",
    "create_centroid_feature",
    "create_footprint_feature",
    "create_geojson_featurecollection",
    "save_geojson",
]
