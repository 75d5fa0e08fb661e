"""
Big-Day Aggregation Module

Groups clustered tornado events by (convective day, cluster id), keeps the
groups with enough members and summarizes each one: counts by intensity,
energy, casualties, timing and the convex-hull footprint of the member
touchdown locations.
"""

from typing import Dict, List, Sequence, Tuple

import polars as pl
from shapely.geometry import MultiPoint
from shapely.geometry.base import BaseGeometry

from ..events.energy import MAX_MAGNITUDE, MIN_MAGNITUDE

# Outbreaks need at least 10 tornadoes
DEFAULT_MIN_EVENTS = 10

BIG_DAY_KEY = ["local_day", "cluster_id"]

REQUIRED_EVENT_COLUMNS = BIG_DAY_KEY + [
    "event_id",
    "x",
    "y",
    "timestamp",
    "magnitude",
    "casualties",
    "path_length_m",
    "energy_dissipated",
]

_UNITS_PER_SECOND = {"ns": 1_000_000_000, "us": 1_000_000, "ms": 1_000}

MAGNITUDE_COUNT_COLUMNS = [f"n_ef{k}" for k in range(MIN_MAGNITUDE, MAX_MAGNITUDE + 1)]

BIG_DAY_COLUMNS = (
    BIG_DAY_KEY
    + ["n_events"]
    + MAGNITUDE_COUNT_COLUMNS
    + [
        "max_magnitude",
        "total_casualties",
        "total_energy",
        "geometric_mean_energy",
        "max_energy",
        "total_path_length_m",
        "start_time",
        "median_time",
        "end_time",
        "duration_s",
        "footprint_area_m2",
        "centroid_x",
        "centroid_y",
        "density",
        "footprint_wkt",
        "member_event_ids",
        "year",
        "month",
    ]
)


def convex_hull_footprint(
    x: Sequence[float], y: Sequence[float]
) -> Tuple[BaseGeometry, float, float, float]:
    """
    Convex hull of event locations.

    Degenerate inputs (a single point, duplicates, collinear points) give a
    Point or LineString hull with zero area.

    Returns:
        (hull geometry, hull area, centroid x, centroid y)
    """
    points = [(float(px), float(py)) for px, py in zip(x, y)]
    if not points:
        raise ValueError("A footprint needs at least one event location")

    hull = MultiPoint(points).convex_hull
    centroid = hull.centroid
    return hull, float(hull.area), float(centroid.x), float(centroid.y)


def footprint_density(n_events: int, area: float) -> float:
    """Events per square metre; infinite when the footprint has no area."""
    if area <= 0:
        return float("inf")
    return n_events / area


def _empty_big_days(
    timestamp_dtype: pl.DataType, event_id_dtype: pl.DataType
) -> pl.DataFrame:
    schema = {
        "local_day": pl.Date,
        "cluster_id": pl.Int64,
        "n_events": pl.Int64,
    }
    schema.update({col: pl.Int64 for col in MAGNITUDE_COUNT_COLUMNS})
    schema.update(
        {
            "max_magnitude": pl.Int64,
            "total_casualties": pl.Int64,
            "total_energy": pl.Float64,
            "geometric_mean_energy": pl.Float64,
            "max_energy": pl.Float64,
            "total_path_length_m": pl.Float64,
            "start_time": timestamp_dtype,
            "median_time": timestamp_dtype,
            "end_time": timestamp_dtype,
            "duration_s": pl.Float64,
            "footprint_area_m2": pl.Float64,
            "centroid_x": pl.Float64,
            "centroid_y": pl.Float64,
            "density": pl.Float64,
            "footprint_wkt": pl.Utf8,
            "member_event_ids": pl.List(event_id_dtype),
            "year": pl.Int64,
            "month": pl.Int64,
        }
    )
    return pl.DataFrame(schema=schema)


def _footprint_columns(summary: pl.DataFrame) -> List[pl.Series]:
    areas, cx, cy, densities, wkts = [], [], [], [], []

    for n_events, xs, ys in zip(
        summary["n_events"].to_list(),
        summary["_xs"].to_list(),
        summary["_ys"].to_list(),
    ):
        hull, area, centroid_x, centroid_y = convex_hull_footprint(xs, ys)
        areas.append(area)
        cx.append(centroid_x)
        cy.append(centroid_y)
        densities.append(footprint_density(n_events, area))
        wkts.append(hull.wkt)

    return [
        pl.Series("footprint_area_m2", areas, dtype=pl.Float64),
        pl.Series("centroid_x", cx, dtype=pl.Float64),
        pl.Series("centroid_y", cy, dtype=pl.Float64),
        pl.Series("density", densities, dtype=pl.Float64),
        pl.Series("footprint_wkt", wkts, dtype=pl.Utf8),
    ]


def aggregate_big_days(
    events_df: pl.DataFrame,
    min_events: int = DEFAULT_MIN_EVENTS,
    verbose: bool = True,
) -> Tuple[pl.DataFrame, Dict[str, int]]:
    """
    Build the big-day table from clustered events.

    Args:
        events_df: Event frame with cluster ids, convective days and energy
        min_events: Minimum number of events for a group to be kept
        verbose: Whether to print aggregation details

    Returns:
        Tuple of (big-day table ordered by (local_day, cluster_id), statistics dict)

    Raises:
        ValueError: If required event columns are missing
    """
    missing_cols = [c for c in REQUIRED_EVENT_COLUMNS if c not in events_df.columns]
    if missing_cols:
        raise ValueError(f"Missing required columns for aggregation: {missing_cols}")
    if min_events < 1:
        raise ValueError(f"min_events must be at least 1, got {min_events}")

    timestamp_dtype = events_df.schema["timestamp"]
    time_unit = timestamp_dtype.time_unit
    time_zone = timestamp_dtype.time_zone
    event_id_dtype = events_df.schema["event_id"]
    units_per_second = _UNITS_PER_SECOND[time_unit]

    stats = {
        "events_total": len(events_df),
        "groups_total": 0,
        "groups_kept": 0,
        "groups_dropped": 0,
        "events_in_big_days": 0,
    }

    if events_df.is_empty():
        return _empty_big_days(timestamp_dtype, event_id_dtype), stats

    group_sizes = events_df.group_by(BIG_DAY_KEY).agg(pl.len().alias("n_events"))
    kept_keys = group_sizes.filter(pl.col("n_events") >= min_events)

    stats["groups_total"] = len(group_sizes)
    stats["groups_kept"] = len(kept_keys)
    stats["groups_dropped"] = len(group_sizes) - len(kept_keys)
    stats["events_in_big_days"] = int(kept_keys["n_events"].sum() or 0)

    if verbose:
        print(f"   {stats['groups_total']} (day, cluster) groups found")
        print(
            f"   Dropped {stats['groups_dropped']} groups with fewer than {min_events} events"
        )
        print(
            f"   Kept {stats['groups_kept']} big days covering "
            f"{stats['events_in_big_days']}/{stats['events_total']} events"
        )

    if kept_keys.is_empty():
        return _empty_big_days(timestamp_dtype, event_id_dtype), stats

    members = (
        events_df.lazy()
        .join(kept_keys.lazy().select(BIG_DAY_KEY), on=BIG_DAY_KEY, how="inner")
        .with_columns(pl.col("timestamp").dt.epoch(time_unit).alias("_epoch"))
    )

    summary = (
        members.group_by(BIG_DAY_KEY)
        .agg(
            [
                pl.len().cast(pl.Int64).alias("n_events"),
                *[
                    (pl.col("magnitude") == k).sum().cast(pl.Int64).alias(col)
                    for k, col in zip(
                        range(MIN_MAGNITUDE, MAX_MAGNITUDE + 1), MAGNITUDE_COUNT_COLUMNS
                    )
                ],
                pl.col("magnitude").max().cast(pl.Int64).alias("max_magnitude"),
                pl.col("casualties").sum().cast(pl.Int64).alias("total_casualties"),
                pl.col("energy_dissipated").sum().alias("total_energy"),
                pl.col("energy_dissipated").log().mean().exp().alias("geometric_mean_energy"),
                pl.col("energy_dissipated").max().alias("max_energy"),
                pl.col("path_length_m").sum().alias("total_path_length_m"),
                pl.col("timestamp").min().alias("start_time"),
                pl.col("_epoch").min().alias("_start_epoch"),
                (pl.col("_epoch") - pl.col("_epoch").min()).median().alias("_median_offset"),
                pl.col("timestamp").max().alias("end_time"),
                (
                    (pl.col("_epoch").max() - pl.col("_epoch").min()) / units_per_second
                ).alias("duration_s"),
                pl.col("x").alias("_xs"),
                pl.col("y").alias("_ys"),
                pl.col("event_id")
                .sort_by(["timestamp", "event_id"])
                .alias("member_event_ids"),
            ]
        )
        .sort(BIG_DAY_KEY)
        .collect()
    )

    # Offsets from the group start keep the median exact at nanosecond resolution
    median_time = (
        pl.col("_start_epoch") + pl.col("_median_offset").round(0).cast(pl.Int64)
    ).cast(pl.Datetime(time_unit))
    if time_zone is not None:
        median_time = median_time.dt.replace_time_zone("UTC").dt.convert_time_zone(time_zone)

    summary = summary.with_columns(
        [
            median_time.alias("median_time"),
            pl.col("duration_s").cast(pl.Float64),
            pl.col("local_day").dt.year().cast(pl.Int64).alias("year"),
            pl.col("local_day").dt.month().cast(pl.Int64).alias("month"),
        ]
    )
    summary = summary.with_columns(_footprint_columns(summary))

    undefined_density = summary.filter(pl.col("footprint_area_m2") <= 0).height
    if verbose and undefined_density > 0:
        print(
            f"[WARNING] {undefined_density} big days have a zero-area footprint "
            "(density undefined)"
        )

    return summary.select(BIG_DAY_COLUMNS), stats
