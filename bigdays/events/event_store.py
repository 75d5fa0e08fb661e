"""
Tornado Event Store

Normalizes tornado touchdown records into a validated polars event frame:
projected coordinates, touchdown time, convective day, intensity category,
path geometry and casualties. Also provides the optional upstream
precondition helpers (unknown rating resolution, path dimension floor)
and a loader for normalized event tables on disk.
"""

import math
import os
from typing import Iterable, Optional, Union

import polars as pl

from .energy import MAX_MAGNITUDE, MIN_MAGNITUDE

# Convective day starts 6 hours after local midnight
DEFAULT_DAY_OFFSET_HOURS = 6

# Unknown ratings on paths at least 5 miles long are treated as EF1
UNKNOWN_MAGNITUDE_LENGTH_CUTOFF_M = 8046.72

REQUIRED_COLUMNS = [
    "event_id",
    "x",
    "y",
    "timestamp",
    "magnitude",
    "path_length_m",
    "path_width_m",
]

WIDTH_CONVENTIONS = ("average", "maximum")

# Maximum widths are converted to an equivalent average width (ellipse)
MAXIMUM_WIDTH_FACTOR = math.pi / 4.0


def convective_day(
    timestamp: pl.Expr,
    time_zone: Optional[str] = None,
    day_offset_hours: int = DEFAULT_DAY_OFFSET_HOURS,
) -> pl.Expr:
    """
    Build an expression for the convective day of a timestamp column.

    Events between local midnight and the offset hour belong to the previous
    calendar date. Time-zone-aware timestamps are evaluated in their own zone,
    or converted to ``time_zone`` first when it is given (aware columns only);
    naive timestamps are taken as wall-clock time in the caller's zone.
    """
    if time_zone is not None:
        timestamp = timestamp.dt.convert_time_zone(time_zone)
    return timestamp.dt.offset_by(f"-{int(day_offset_hours)}h").dt.date()


def _to_frame(records: Union[pl.DataFrame, Iterable[dict]]) -> pl.DataFrame:
    if isinstance(records, pl.DataFrame):
        return records.clone()
    rows = list(records)
    if not rows:
        return pl.DataFrame(
            schema={
                "event_id": pl.Int64,
                "x": pl.Float64,
                "y": pl.Float64,
                "timestamp": pl.Datetime("us"),
                "magnitude": pl.Int64,
                "path_length_m": pl.Float64,
                "path_width_m": pl.Float64,
            }
        )
    return pl.from_dicts(rows, infer_schema_length=None)


def _normalize_timestamps(df: pl.DataFrame, time_zone: Optional[str]) -> pl.DataFrame:
    dtype = df.schema["timestamp"]

    if dtype == pl.Utf8:
        df = df.with_columns(pl.col("timestamp").str.to_datetime(time_unit="us"))
        dtype = df.schema["timestamp"]

    if not isinstance(dtype, pl.Datetime):
        raise ValueError(f"'timestamp' column must be datetime, got {dtype}")

    if time_zone is not None:
        if dtype.time_zone is not None:
            df = df.with_columns(pl.col("timestamp").dt.convert_time_zone(time_zone))
        else:
            print(
                f"[WARNING] Timestamps carry no time zone; time_zone={time_zone!r} is ignored "
                "and convective days use their wall-clock time"
            )

    return df


def build_event_frame(
    records: Union[pl.DataFrame, Iterable[dict]],
    time_zone: Optional[str] = None,
    day_offset_hours: int = DEFAULT_DAY_OFFSET_HOURS,
) -> pl.DataFrame:
    """
    Validate tornado records and build the normalized event frame.

    Args:
        records: DataFrame or iterable of dicts with the required event columns
        time_zone: Explicit zone for time-zone-aware timestamps (optional)
        day_offset_hours: Hours after local midnight at which the convective day starts

    Returns:
        Event frame with derived 'local_day' and 'path_area_m2' columns,
        sorted by (timestamp, event_id)

    Raises:
        ValueError: If required columns are missing or any record is invalid
    """
    df = _to_frame(records)

    missing_cols = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing_cols:
        raise ValueError(f"Missing required event columns: {missing_cols}")

    if "casualties" not in df.columns:
        df = df.with_columns(pl.lit(0, dtype=pl.Int64).alias("casualties"))
    if "width_convention" not in df.columns:
        df = df.with_columns(pl.lit("average", dtype=pl.Utf8).alias("width_convention"))

    df = _normalize_timestamps(df, time_zone)

    df = df.with_columns(
        [
            pl.col("x").cast(pl.Float64),
            pl.col("y").cast(pl.Float64),
            pl.col("magnitude").cast(pl.Int64),
            pl.col("path_length_m").cast(pl.Float64),
            pl.col("path_width_m").cast(pl.Float64),
            pl.col("casualties").fill_null(0).cast(pl.Int64),
            pl.col("width_convention").fill_null("average").cast(pl.Utf8),
        ]
    )

    _validate_events(df)

    return (
        df.with_columns(
            [
                convective_day(pl.col("timestamp"), day_offset_hours=day_offset_hours).alias(
                    "local_day"
                ),
                (
                    pl.col("path_length_m")
                    * pl.when(pl.col("width_convention") == "maximum")
                    .then(pl.col("path_width_m") * MAXIMUM_WIDTH_FACTOR)
                    .otherwise(pl.col("path_width_m"))
                ).alias("path_area_m2"),
            ]
        )
        .sort(["timestamp", "event_id"])
    )


def _validate_events(df: pl.DataFrame) -> None:
    """Raise ValueError describing the first class of invalid records found."""
    if df.is_empty():
        return

    null_cols = [col for col in REQUIRED_COLUMNS if df[col].null_count() > 0]
    if null_cols:
        raise ValueError(f"Null values in required event columns: {null_cols}")

    checks = [
        (
            ~(pl.col("x").is_finite() & pl.col("y").is_finite()),
            "non-finite projected coordinates",
        ),
        (
            ~pl.col("magnitude").is_between(MIN_MAGNITUDE, MAX_MAGNITUDE),
            f"intensity category outside {MIN_MAGNITUDE}..{MAX_MAGNITUDE}",
        ),
        (
            ~(pl.col("path_length_m") > 0) | ~(pl.col("path_width_m") > 0),
            "non-positive path length or width",
        ),
        (pl.col("casualties") < 0, "negative casualties"),
        (
            ~pl.col("width_convention").is_in(list(WIDTH_CONVENTIONS)),
            f"width convention not in {list(WIDTH_CONVENTIONS)}",
        ),
    ]
    for condition, description in checks:
        bad_count = df.filter(condition).height
        if bad_count > 0:
            raise ValueError(f"{bad_count} events have {description}")

    duplicate_count = len(df) - df["event_id"].n_unique()
    if duplicate_count > 0:
        raise ValueError(f"Found {duplicate_count} duplicate event ids")


def resolve_unknown_magnitude(
    df: pl.DataFrame, length_cutoff_m: float = UNKNOWN_MAGNITUDE_LENGTH_CUTOFF_M
) -> pl.DataFrame:
    """
    Replace unknown (negative) ratings with 0 or 1 based on path length.

    Args:
        df: Raw event records with 'magnitude' and 'path_length_m'
        length_cutoff_m: Paths at least this long become category 1, shorter ones 0

    Returns:
        DataFrame with every negative magnitude resolved
    """
    return df.with_columns(
        pl.when(pl.col("magnitude") < 0)
        .then(
            pl.when(pl.col("path_length_m") >= length_cutoff_m)
            .then(pl.lit(1))
            .otherwise(pl.lit(0))
        )
        .otherwise(pl.col("magnitude"))
        .cast(pl.Int64)
        .alias("magnitude")
    )


def apply_path_floor(df: pl.DataFrame, min_dimension_m: float) -> pl.DataFrame:
    """Replace non-positive path lengths and widths with a positive floor."""
    if not min_dimension_m > 0:
        raise ValueError(f"Path floor must be positive, got {min_dimension_m}")

    return df.with_columns(
        [
            pl.when(pl.col(col) > 0)
            .then(pl.col(col).cast(pl.Float64))
            .otherwise(pl.lit(float(min_dimension_m)))
            .alias(col)
            for col in ["path_length_m", "path_width_m"]
        ]
    )


def load_event_table(data_path: str) -> pl.DataFrame:
    """
    Load a normalized tornado event table from parquet or CSV.

    Args:
        data_path: Path to the event table

    Returns:
        pl.DataFrame: Raw event records (not yet validated)

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the format is unsupported or required columns are missing
    """
    if not os.path.exists(data_path):
        raise FileNotFoundError(f"Event table not found at: {data_path}")

    if data_path.endswith(".parquet"):
        df = pl.read_parquet(data_path)
    elif data_path.endswith(".csv"):
        df = pl.read_csv(data_path, try_parse_dates=True)
    else:
        raise ValueError(f"Unsupported event table format: {data_path}")

    missing_columns = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing_columns:
        raise ValueError(f"Missing required columns: {missing_columns}")

    print(f"Loaded {len(df)} tornado records from {data_path}")

    return df
