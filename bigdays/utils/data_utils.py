"""
Data utility functions for big-day outbreak analysis.

Provides type cleanup, file saving and console reporting helpers.
"""

import os
from typing import Dict, Optional

import polars as pl

_INTEGER_DTYPES = (pl.Int8, pl.Int16, pl.Int32, pl.UInt8, pl.UInt16, pl.UInt32, pl.UInt64)


def clean_data_types(df: pl.DataFrame) -> pl.DataFrame:
    """
    Standardize data types for parquet compatibility.

    Narrow and unsigned integer columns (from counts and lengths) become Int64,
    Float32 columns become Float64. List columns of narrow integers (member
    event ids) become List(Int64).

    Args:
        df: DataFrame to clean

    Returns:
        DataFrame with cleaned data types
    """
    casts = []
    for col, dtype in df.schema.items():
        if dtype in _INTEGER_DTYPES:
            casts.append(pl.col(col).cast(pl.Int64))
        elif dtype == pl.Float32:
            casts.append(pl.col(col).cast(pl.Float64))
        elif isinstance(dtype, pl.List) and dtype.inner in _INTEGER_DTYPES:
            casts.append(pl.col(col).cast(pl.List(pl.Int64)))

    return df.with_columns(casts) if casts else df


def save_outputs(
    events_df: pl.DataFrame,
    big_days: pl.DataFrame,
    output_dir: str,
    covariate_table: Optional[pl.DataFrame] = None,
    verbose: bool = True,
) -> Dict[str, str]:
    """
    Save clustered events and big-day tables as parquet.

    Args:
        events_df: Clustered event frame
        big_days: Big-day table
        output_dir: Directory to write into (created if missing)
        covariate_table: Big-day table joined with covariates (optional)
        verbose: Whether to print file save information

    Returns:
        Dictionary mapping data type to filename
    """
    os.makedirs(output_dir, exist_ok=True)

    saved_files = {}

    events_file = os.path.join(output_dir, "events_clustered.parquet")
    clean_data_types(events_df).write_parquet(events_file)
    saved_files["events"] = events_file
    if verbose:
        print(f"   Saved clustered events to: {events_file}")

    big_days_file = os.path.join(output_dir, "big_days.parquet")
    clean_data_types(big_days).write_parquet(big_days_file)
    saved_files["big_days"] = big_days_file
    if verbose:
        print(f"   Saved big-day table to: {big_days_file}")

    if covariate_table is not None and not covariate_table.is_empty():
        covariate_file = os.path.join(output_dir, "big_days_covariates.parquet")
        clean_data_types(covariate_table).write_parquet(covariate_file)
        saved_files["big_days_covariates"] = covariate_file
        if verbose:
            print(f"   Saved covariate-joined table to: {covariate_file}")

    return saved_files


def print_summary_statistics(
    events_df: pl.DataFrame,
    big_days: pl.DataFrame,
    aggregation_stats: Dict[str, int],
) -> None:
    """Print summary statistics for the clustering run."""

    print("\n=== Summary Statistics ===")
    print(f"Tornado events: {len(events_df)}")

    if "cluster_id" in events_df.columns and not events_df.is_empty():
        print(f"Space-time clusters: {events_df['cluster_id'].n_unique()}")

    print(f"(day, cluster) groups: {aggregation_stats.get('groups_total', 0)}")
    print(f"Groups below minimum size: {aggregation_stats.get('groups_dropped', 0)}")
    print(f"Big days: {len(big_days)}")

    if big_days.is_empty():
        return

    total_events = aggregation_stats.get("events_total", 0)
    in_big_days = aggregation_stats.get("events_in_big_days", 0)
    if total_events:
        print(
            f"Events in big days: {in_big_days}/{total_events} "
            f"({in_big_days / total_events * 100:.1f}%)"
        )

    print(f"Largest big day: {big_days['n_events'].max()} events")
    print(f"Total energy in big days: {big_days['total_energy'].sum():.3e} J")
    print(
        f"Date range: {big_days['local_day'].min()} to {big_days['local_day'].max()}"
    )


def print_sample_data(big_days: pl.DataFrame) -> None:
    """Print a sample of the big-day table."""

    print("\n=== Sample Data ===")
    key_columns = [
        "local_day",
        "cluster_id",
        "n_events",
        "max_magnitude",
        "total_energy",
        "duration_s",
        "footprint_area_m2",
        "density",
    ]

    # Only show columns that exist
    available_columns = [col for col in key_columns if col in big_days.columns]

    try:
        print(big_days.select(available_columns).head())
    except UnicodeEncodeError:
        # Handle Unicode encoding issues on Windows
        print("Sample data contains characters that cannot be displayed in this terminal.")
        print(f"Columns: {available_columns}")
        print(f"Number of rows: {len(big_days)}")
