"""
Covariate merging utilities for big-day outbreak analysis.

Hands per-outbreak geometry and timing to environmental samplers (weather
reanalysis, population grids) and joins the scalar covariates they return
back onto the big-day table by compound key.
"""

from typing import Dict, Tuple

import polars as pl

from ..clustering.aggregation import BIG_DAY_KEY

SAMPLING_COLUMNS = BIG_DAY_KEY + [
    "footprint_wkt",
    "centroid_x",
    "centroid_y",
    "start_time",
    "end_time",
]


def covariate_sampling_frame(big_days: pl.DataFrame) -> pl.DataFrame:
    """
    Select the geometry and timing columns a covariate sampler needs.

    Args:
        big_days: Big-day table from aggregate_big_days

    Returns:
        DataFrame with one row per big day

    Raises:
        ValueError: If sampling columns are missing
    """
    missing_cols = [col for col in SAMPLING_COLUMNS if col not in big_days.columns]
    if missing_cols:
        raise ValueError(f"Missing columns for covariate sampling: {missing_cols}")

    return big_days.select(SAMPLING_COLUMNS)


def merge_covariates(
    big_days: pl.DataFrame,
    covariates: pl.DataFrame,
    verbose: bool = True,
) -> Tuple[pl.DataFrame, Dict[str, int]]:
    """
    Join externally computed covariates onto the big-day table.

    The join only adds columns: existing big-day fields are never replaced.

    Args:
        big_days: Big-day table keyed by (local_day, cluster_id)
        covariates: One row per big day with key columns plus covariate columns
        verbose: Whether to print detailed merge information

    Returns:
        Tuple of (merged_dataframe, statistics_dict)

    Raises:
        ValueError: On missing key columns, duplicate covariate keys, or
            covariate columns that collide with existing big-day columns
    """
    for name, frame in [("big-day table", big_days), ("covariates", covariates)]:
        missing_keys = [col for col in BIG_DAY_KEY if col not in frame.columns]
        if missing_keys:
            raise ValueError(f"Missing key columns in {name}: {missing_keys}")

    covariate_cols = [col for col in covariates.columns if col not in BIG_DAY_KEY]
    collisions = [col for col in covariate_cols if col in big_days.columns]
    if collisions:
        raise ValueError(f"Covariate columns would overwrite big-day fields: {collisions}")

    duplicate_keys = len(covariates) - len(covariates.unique(subset=BIG_DAY_KEY))
    if duplicate_keys > 0:
        raise ValueError(f"Found {duplicate_keys} duplicate big-day keys in covariates")

    stats = {
        "big_days": len(big_days),
        "covariate_rows": len(covariates),
        "covariate_columns": len(covariate_cols),
        "matched": 0,
        "unmatched": 0,
    }

    if verbose:
        print(f"   Merging {len(covariate_cols)} covariate columns onto {len(big_days)} big days...")

    # Align key dtypes so the join does not fail on Int32/Int64 or Datetime/Date mixes
    covariates = covariates.with_columns(
        [pl.col(col).cast(big_days.schema[col]) for col in BIG_DAY_KEY]
    )

    matched_keys = big_days.select(BIG_DAY_KEY).join(
        covariates.select(BIG_DAY_KEY), on=BIG_DAY_KEY, how="inner"
    )
    stats["matched"] = len(matched_keys)
    stats["unmatched"] = len(big_days) - len(matched_keys)

    merged = big_days.join(covariates, on=BIG_DAY_KEY, how="left").sort(BIG_DAY_KEY)

    if verbose:
        print(f"   Big days with covariates: {stats['matched']}/{stats['big_days']}")
        if stats["unmatched"] > 0:
            print(f"[WARNING] {stats['unmatched']} big days have no covariate values")

    return merged, stats
