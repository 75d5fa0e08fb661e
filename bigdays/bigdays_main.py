#!/usr/bin/env python3
"""
Tornado Big Days - Main Entry Point

Groups tornado touchdowns into outbreaks ("big days") that are close in both
space and time, and summarizes each outbreak for downstream modeling.

Process:
1. Loads and validates the projected tornado event table
2. Estimates the energy dissipated by each tornado
3. Clusters events with single linkage on the space-time distance
4. Aggregates (convective day, cluster) groups into the big-day table
5. Optionally joins environmental covariates and exports footprints as GeoJSON
6. Saves and validates the outputs

Usage:
    python -m bigdays.bigdays_main --input events.parquet
    python -m bigdays.bigdays_main --input events.parquet --threshold 40000 --geojson
"""

import argparse
import os
import sys
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import polars as pl

from .clustering import aggregate_big_days, assign_clusters_with_fallback
from .events import add_energy_dissipation, build_event_frame, load_event_table
from .helpers import create_big_days_geojson
from .merging import merge_covariates
from .settings import load_settings
from .utils import print_sample_data, print_summary_statistics, save_outputs
from .validation import validate_and_report


def build_big_days(
    records: Union[pl.DataFrame, Iterable[dict]],
    settings: Optional[Dict[str, Any]] = None,
    verbose: bool = True,
) -> Tuple[pl.DataFrame, pl.DataFrame, Dict[str, int]]:
    """
    Run the clustering and aggregation stages on in-memory event records.

    Args:
        records: Event records (DataFrame or iterable of dicts)
        settings: Settings dict from load_settings (defaults when None)
        verbose: Whether to print progress

    Returns:
        Tuple of (clustered event frame, big-day table, aggregation statistics)
    """
    if settings is None:
        settings = load_settings()

    if verbose:
        print("1. Validating tornado events...")
    events_df = build_event_frame(
        records,
        time_zone=settings["time_zone"],
        day_offset_hours=settings["day_offset_hours"],
    )
    if verbose:
        print(f"   {len(events_df)} valid events")

    if verbose:
        print("2. Estimating energy dissipation...")
    events_df = add_energy_dissipation(events_df)

    if verbose:
        print("3. Clustering events in space and time...")
    events_df = assign_clusters_with_fallback(
        events_df,
        threshold=settings["threshold"],
        storm_speed=settings["storm_speed"],
        method=settings["method"],
        max_pairs=settings["max_pairs"],
        n_jobs=settings["n_jobs"],
        verbose=verbose,
    )

    if verbose:
        print("4. Aggregating big days...")
    big_days, stats = aggregate_big_days(
        events_df, min_events=settings["min_events"], verbose=verbose
    )

    return events_df, big_days, stats


def run_big_days(
    input_path: str,
    output_dir: str = "output",
    covariates_path: Optional[str] = None,
    geojson: bool = False,
    crs_name: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> pl.DataFrame:
    """
    Run the full pipeline from an event table on disk to saved outputs.

    Args:
        input_path: Parquet or CSV event table
        output_dir: Directory to save results
        covariates_path: Parquet table of covariates keyed by (local_day, cluster_id)
        geojson: Whether to export footprints and centroids as GeoJSON
        crs_name: Projection identifier recorded in the GeoJSON
        overrides: Settings taking precedence over the environment

    Returns:
        The big-day table (joined with covariates when given)
    """
    print("=== Tornado Big Days - Outbreak Clustering ===\n")

    settings = load_settings(overrides)
    print(
        f"Settings: storm speed {settings['storm_speed']} m/s, "
        f"threshold {settings['threshold']:,.0f}, "
        f"minimum {settings['min_events']} events, method {settings['method']}\n"
    )

    records = load_event_table(input_path)
    events_df, big_days, stats = build_big_days(records, settings)

    result = big_days
    covariate_table = None
    if covariates_path:
        print("5. Joining environmental covariates...")
        covariates = load_covariate_table(covariates_path)
        covariate_table, _ = merge_covariates(big_days, covariates)
        result = covariate_table

    print("\n6. Saving outputs...")
    saved_files = save_outputs(
        events_df, big_days, output_dir, covariate_table=covariate_table
    )

    if geojson:
        geojson_file = os.path.join(output_dir, "big_days_footprints.geojson")
        n_features = create_big_days_geojson(big_days, geojson_file, crs_name)
        print(f"   Saved {n_features} GeoJSON features to: {geojson_file}")

    print("\n=== Clustering Complete ===")
    print_summary_statistics(events_df, big_days, stats)
    print_sample_data(big_days)

    print("\n=== Validating Output File ===")
    validation_passed = validate_and_report(
        saved_files["big_days"],
        min_events=settings["min_events"],
        min_records=0,
    )

    if validation_passed:
        print("[SUCCESS] All validation checks passed!")
    else:
        print("[WARNING] Some validation checks failed - please review the issues above")

    return result


def load_covariate_table(data_path: str) -> pl.DataFrame:
    """Load a covariate table (parquet or CSV) keyed by (local_day, cluster_id)."""
    if not os.path.exists(data_path):
        raise FileNotFoundError(f"Covariate table not found at: {data_path}")

    if data_path.endswith(".parquet"):
        return pl.read_parquet(data_path)
    if data_path.endswith(".csv"):
        return pl.read_csv(data_path, try_parse_dates=True)
    raise ValueError(f"Unsupported covariate table format: {data_path}")


def main():
    """Main command-line interface for big-day clustering."""
    parser = argparse.ArgumentParser(
        description="Tornado outbreak (big day) clustering",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bigdays --input events.parquet
  bigdays --input events.parquet --threshold 40000 --min_events 6
  bigdays --input events.parquet --method mst --geojson --crs EPSG:5070
  bigdays --input events.parquet --covariates covariates.parquet
        """,
    )

    parser.add_argument(
        "--input", type=str, required=True, help="Projected event table (parquet or CSV)"
    )
    parser.add_argument(
        "--output_dir",
        type=str,
        default="output",
        help="Directory to save results (default: output)",
    )
    parser.add_argument(
        "--storm_speed", type=float, help="Calibration storm speed in m/s (default: 15)"
    )
    parser.add_argument(
        "--threshold", type=float, help="Merge-tree cut height (default: 50000)"
    )
    parser.add_argument(
        "--min_events", type=int, help="Minimum events per big day (default: 10)"
    )
    parser.add_argument(
        "--method",
        type=str,
        choices=["linkage", "mst"],
        help="Clustering method (default: linkage)",
    )
    parser.add_argument(
        "--n_jobs", type=int, help="Threads for pairwise distances (default: 1)"
    )
    parser.add_argument(
        "--max_pairs", type=int, help="Pairwise distance ceiling before falling back to mst"
    )
    parser.add_argument(
        "--time_zone", type=str, help="Explicit zone for time-zone-aware timestamps"
    )
    parser.add_argument(
        "--covariates", type=str, help="Covariate table keyed by (local_day, cluster_id)"
    )
    parser.add_argument(
        "--geojson", action="store_true", help="Export big-day footprints as GeoJSON"
    )
    parser.add_argument(
        "--crs", type=str, help="Projection identifier recorded in the GeoJSON"
    )

    args = parser.parse_args()

    overrides = {
        "storm_speed": args.storm_speed,
        "threshold": args.threshold,
        "min_events": args.min_events,
        "method": args.method,
        "n_jobs": args.n_jobs,
        "max_pairs": args.max_pairs,
        "time_zone": args.time_zone,
    }

    try:
        run_big_days(
            input_path=args.input,
            output_dir=args.output_dir,
            covariates_path=args.covariates,
            geojson=args.geojson,
            crs_name=args.crs,
            overrides=overrides,
        )
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
