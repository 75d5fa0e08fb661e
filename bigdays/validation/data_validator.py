"""
Data validation utilities for big-day outbreak output.

Checks the big-day table for completeness and internal consistency before it
is handed to mapping and modeling collaborators.
"""

import os
import time
from typing import Any, Dict, List, Optional

import polars as pl

from ..clustering.aggregation import (
    BIG_DAY_COLUMNS,
    BIG_DAY_KEY,
    DEFAULT_MIN_EVENTS,
    MAGNITUDE_COUNT_COLUMNS,
)


def _new_result() -> Dict[str, Any]:
    return {
        "file_exists": False,
        "file_size_mb": 0,
        "file_age_minutes": float("inf"),
        "is_fresh": False,
        "record_count": 0,
        "column_count": 0,
        "missing_columns": [],
        "undefined_density_count": 0,
        "errors": [],
        "warnings": [],
    }


def validate_big_day_table(
    df: pl.DataFrame,
    min_events: int = DEFAULT_MIN_EVENTS,
    required_columns: Optional[List[str]] = None,
    min_records: int = 1,
    validation_result: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Validate an in-memory big-day table.

    Args:
        df: Big-day table
        min_events: Minimum events every big day must have
        required_columns: List of required column names. If None, uses the full big-day schema.
        min_records: Minimum number of rows required
        validation_result: Existing result dict to extend (used by validate_output_file)

    Returns:
        Dictionary containing validation results and statistics
    """
    if required_columns is None:
        required_columns = BIG_DAY_COLUMNS
    if validation_result is None:
        validation_result = _new_result()

    validation_result["record_count"] = len(df)
    validation_result["column_count"] = len(df.columns)

    if len(df) < min_records:
        validation_result["errors"].append(
            f"Insufficient records: {len(df)} (minimum required: {min_records})"
        )
        print(f"[ERROR] Insufficient records: {len(df)} < {min_records}")

    # Step 1: Required columns
    missing_columns = [col for col in required_columns if col not in df.columns]
    validation_result["missing_columns"] = missing_columns
    if missing_columns:
        validation_result["errors"].append(f"Missing required columns: {missing_columns}")
        print(f"[ERROR] Missing required columns: {missing_columns}")

    present = set(df.columns)

    # Step 2: Compound key
    if set(BIG_DAY_KEY) <= present:
        null_keys = df.filter(
            pl.col("local_day").is_null() | pl.col("cluster_id").is_null()
        ).height
        if null_keys > 0:
            validation_result["errors"].append(f"Found {null_keys} rows with null keys")
            print(f"[ERROR] Found {null_keys} rows with null keys")

        duplicate_count = len(df) - len(df.unique(subset=BIG_DAY_KEY))
        if duplicate_count > 0:
            validation_result["errors"].append(
                f"Found {duplicate_count} duplicate (local_day, cluster_id) keys"
            )
            print(f"[ERROR] Found {duplicate_count} duplicate big-day keys")

    # Step 3: Member counts
    if "n_events" in present:
        small = df.filter(pl.col("n_events") < min_events).height
        if small > 0:
            validation_result["errors"].append(
                f"{small} big days have fewer than {min_events} events"
            )
            print(f"[ERROR] {small} big days below the minimum size")

        if set(MAGNITUDE_COUNT_COLUMNS) <= present:
            mismatched = df.filter(
                pl.sum_horizontal(MAGNITUDE_COUNT_COLUMNS) != pl.col("n_events")
            ).height
            if mismatched > 0:
                validation_result["errors"].append(
                    f"{mismatched} big days have intensity counts not summing to n_events"
                )
                print(f"[ERROR] {mismatched} big days with inconsistent intensity counts")

        if "member_event_ids" in present:
            wrong_members = df.filter(
                pl.col("member_event_ids").list.len() != pl.col("n_events")
            ).height
            if wrong_members > 0:
                validation_result["errors"].append(
                    f"{wrong_members} big days have member lists not matching n_events"
                )
                print(f"[ERROR] {wrong_members} big days with inconsistent member lists")

    # Step 4: Timing
    if {"start_time", "median_time", "end_time"} <= present:
        out_of_order = df.filter(
            (pl.col("start_time") > pl.col("median_time"))
            | (pl.col("median_time") > pl.col("end_time"))
        ).height
        if out_of_order > 0:
            validation_result["errors"].append(
                f"{out_of_order} big days have start/median/end times out of order"
            )
            print(f"[ERROR] {out_of_order} big days with unordered times")

    if "duration_s" in present:
        negative_duration = df.filter(pl.col("duration_s") < 0).height
        if negative_duration > 0:
            validation_result["errors"].append(
                f"{negative_duration} big days have negative duration"
            )
            print(f"[ERROR] {negative_duration} big days with negative duration")

    # Step 5: Energy
    if "total_energy" in present:
        negative_energy = df.filter(
            pl.col("total_energy").is_null() | (pl.col("total_energy") < 0)
        ).height
        if negative_energy > 0:
            validation_result["errors"].append(
                f"{negative_energy} big days have missing or negative total energy"
            )
            print(f"[ERROR] {negative_energy} big days with invalid energy")

    # Step 6: Footprint density
    if {"footprint_area_m2", "density"} <= present:
        undefined = df.filter(pl.col("footprint_area_m2") <= 0)
        validation_result["undefined_density_count"] = len(undefined)

        not_flagged = undefined.filter(pl.col("density") != float("inf")).height
        if not_flagged > 0:
            validation_result["errors"].append(
                f"{not_flagged} zero-area footprints report a finite density"
            )
            print(f"[ERROR] {not_flagged} zero-area footprints with finite density")

        if len(undefined) > 0:
            validation_result["warnings"].append(
                f"{len(undefined)} big days have a zero-area footprint (density undefined)"
            )
            print(f"[WARNING] {len(undefined)} big days with undefined density")

    validation_result["is_valid"] = len(validation_result["errors"]) == 0

    return validation_result


def validate_output_file(
    file_path: str = "big_days.parquet",
    max_age_minutes: int = 10,
    min_events: int = DEFAULT_MIN_EVENTS,
    required_columns: Optional[List[str]] = None,
    min_records: int = 1,
) -> Dict[str, Any]:
    """
    Validate the big-day table output file.

    Args:
        file_path: Path to the output file to validate
        max_age_minutes: Maximum age of file in minutes to be considered fresh
        min_events: Minimum events every big day must have
        required_columns: List of required column names. If None, uses default.
        min_records: Minimum number of records required

    Returns:
        Dictionary containing validation results and statistics
    """
    validation_result = _new_result()

    # Step 1: Check file existence
    if not os.path.exists(file_path):
        validation_result["errors"].append(f"File does not exist: {file_path}")
        validation_result["is_valid"] = False
        print(f"[ERROR] File does not exist: {file_path}")
        return validation_result

    validation_result["file_exists"] = True

    # Step 2: Check file age
    file_stat = os.stat(file_path)
    file_age_minutes = (time.time() - file_stat.st_mtime) / 60
    validation_result["file_age_minutes"] = file_age_minutes

    if file_age_minutes <= max_age_minutes:
        validation_result["is_fresh"] = True
    else:
        validation_result["warnings"].append(
            f"File is {file_age_minutes:.1f} minutes old (>{max_age_minutes} minutes)"
        )
        print(f"[WARNING] File is older than {max_age_minutes} minutes")

    # Step 3: Check file size
    file_size_mb = file_stat.st_size / (1024 * 1024)
    validation_result["file_size_mb"] = file_size_mb

    if file_stat.st_size == 0:
        validation_result["errors"].append("File is empty (0 bytes)")
        validation_result["is_valid"] = False
        print("[ERROR] File is empty")
        return validation_result

    # Step 4: Try to read the file
    try:
        if file_path.endswith(".parquet"):
            df = pl.read_parquet(file_path)
        elif file_path.endswith(".csv"):
            df = pl.read_csv(file_path, try_parse_dates=True)
        else:
            validation_result["errors"].append(f"Unsupported file format: {file_path}")
            validation_result["is_valid"] = False
            print("[ERROR] Unsupported file format")
            return validation_result
    except Exception as e:
        validation_result["errors"].append(f"Failed to read file: {str(e)}")
        validation_result["is_valid"] = False
        print(f"[ERROR] Failed to read file: {e}")
        return validation_result

    return validate_big_day_table(
        df,
        min_events=min_events,
        required_columns=required_columns,
        min_records=min_records,
        validation_result=validation_result,
    )


def print_validation_report(validation_result: Dict[str, Any]) -> None:
    """Print a formatted validation report."""

    print("\n" + "=" * 50)
    print("VALIDATION REPORT")
    print("=" * 50)

    print("[FILE] File Status:")
    print(f"   Exists: {'OK' if validation_result['file_exists'] else 'FAIL'}")
    print(f"   Size: {validation_result['file_size_mb']:.2f} MB")
    print(f"   Age: {validation_result['file_age_minutes']:.1f} minutes")
    print(f"   Fresh: {'OK' if validation_result['is_fresh'] else 'WARN'}")

    print("\n[DATA] Data Status:")
    print(f"   Big days: {validation_result['record_count']:,}")
    print(f"   Columns: {validation_result['column_count']}")
    print(f"   Undefined densities: {validation_result['undefined_density_count']}")

    if validation_result["errors"]:
        print(f"\n[ERROR] ERRORS ({len(validation_result['errors'])}):")
        for error in validation_result["errors"]:
            print(f"   - {error}")

    if validation_result["warnings"]:
        print(f"\n[WARN] WARNINGS ({len(validation_result['warnings'])}):")
        for warning in validation_result["warnings"]:
            print(f"   - {warning}")

    overall_status = "PASSED" if validation_result.get("is_valid", False) else "FAILED"
    print(f"\n[RESULT] Overall Status: {overall_status}")
    print("=" * 50)


def validate_and_report(
    file_path: str = "big_days.parquet",
    max_age_minutes: int = 10,
    min_events: int = DEFAULT_MIN_EVENTS,
    required_columns: Optional[List[str]] = None,
    min_records: int = 1,
    print_report: bool = True,
) -> bool:
    """
    Validate a file and optionally print a formatted report.

    Args:
        file_path: Path to file to validate
        max_age_minutes: Maximum acceptable file age in minutes
        min_events: Minimum events every big day must have
        required_columns: List of required column names
        min_records: Minimum number of records required
        print_report: Whether to print the validation report

    Returns:
        True if validation passed, False otherwise
    """
    validation_result = validate_output_file(
        file_path=file_path,
        max_age_minutes=max_age_minutes,
        min_events=min_events,
        required_columns=required_columns,
        min_records=min_records,
    )

    if print_report:
        print_validation_report(validation_result)

    return validation_result.get("is_valid", False)
