"""
Validation helpers for big-day output.

Contains utilities for validating the big-day table in memory and on disk.
"""

from .data_validator import validate_and_report, validate_big_day_table, validate_output_file

__all__ = ["validate_and_report", "validate_big_day_table", "validate_output_file"]
