"""
Utility functions for big-day processing.

Common utilities for type cleanup, file saving and console reporting.
"""

from .data_utils import clean_data_types, print_sample_data, print_summary_statistics, save_outputs

__all__ = ["clean_data_types", "print_sample_data", "print_summary_statistics", "save_outputs"]
