"""
Tornado Big Days Package

Groups tornado touchdowns into space-time outbreak clusters ("big days") and
summarizes each outbreak: energy dissipated, intensity counts, timing and
convex-hull footprint.
"""

from .bigdays_main import build_big_days, run_big_days

__version__ = "0.1.0"

__all__ = ["build_big_days", "run_big_days", "__version__"]
