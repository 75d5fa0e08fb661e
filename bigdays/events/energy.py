"""
Tornado Energy Dissipation Module

Estimates the kinetic energy dissipated by a tornado from its intensity
category and path area, using the NRC EF-scale wind-speed/area-fraction
reference table.

Energy (J) = path area (m^2) x sum_j fraction[category][j] x midpoint_speed[j]^3
with air density folded into the constant as 1 kg/m^3.
"""

from typing import Union

import numpy as np
import polars as pl

ENERGY_TABLE_VERSION = "nrc-ef-2007.1"

# EF-scale lower threshold wind speeds (m/s) for categories 0..5
EF_THRESHOLD_SPEEDS = np.array([29.06, 38.45, 49.62, 60.8, 74.21, 89.41])

# Band midpoints; EF5 has no upper bound so its midpoint sits 7.5 m/s above
# its threshold, mirroring the gap between the two preceding bands.
MIDPOINT_SPEEDS = np.append(
    (EF_THRESHOLD_SPEEDS[:-1] + EF_THRESHOLD_SPEEDS[1:]) / 2.0,
    EF_THRESHOLD_SPEEDS[-1] + 7.5,
)

# Fraction of a category-i path area experiencing band-j winds
FRACTION_BY_CATEGORY = np.array(
    [
        [1.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [0.772, 0.228, 0.0, 0.0, 0.0, 0.0],
        [0.616, 0.268, 0.115, 0.0, 0.0, 0.0],
        [0.529, 0.271, 0.133, 0.067, 0.0, 0.0],
        [0.543, 0.238, 0.131, 0.056, 0.032, 0.0],
        [0.538, 0.223, 0.119, 0.07, 0.033, 0.017],
    ]
)

# Energy per square metre of path for each category
ENERGY_PER_UNIT_AREA = FRACTION_BY_CATEGORY @ MIDPOINT_SPEEDS**3

MIN_MAGNITUDE = 0
MAX_MAGNITUDE = len(MIDPOINT_SPEEDS) - 1


def _check_magnitude(magnitude: int) -> int:
    if isinstance(magnitude, bool) or int(magnitude) != magnitude:
        raise ValueError(f"Intensity category must be an integer, got {magnitude!r}")
    magnitude = int(magnitude)
    if not MIN_MAGNITUDE <= magnitude <= MAX_MAGNITUDE:
        raise ValueError(
            f"Intensity category {magnitude} outside {MIN_MAGNITUDE}..{MAX_MAGNITUDE}"
        )
    return magnitude


def energy_per_unit_area(magnitude: int) -> float:
    """Return the energy (J/m^2) dissipated per unit path area for a category."""
    return float(ENERGY_PER_UNIT_AREA[_check_magnitude(magnitude)])


def energy_dissipated(magnitude: int, path_area: Union[int, float]) -> float:
    """
    Estimate the energy dissipated by a single tornado.

    Args:
        magnitude: Intensity category (0-5)
        path_area: Damage path area in square metres

    Returns:
        Energy in joules, always >= 0

    Raises:
        ValueError: If the category is outside 0-5 or the area is negative
    """
    magnitude = _check_magnitude(magnitude)
    if not path_area >= 0:
        raise ValueError(f"Path area must be non-negative, got {path_area}")

    return float(path_area) * float(ENERGY_PER_UNIT_AREA[magnitude])


def add_energy_dissipation(df: pl.DataFrame) -> pl.DataFrame:
    """
    Annotate an event frame with an 'energy_dissipated' column.

    Args:
        df: Event frame with 'magnitude' and 'path_area_m2' columns

    Returns:
        New DataFrame with the added 'energy_dissipated' column

    Raises:
        ValueError: If required columns are missing or any magnitude is out of range
    """
    missing_cols = [c for c in ["magnitude", "path_area_m2"] if c not in df.columns]
    if missing_cols:
        raise ValueError(f"Missing required columns for energy estimate: {missing_cols}")

    if df.is_empty():
        return df.with_columns(pl.lit(None, dtype=pl.Float64).alias("energy_dissipated"))

    bad = df.filter(
        pl.col("magnitude").is_null()
        | ~pl.col("magnitude").is_between(MIN_MAGNITUDE, MAX_MAGNITUDE)
    )
    if len(bad) > 0:
        raise ValueError(
            f"{len(bad)} events have intensity category outside "
            f"{MIN_MAGNITUDE}..{MAX_MAGNITUDE}"
        )

    negative_area = df.filter(pl.col("path_area_m2") < 0).height
    if negative_area > 0:
        raise ValueError(f"{negative_area} events have negative path area")

    magnitudes = df["magnitude"].cast(pl.Int64).to_numpy()
    energy = df["path_area_m2"].cast(pl.Float64).to_numpy() * ENERGY_PER_UNIT_AREA[magnitudes]

    return df.with_columns(pl.Series("energy_dissipated", energy, dtype=pl.Float64))
