"""
Space-Time Distance Module

Computes the combined space-time dissimilarity between tornado events:
projected Euclidean distance divided by a calibration storm speed, plus the
absolute time separation in seconds. Pairwise results are stored in the
compact upper-triangular (condensed) layout used by scipy.
"""

import concurrent.futures as cf
from typing import NamedTuple, Tuple

import numpy as np
import polars as pl
from scipy.spatial.distance import pdist
from sklearn.metrics import DistanceMetric

# Mean storm motion (m/s) converting metres into seconds of travel
DEFAULT_STORM_SPEED_MS = 15.0

# 500 million float64 pairs is ~4 GB, about 31,600 events
DEFAULT_MAX_PAIRS = 500_000_000

# Target size of one dense block (rows x events) in the threaded fill
_BLOCK_ELEMENTS = 4_000_000


class PairwiseLimitError(ValueError):
    """Raised when the pairwise structure would exceed the configured ceiling."""

    def __init__(self, n_events: int, n_pairs: int, max_pairs: int):
        self.n_events = n_events
        self.n_pairs = n_pairs
        self.max_pairs = max_pairs
        super().__init__(
            f"{n_events} events need {n_pairs:,} pairwise distances "
            f"(limit {max_pairs:,}); split the input into smaller batches"
        )


class CondensedDistances(NamedTuple):
    """Upper-triangular pairwise distances for ``n_events`` events."""

    n_events: int
    values: np.ndarray


def pair_count(n_events: int) -> int:
    """Number of unordered event pairs."""
    return n_events * (n_events - 1) // 2


def condensed_index(i: int, j: int, n_events: int) -> int:
    """Position of pair (i, j) in the condensed layout."""
    if i == j:
        raise ValueError("A pair needs two distinct events")
    if i > j:
        i, j = j, i
    return i * n_events - i * (i + 1) // 2 + (j - i - 1)


def validate_event_arrays(
    x: np.ndarray, y: np.ndarray, seconds: np.ndarray, storm_speed: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Return (coords of shape (N, 2), seconds) after checking they are finite."""
    if not storm_speed > 0:
        raise ValueError(f"Storm speed must be positive, got {storm_speed}")

    coords = np.column_stack(
        [np.asarray(x, dtype=float), np.asarray(y, dtype=float)]
    ).reshape(-1, 2)
    seconds = np.asarray(seconds, dtype=float).ravel()

    if len(coords) != len(seconds):
        raise ValueError(
            f"Coordinate count {len(coords)} != timestamp count {len(seconds)}"
        )
    if not (np.isfinite(coords).all() and np.isfinite(seconds).all()):
        raise ValueError("Event coordinates and timestamps must be finite")

    return coords, seconds


def spacetime_distance(
    a: Tuple[float, float, float],
    b: Tuple[float, float, float],
    storm_speed: float = DEFAULT_STORM_SPEED_MS,
) -> float:
    """
    Dissimilarity between two events given as (x, y, seconds) tuples.

    Returns:
        Spatial separation in seconds of storm travel plus time separation in seconds
    """
    if not storm_speed > 0:
        raise ValueError(f"Storm speed must be positive, got {storm_speed}")
    spatial = float(np.hypot(a[0] - b[0], a[1] - b[1])) / storm_speed
    return spatial + abs(a[2] - b[2])


def row_distances(
    i: int,
    coords: np.ndarray,
    seconds: np.ndarray,
    storm_speed: float = DEFAULT_STORM_SPEED_MS,
) -> np.ndarray:
    """Dissimilarity of event ``i`` to every event (including itself, at 0)."""
    metric = DistanceMetric.get_metric("euclidean")
    spatial = metric.pairwise(coords[i : i + 1], coords)[0] / storm_speed
    return spatial + np.abs(seconds - seconds[i])


def _fill_rows(
    out: np.ndarray,
    start: int,
    stop: int,
    coords: np.ndarray,
    seconds: np.ndarray,
    storm_speed: float,
) -> None:
    """Write the condensed entries of rows [start, stop) into ``out``."""
    n = len(coords)
    metric = DistanceMetric.get_metric("euclidean")
    block = metric.pairwise(coords[start:stop], coords) / storm_speed
    block += np.abs(seconds[start:stop, None] - seconds[None, :])

    for i in range(start, stop):
        offset = i * n - i * (i + 1) // 2
        out[offset : offset + n - i - 1] = block[i - start, i + 1 :]


def pairwise_spacetime_distances(
    x: np.ndarray,
    y: np.ndarray,
    seconds: np.ndarray,
    storm_speed: float = DEFAULT_STORM_SPEED_MS,
    max_pairs: int = DEFAULT_MAX_PAIRS,
    n_jobs: int = 1,
) -> CondensedDistances:
    """
    Compute all pairwise space-time dissimilarities.

    Args:
        x: Projected x coordinates in metres
        y: Projected y coordinates in metres
        seconds: Event times in seconds since any fixed epoch
        storm_speed: Calibration speed (m/s) dividing the spatial term
        max_pairs: Ceiling on the number of pairs to allocate
        n_jobs: Worker threads filling disjoint row ranges

    Returns:
        CondensedDistances with N(N-1)/2 values

    Raises:
        PairwiseLimitError: If N(N-1)/2 exceeds max_pairs
        ValueError: If inputs are non-finite, mismatched, or storm_speed <= 0
    """
    coords, seconds = validate_event_arrays(x, y, seconds, storm_speed)
    n = len(coords)

    # Early exit for empty or single-event inputs
    if n < 2:
        return CondensedDistances(n, np.empty(0, dtype=float))

    n_pairs = pair_count(n)
    if n_pairs > max_pairs:
        raise PairwiseLimitError(n, n_pairs, max_pairs)

    if n_jobs <= 1:
        values = pdist(coords, metric="euclidean") / storm_speed
        values += pdist(seconds[:, None], metric="cityblock")
        return CondensedDistances(n, values)

    values = np.empty(n_pairs, dtype=float)
    rows_per_block = max(1, _BLOCK_ELEMENTS // n)
    bounds = [(a, min(a + rows_per_block, n - 1)) for a in range(0, n - 1, rows_per_block)]

    with cf.ThreadPoolExecutor(max_workers=n_jobs) as executor:
        futures = [
            executor.submit(_fill_rows, values, a, b, coords, seconds, storm_speed)
            for a, b in bounds
        ]
        for future in cf.as_completed(futures):
            future.result()

    return CondensedDistances(n, values)


def event_arrays(events_df: pl.DataFrame) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Extract (x, y, epoch seconds) arrays from an event frame."""
    missing_cols = [c for c in ["x", "y", "timestamp"] if c not in events_df.columns]
    if missing_cols:
        raise ValueError(f"Missing required columns for distances: {missing_cols}")

    x = events_df["x"].cast(pl.Float64).to_numpy()
    y = events_df["y"].cast(pl.Float64).to_numpy()
    seconds = events_df["timestamp"].dt.epoch("ms").cast(pl.Float64).to_numpy() / 1000.0
    return x, y, seconds


def event_distances(
    events_df: pl.DataFrame,
    storm_speed: float = DEFAULT_STORM_SPEED_MS,
    max_pairs: int = DEFAULT_MAX_PAIRS,
    n_jobs: int = 1,
) -> CondensedDistances:
    """Pairwise space-time dissimilarities for the rows of an event frame."""
    x, y, seconds = event_arrays(events_df)
    return pairwise_spacetime_distances(
        x, y, seconds, storm_speed=storm_speed, max_pairs=max_pairs, n_jobs=n_jobs
    )
