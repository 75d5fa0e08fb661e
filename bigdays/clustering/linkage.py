"""
Big-Day Cluster Builder

Groups tornado events into outbreaks with single-linkage hierarchical
clustering over the space-time dissimilarity, cutting the merge tree at a
fixed height. Two interchangeable paths are provided:

- linkage: scipy single linkage over the condensed pairwise distances
- mst: Prim's minimum spanning tree computed one row at a time, which needs
  O(N) memory and is not bounded by the pairwise ceiling

Both produce the same cluster membership, renumbered 1..K in order of each
cluster's first member.
"""

import numpy as np
import polars as pl
from scipy.cluster.hierarchy import fcluster, linkage
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components

from .distance import (
    DEFAULT_MAX_PAIRS,
    DEFAULT_STORM_SPEED_MS,
    CondensedDistances,
    PairwiseLimitError,
    event_arrays,
    event_distances,
    pair_count,
    row_distances,
    validate_event_arrays,
)

# Merge trees are cut at 50,000 s-equivalent of space-time separation
DEFAULT_CUT_THRESHOLD = 50_000.0

CLUSTER_METHODS = ("linkage", "mst")


def _validate_distances(distances: CondensedDistances) -> np.ndarray:
    values = np.asarray(distances.values, dtype=float)
    expected = pair_count(distances.n_events)
    if len(values) != expected:
        raise ValueError(
            f"Expected {expected} pairwise distances for {distances.n_events} events, "
            f"got {len(values)}"
        )
    if not np.isfinite(values).all():
        raise ValueError("Pairwise distances contain NaN or infinite values")
    if (values < 0).any():
        raise ValueError("Pairwise distances contain negative values")
    return values


def relabel_by_first_member(labels: np.ndarray) -> np.ndarray:
    """Renumber labels 1..K in order of first appearance."""
    labels = np.asarray(labels)
    if labels.size == 0:
        return np.empty(0, dtype=np.int64)

    _, first_idx, inverse = np.unique(labels, return_index=True, return_inverse=True)
    order = np.argsort(first_idx, kind="stable")
    rank = np.empty_like(order)
    rank[order] = np.arange(len(order))
    return rank[inverse.ravel()].astype(np.int64) + 1


def build_merge_tree(distances: CondensedDistances) -> np.ndarray:
    """
    Run single-linkage agglomeration over condensed distances.

    Args:
        distances: Condensed pairwise dissimilarities

    Returns:
        scipy linkage matrix of shape (N-1, 4); column 2 holds merge heights

    Raises:
        ValueError: If any distance is NaN, infinite or negative
    """
    values = _validate_distances(distances)

    if distances.n_events < 2:
        return np.empty((0, 4), dtype=float)

    return linkage(values, method="single")


def cut_merge_tree(tree: np.ndarray, threshold: float, n_events: int) -> np.ndarray:
    """
    Cut a merge tree so that events share a cluster iff they merge at or
    below ``threshold``.

    Returns:
        int64 array of cluster ids 1..K
    """
    if n_events == 0:
        return np.empty(0, dtype=np.int64)
    if n_events == 1:
        return np.ones(1, dtype=np.int64)

    labels = fcluster(tree, t=threshold, criterion="distance")
    return relabel_by_first_member(labels)


def mst_edges(
    x: np.ndarray,
    y: np.ndarray,
    seconds: np.ndarray,
    storm_speed: float = DEFAULT_STORM_SPEED_MS,
) -> np.ndarray:
    """
    Minimum spanning tree of the complete space-time graph.

    Returns:
        Array of shape (N-1, 3) with rows (parent, child, weight) in the
        order vertices joined the tree
    """
    coords, seconds = validate_event_arrays(x, y, seconds, storm_speed)
    n = len(coords)
    edges = np.empty((max(n - 1, 0), 3), dtype=float)
    if n < 2:
        return edges

    in_tree = np.zeros(n, dtype=bool)
    best = np.full(n, np.inf)
    parent = np.full(n, -1, dtype=np.int64)

    current = 0
    in_tree[current] = True
    for k in range(n - 1):
        d = row_distances(current, coords, seconds, storm_speed)
        closer = ~in_tree & (d < best)
        best[closer] = d[closer]
        parent[closer] = current

        candidates = np.where(in_tree, np.inf, best)
        current = int(np.argmin(candidates))
        edges[k] = (parent[current], current, best[current])
        in_tree[current] = True

    return edges


def mst_cluster_labels(
    x: np.ndarray,
    y: np.ndarray,
    seconds: np.ndarray,
    threshold: float = DEFAULT_CUT_THRESHOLD,
    storm_speed: float = DEFAULT_STORM_SPEED_MS,
) -> np.ndarray:
    """
    Cluster events by deleting spanning-tree edges heavier than ``threshold``
    and labelling the remaining connected components.
    """
    n = len(np.asarray(seconds).ravel())
    if n == 0:
        return np.empty(0, dtype=np.int64)

    edges = mst_edges(x, y, seconds, storm_speed)
    kept = edges[edges[:, 2] <= threshold]

    graph = coo_matrix(
        (
            np.ones(len(kept)),
            (kept[:, 0].astype(np.int64), kept[:, 1].astype(np.int64)),
        ),
        shape=(n, n),
    )
    _, labels = connected_components(graph, directed=False)
    return relabel_by_first_member(labels)


def assign_clusters(
    events_df: pl.DataFrame,
    threshold: float = DEFAULT_CUT_THRESHOLD,
    storm_speed: float = DEFAULT_STORM_SPEED_MS,
    method: str = "linkage",
    max_pairs: int = DEFAULT_MAX_PAIRS,
    n_jobs: int = 1,
    verbose: bool = True,
) -> pl.DataFrame:
    """
    Assign a big-day cluster id to every event.

    Args:
        events_df: Event frame with 'x', 'y' and 'timestamp' columns
        threshold: Merge height at which the tree is cut
        storm_speed: Calibration speed (m/s) for the spatial term
        method: 'linkage' (condensed distances) or 'mst' (streaming spanning tree)
        max_pairs: Pairwise ceiling for the linkage method
        n_jobs: Threads used to fill pairwise distances
        verbose: Whether to print clustering details

    Returns:
        New DataFrame with an Int64 'cluster_id' column

    Raises:
        ValueError: For an unknown method or invalid inputs
        PairwiseLimitError: If the linkage method would exceed max_pairs
    """
    if method not in CLUSTER_METHODS:
        raise ValueError(f"Unsupported clustering method: {method}. Available: {CLUSTER_METHODS}")

    if method == "linkage":
        distances = event_distances(
            events_df, storm_speed=storm_speed, max_pairs=max_pairs, n_jobs=n_jobs
        )
        tree = build_merge_tree(distances)
        labels = cut_merge_tree(tree, threshold, distances.n_events)
    else:
        x, y, seconds = event_arrays(events_df)
        labels = mst_cluster_labels(x, y, seconds, threshold, storm_speed)

    if verbose:
        n_clusters = len(np.unique(labels))
        print(
            f"   Single-linkage ({method}) grouped {len(labels)} events "
            f"into {n_clusters} clusters at threshold {threshold:,.0f}"
        )

    return events_df.with_columns(pl.Series("cluster_id", labels, dtype=pl.Int64))


def assign_clusters_with_fallback(
    events_df: pl.DataFrame,
    threshold: float = DEFAULT_CUT_THRESHOLD,
    storm_speed: float = DEFAULT_STORM_SPEED_MS,
    method: str = "linkage",
    max_pairs: int = DEFAULT_MAX_PAIRS,
    n_jobs: int = 1,
    verbose: bool = True,
) -> pl.DataFrame:
    """Like assign_clusters, switching to the 'mst' method when the pairwise ceiling is hit."""
    try:
        return assign_clusters(
            events_df, threshold, storm_speed, method, max_pairs, n_jobs, verbose
        )
    except PairwiseLimitError as e:
        if method == "mst":
            raise
        print(f"[WARNING] {e}")
        print("   Falling back to streaming minimum spanning tree clustering")
        return assign_clusters(
            events_df, threshold, storm_speed, "mst", max_pairs, n_jobs, verbose
        )

