"""
Clustering Package

Space-time distances, single-linkage clustering and big-day aggregation of
tornado events.
"""

from .distance import (
    DEFAULT_MAX_PAIRS,
    DEFAULT_STORM_SPEED_MS,
    CondensedDistances,
    PairwiseLimitError,
    event_distances,
    pairwise_spacetime_distances,
)
from .linkage import (
    DEFAULT_CUT_THRESHOLD,
    assign_clusters,
    assign_clusters_with_fallback,
    build_merge_tree,
    cut_merge_tree,
    mst_cluster_labels,
)
from .aggregation import DEFAULT_MIN_EVENTS, aggregate_big_days

__all__ = [
    "DEFAULT_MAX_PAIRS",
    "DEFAULT_STORM_SPEED_MS",
    "CondensedDistances",
    "PairwiseLimitError",
    "event_distances",
    "pairwise_spacetime_distances",
    "DEFAULT_CUT_THRESHOLD",
    "assign_clusters",
    "assign_clusters_with_fallback",
    "build_merge_tree",
    "cut_merge_tree",
    "mst_cluster_labels",
    "DEFAULT_MIN_EVENTS",
    "aggregate_big_days",
]
