"""
Event Package

Normalized tornado event records and the per-event energy dissipation estimate.
"""

from .energy import (
    ENERGY_TABLE_VERSION,
    add_energy_dissipation,
    energy_dissipated,
    energy_per_unit_area,
)
from .event_store import (
    apply_path_floor,
    build_event_frame,
    convective_day,
    load_event_table,
    resolve_unknown_magnitude,
)

__all__ = [
    "ENERGY_TABLE_VERSION",
    "add_energy_dissipation",
    "energy_dissipated",
    "energy_per_unit_area",
    "apply_path_floor",
    "build_event_frame",
    "convective_day",
    "load_event_table",
    "resolve_unknown_magnitude",
]
