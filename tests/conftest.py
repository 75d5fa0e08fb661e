from datetime import datetime, timedelta

import pytest

from bigdays.bigdays_main import build_big_days
from bigdays.settings import SETTINGS_SPEC, load_settings

BASE_TIME = datetime(2011, 4, 27, 15, 0)


def make_event(event_id, x, y, timestamp, magnitude=1, length=1000.0, width=50.0, **extra):
    record = {
        "event_id": event_id,
        "x": float(x),
        "y": float(y),
        "timestamp": timestamp,
        "magnitude": magnitude,
        "path_length_m": length,
        "path_width_m": width,
    }
    record.update(extra)
    return record


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep BIGDAYS_* variables from the developer's shell out of the tests."""
    for env_var, _, _ in SETTINGS_SPEC.values():
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def two_group_records():
    """Six events near the origin, six more 600 km away three days later."""
    group_a = [
        make_event(i, 100.0 * i, 50.0, BASE_TIME + timedelta(minutes=10 * i), magnitude=i % 3)
        for i in range(6)
    ]
    group_b = [
        make_event(
            100 + i,
            600_000.0 + 100.0 * i,
            50.0,
            BASE_TIME + timedelta(days=3, minutes=10 * i),
            magnitude=1,
            casualties=2,
        )
        for i in range(6)
    ]
    return group_a + group_b


@pytest.fixture
def big_day_table(two_group_records):
    """Big-day table for the two-group scenario with a minimum of six events."""
    _, big_days, _ = build_big_days(
        two_group_records, load_settings({"min_events": 6}), verbose=False
    )
    return big_days
