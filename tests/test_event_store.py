import math
from datetime import date, datetime, timedelta

import polars as pl
import pytest

from conftest import BASE_TIME, make_event

from bigdays.events.event_store import (
    apply_path_floor,
    build_event_frame,
    convective_day,
    load_event_table,
    resolve_unknown_magnitude,
)


def test_convective_day_boundary():
    records = [
        make_event(1, 0, 0, datetime(2011, 4, 28, 3, 0)),
        make_event(2, 0, 0, datetime(2011, 4, 28, 6, 0)),
        make_event(3, 0, 0, datetime(2011, 4, 28, 7, 0)),
        make_event(4, 0, 0, datetime(2011, 4, 27, 23, 59)),
    ]
    df = build_event_frame(records)
    days = dict(zip(df["event_id"].to_list(), df["local_day"].to_list()))

    assert days[1] == date(2011, 4, 27)
    assert days[2] == date(2011, 4, 28)
    assert days[3] == date(2011, 4, 28)
    assert days[4] == date(2011, 4, 27)


def test_convective_day_uses_explicit_zone():
    # 10:00 UTC is 05:00 CDT, still the previous convective day in Chicago
    df = pl.DataFrame([make_event(1, 0, 0, datetime(2011, 4, 28, 10, 0))]).with_columns(
        pl.col("timestamp").dt.replace_time_zone("UTC")
    )

    utc_day = build_event_frame(df)["local_day"][0]
    chicago_day = build_event_frame(df, time_zone="America/Chicago")["local_day"][0]

    assert utc_day == date(2011, 4, 28)
    assert chicago_day == date(2011, 4, 27)


def test_zone_setting_on_naive_timestamps_warns(capsys):
    df = build_event_frame(
        [make_event(1, 0, 0, datetime(2011, 4, 28, 5, 0))], time_zone="America/Chicago"
    )

    assert "[WARNING]" in capsys.readouterr().out
    assert df.schema["timestamp"].time_zone is None
    assert df["local_day"][0] == date(2011, 4, 27)


def test_convective_day_expression_converts_zone():
    df = pl.DataFrame({"timestamp": [datetime(2011, 4, 28, 10, 0)]}).with_columns(
        pl.col("timestamp").dt.replace_time_zone("UTC")
    )
    days = df.select(
        convective_day(pl.col("timestamp")).alias("utc"),
        convective_day(pl.col("timestamp"), time_zone="America/Chicago").alias("chicago"),
        convective_day(pl.col("timestamp"), day_offset_hours=12).alias("noon"),
    ).row(0)

    assert days == (date(2011, 4, 28), date(2011, 4, 27), date(2011, 4, 27))


def test_defaults_and_path_area():
    records = [
        make_event(1, 0, 0, BASE_TIME, length=1000.0, width=40.0),
        make_event(2, 0, 0, BASE_TIME, length=1000.0, width=40.0, width_convention="maximum"),
    ]
    df = build_event_frame(records)

    assert df["casualties"].to_list() == [0, 0]
    areas = dict(zip(df["event_id"].to_list(), df["path_area_m2"].to_list()))
    assert areas[1] == pytest.approx(40_000.0)
    assert areas[2] == pytest.approx(40_000.0 * math.pi / 4)


def test_events_are_sorted_by_time():
    records = [
        make_event(1, 0, 0, BASE_TIME + timedelta(hours=2)),
        make_event(2, 0, 0, BASE_TIME),
        make_event(3, 0, 0, BASE_TIME + timedelta(hours=1)),
    ]
    df = build_event_frame(records)
    assert df["event_id"].to_list() == [2, 3, 1]


def test_string_timestamps_are_parsed():
    df = build_event_frame([make_event("a", 0, 0, "2011-04-27 15:00:00")])
    assert df["timestamp"][0] == datetime(2011, 4, 27, 15, 0)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"magnitude": 6}, "intensity category"),
        ({"magnitude": -9}, "intensity category"),
        ({"path_width_m": 0.0}, "non-positive"),
        ({"casualties": -1}, "negative casualties"),
        ({"width_convention": "median"}, "width convention"),
        ({"x": float("nan")}, "non-finite"),
    ],
)
def test_invalid_records_are_rejected(overrides, message):
    record = make_event(1, 0, 0, BASE_TIME)
    record.update(overrides)
    with pytest.raises(ValueError, match=message):
        build_event_frame([record])


def test_missing_columns_and_duplicate_ids_are_rejected():
    record = make_event(1, 0, 0, BASE_TIME)
    del record["path_length_m"]
    with pytest.raises(ValueError, match="Missing"):
        build_event_frame([record])

    with pytest.raises(ValueError, match="duplicate"):
        build_event_frame([make_event(1, 0, 0, BASE_TIME), make_event(1, 5, 5, BASE_TIME)])


def test_empty_input_gives_empty_frame():
    df = build_event_frame([])
    assert df.is_empty()
    assert "local_day" in df.columns
    assert "path_area_m2" in df.columns


def test_resolve_unknown_magnitude():
    df = pl.DataFrame(
        {
            "magnitude": [-9, -9, 3],
            "path_length_m": [10_000.0, 100.0, 100.0],
        }
    )
    assert resolve_unknown_magnitude(df)["magnitude"].to_list() == [1, 0, 3]


def test_apply_path_floor():
    df = pl.DataFrame({"path_length_m": [0.0, 250.0], "path_width_m": [30.0, 0.0]})
    floored = apply_path_floor(df, 1.0)

    assert floored["path_length_m"].to_list() == [1.0, 250.0]
    assert floored["path_width_m"].to_list() == [30.0, 1.0]

    with pytest.raises(ValueError):
        apply_path_floor(df, 0.0)


def test_load_event_table(tmp_path):
    path = tmp_path / "events.parquet"
    pl.DataFrame([make_event(1, 0, 0, BASE_TIME)]).write_parquet(path)

    df = load_event_table(str(path))
    assert len(df) == 1

    with pytest.raises(FileNotFoundError):
        load_event_table(str(tmp_path / "missing.parquet"))

    other = tmp_path / "events.json"
    other.write_text("{}")
    with pytest.raises(ValueError, match="Unsupported"):
        load_event_table(str(other))
