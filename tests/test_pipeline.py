import os
import sys
from datetime import date

import polars as pl
import pytest

from bigdays.bigdays_main import build_big_days, main, run_big_days
from bigdays.settings import load_settings
from bigdays.utils.data_utils import clean_data_types


def test_two_outbreaks_with_six_event_minimum(two_group_records):
    events, big_days, stats = build_big_days(
        two_group_records, load_settings({"min_events": 6}), verbose=False
    )

    assert events["cluster_id"].n_unique() == 2
    assert big_days["n_events"].to_list() == [6, 6]
    assert big_days["local_day"].to_list() == [date(2011, 4, 27), date(2011, 4, 30)]
    assert big_days["total_casualties"].to_list() == [0, 12]
    assert stats["groups_kept"] == 2


def test_default_minimum_drops_both_groups(two_group_records):
    _, big_days, stats = build_big_days(two_group_records, verbose=False)

    assert big_days.is_empty()
    assert stats["groups_total"] == 2
    assert stats["groups_dropped"] == 2


def test_rerun_gives_identical_tables(two_group_records):
    settings = load_settings({"min_events": 6})
    _, first, _ = build_big_days(two_group_records, settings, verbose=False)
    _, second, _ = build_big_days(two_group_records, settings, verbose=False)

    assert first.equals(second)


def test_mst_method_gives_same_big_days(two_group_records):
    _, linkage_days, _ = build_big_days(
        two_group_records, load_settings({"min_events": 6}), verbose=False
    )
    _, mst_days, _ = build_big_days(
        two_group_records, load_settings({"min_events": 6, "method": "mst"}), verbose=False
    )

    assert linkage_days.equals(mst_days)


def test_run_big_days_writes_outputs(tmp_path, two_group_records):
    input_path = tmp_path / "events.parquet"
    pl.DataFrame(two_group_records).write_parquet(input_path)

    covariates_path = tmp_path / "covariates.parquet"
    pl.DataFrame(
        {"local_day": [date(2011, 4, 27)], "cluster_id": [1], "cape_j_kg": [3200.0]}
    ).write_parquet(covariates_path)

    output_dir = tmp_path / "output"
    result = run_big_days(
        str(input_path),
        output_dir=str(output_dir),
        covariates_path=str(covariates_path),
        geojson=True,
        crs_name="EPSG:5070",
        overrides={"min_events": 6},
    )

    assert result["cape_j_kg"].to_list() == [3200.0, None]
    for name in [
        "events_clustered.parquet",
        "big_days.parquet",
        "big_days_covariates.parquet",
        "big_days_footprints.geojson",
    ]:
        assert os.path.exists(output_dir / name)

    saved = pl.read_parquet(output_dir / "big_days.parquet")
    assert len(saved) == 2
    assert "cape_j_kg" not in saved.columns


def test_cli_requires_input(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["bigdays"])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 2


def test_cli_exits_on_missing_file(monkeypatch, tmp_path):
    monkeypatch.setattr(
        sys, "argv", ["bigdays", "--input", str(tmp_path / "missing.parquet")]
    )
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 1


def test_cli_runs_pipeline(monkeypatch, tmp_path, two_group_records):
    input_path = tmp_path / "events.csv"
    pl.DataFrame(two_group_records).write_csv(input_path)
    output_dir = tmp_path / "cli_output"

    monkeypatch.setattr(
        sys,
        "argv",
        [
            "bigdays",
            "--input",
            str(input_path),
            "--output_dir",
            str(output_dir),
            "--min_events",
            "6",
            "--method",
            "mst",
        ],
    )
    main()

    assert len(pl.read_parquet(output_dir / "big_days.parquet")) == 2


def test_clean_data_types_widens_member_lists():
    df = pl.DataFrame(
        {"n_events": [2], "member_event_ids": [[3, 4]]},
        schema={"n_events": pl.Int32, "member_event_ids": pl.List(pl.Int32)},
    )
    cleaned = clean_data_types(df)

    assert cleaned.schema["n_events"] == pl.Int64
    assert cleaned.schema["member_event_ids"] == pl.List(pl.Int64)
    assert cleaned["member_event_ids"].to_list() == [[3, 4]]
