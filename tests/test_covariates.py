from datetime import date

import polars as pl
import pytest

from bigdays.merging.covariate_merger import (
    SAMPLING_COLUMNS,
    covariate_sampling_frame,
    merge_covariates,
)


def test_sampling_frame_has_geometry_and_timing(big_day_table):
    frame = covariate_sampling_frame(big_day_table)

    assert frame.columns == SAMPLING_COLUMNS
    assert len(frame) == len(big_day_table)

    with pytest.raises(ValueError, match="Missing columns"):
        covariate_sampling_frame(big_day_table.drop("footprint_wkt"))


def test_merge_adds_columns_by_key(big_day_table):
    covariates = pl.DataFrame(
        {
            "local_day": [date(2011, 4, 30), date(2011, 4, 27)],
            "cluster_id": [2, 1],
            "cape_j_kg": [2500.0, 4100.0],
        }
    )
    merged, stats = merge_covariates(big_day_table, covariates, verbose=False)

    assert merged.columns == big_day_table.columns + ["cape_j_kg"]
    assert merged["cape_j_kg"].to_list() == [4100.0, 2500.0]
    # Existing fields are untouched
    assert merged.drop("cape_j_kg").equals(big_day_table)
    assert stats["matched"] == 2
    assert stats["unmatched"] == 0
    assert stats["covariate_columns"] == 1


def test_unmatched_big_days_get_nulls(big_day_table):
    covariates = pl.DataFrame(
        {"local_day": [date(2011, 4, 27)], "cluster_id": [1], "population": [12_000]}
    )
    merged, stats = merge_covariates(big_day_table, covariates, verbose=False)

    assert merged["population"].to_list() == [12_000, None]
    assert stats["unmatched"] == 1


def test_key_dtypes_are_aligned(big_day_table):
    covariates = pl.DataFrame(
        {"local_day": [date(2011, 4, 27)], "cluster_id": [1], "shear_ms": [21.0]},
        schema_overrides={"cluster_id": pl.Int32},
    )
    merged, stats = merge_covariates(big_day_table, covariates, verbose=False)

    assert merged["cluster_id"].dtype == pl.Int64
    assert stats["matched"] == 1


def test_merge_rejects_bad_covariate_tables(big_day_table):
    with pytest.raises(ValueError, match="Missing key columns"):
        merge_covariates(
            big_day_table, pl.DataFrame({"cluster_id": [1], "cape": [1.0]}), verbose=False
        )

    with pytest.raises(ValueError, match="overwrite"):
        merge_covariates(
            big_day_table,
            pl.DataFrame(
                {"local_day": [date(2011, 4, 27)], "cluster_id": [1], "n_events": [99]}
            ),
            verbose=False,
        )

    with pytest.raises(ValueError, match="duplicate"):
        merge_covariates(
            big_day_table,
            pl.DataFrame(
                {
                    "local_day": [date(2011, 4, 27)] * 2,
                    "cluster_id": [1, 1],
                    "cape": [1.0, 2.0],
                }
            ),
            verbose=False,
        )
