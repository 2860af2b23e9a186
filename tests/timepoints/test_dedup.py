"""Tests for per-window deduplication."""

import numpy as np
import pandas as pd
import pytest

from pybiomarker.timepoints import drop_duplicates


@pytest.fixture
def labelled():
    return pd.DataFrame({
        "id": [1, 1, 1, 2, 2, 3],
        "timepoint_use": ["0-30", "0-30", "31-70", "0-30", "0-30", None],
        "time_from_start": [20.0, 5.0, 40.0, 10.0, 10.0, 12.0],
        "thc": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
    })


class TestDropDuplicates:
    """Keep the earliest record per (subject, window)."""

    def test_keeps_earliest(self, labelled):
        out, n_removed = drop_duplicates(labelled)
        subject1 = out[(out["id"] == 1) & (out["timepoint_use"] == "0-30")]
        assert subject1["time_from_start"].tolist() == [5.0]
        assert n_removed == 3

    def test_tie_keeps_first_in_input(self, labelled):
        out, _ = drop_duplicates(labelled)
        subject2 = out[out["id"] == 2]
        assert subject2["thc"].tolist() == [4.0]

    def test_preserves_input_order(self, labelled):
        out, _ = drop_duplicates(labelled)
        assert out.index.tolist() == [1, 2, 3]

    def test_missing_window_dropped(self, labelled):
        out, _ = drop_duplicates(labelled)
        assert 3 not in out["id"].tolist()

    def test_one_row_per_group(self, labelled):
        out, _ = drop_duplicates(labelled)
        assert not out.duplicated(subset=["id", "timepoint_use"]).any()

    def test_timed_record_beats_untimed(self):
        df = pd.DataFrame({
            "id": [1, 1],
            "timepoint_use": ["0-30", "0-30"],
            "time_from_start": [np.nan, 25.0],
        })
        out, n_removed = drop_duplicates(df)
        assert out["time_from_start"].tolist() == [25.0]
        assert n_removed == 1

    def test_custom_keys(self, labelled):
        out, n_removed = drop_duplicates(labelled, keys=["id"])
        assert out["time_from_start"].tolist() == [5.0, 10.0, 12.0]
        assert n_removed == 3

    def test_no_duplicates(self, labelled):
        once, _ = drop_duplicates(labelled)
        twice, n_removed = drop_duplicates(once)
        assert n_removed == 0
        pd.testing.assert_frame_equal(once, twice)

    def test_study_fixture(self, study):
        out, n_removed = drop_duplicates(study)
        # the 20-minute sample of each of the six subjects is dropped
        assert n_removed == 6
        assert len(out) == 18
        assert 20.0 not in out["time_from_start"].tolist()


class TestDropDuplicatesValidation:
    """Input validation."""

    def test_missing_column(self, labelled):
        with pytest.raises(ValueError, match="missing columns"):
            drop_duplicates(labelled.drop(columns="time_from_start"))

    def test_empty_keys(self, labelled):
        with pytest.raises(ValueError, match="keys"):
            drop_duplicates(labelled, keys=[])
