"""Tests for metrics derived from confusion matrices."""

import math

import numpy as np
import pytest

from pybiomarker.diagnostic import (
    RESULT_COLUMNS,
    ConfusionMatrix,
    MetricsRecord,
    combine_matrices,
    error_metrics,
)


def _cm(tp, fn, fp, tn, *, window="0-30", start=0.0, stop=30.0, compound="thc", cutoff=1.0):
    return ConfusionMatrix(
        tp=tp, fn=fn, fp=fp, tn=tn,
        compound=compound, cutoff=cutoff,
        time_start=start, time_stop=stop, time_window=window,
        n=0 if tp is None else tp + fn + fp + tn,
    )


# ---------------------------------------------------------------------------
# Point estimates
# ---------------------------------------------------------------------------

class TestErrorMetrics:
    """Ratio definitions."""

    def test_returns_record(self):
        assert isinstance(error_metrics(_cm(8, 2, 1, 9)), MetricsRecord)

    def test_formulas(self):
        m = error_metrics(_cm(8, 2, 1, 9))
        assert m.sensitivity == pytest.approx(0.8)
        assert m.specificity == pytest.approx(0.9)
        assert m.ppv == pytest.approx(8 / 9)
        assert m.npv == pytest.approx(9 / 11)
        assert m.efficiency == pytest.approx(85.0)
        assert m.youden == pytest.approx(0.7)

    def test_undefined_sensitivity(self):
        m = error_metrics(_cm(0, 0, 3, 1))
        assert m.sensitivity is None
        assert m.sensitivity_ci is None
        assert m.youden is None
        assert m.specificity == pytest.approx(0.25)
        assert m.ppv == 0.0
        assert m.npv == 1.0
        assert m.efficiency == pytest.approx(25.0)

    def test_undefined_specificity(self):
        m = error_metrics(_cm(4, 0, 0, 0))
        assert m.specificity is None
        assert m.npv is None
        assert m.youden is None
        assert m.sensitivity == 1.0

    def test_all_zero_counts(self):
        m = error_metrics(_cm(0, 0, 0, 0))
        assert m.efficiency is None
        assert m.ppv is None

    def test_no_data_matrix(self):
        m = error_metrics(_cm(None, None, None, None))
        assert m.matrix.is_empty
        for field in ("sensitivity", "specificity", "ppv", "npv", "efficiency", "youden"):
            assert getattr(m, field) is None

    def test_undefined_is_not_nan(self):
        m = error_metrics(_cm(0, 0, 3, 1))
        assert not isinstance(m.sensitivity, float)

    def test_bounds(self):
        rng = np.random.default_rng(42)
        for _ in range(200):
            tp, fn, fp, tn = (int(x) for x in rng.integers(0, 6, size=4))
            m = error_metrics(_cm(tp, fn, fp, tn))
            for value in (m.sensitivity, m.specificity, m.ppv, m.npv):
                assert value is None or 0.0 <= value <= 1.0
            assert m.youden is None or -1.0 <= m.youden <= 1.0
            assert m.efficiency is None or 0.0 <= m.efficiency <= 100.0


# ---------------------------------------------------------------------------
# CIs
# ---------------------------------------------------------------------------

class TestCIs:
    """Clopper-Pearson intervals."""

    def test_ci_contains_point(self):
        m = error_metrics(_cm(8, 2, 1, 9))
        assert m.sensitivity_ci[0] <= m.sensitivity <= m.sensitivity_ci[1]
        assert m.specificity_ci[0] <= m.specificity <= m.specificity_ci[1]

    def test_ci_extremes(self):
        m = error_metrics(_cm(0, 5, 5, 0))
        assert m.sensitivity_ci[0] == 0.0
        assert m.specificity_ci[0] == 0.0
        m = error_metrics(_cm(5, 0, 0, 5))
        assert m.sensitivity_ci[1] == 1.0

    def test_exact_upper_bound_for_zero_successes(self):
        m = error_metrics(_cm(0, 10, 0, 1))
        assert m.sensitivity_ci[1] == pytest.approx(1 - 0.025 ** (1 / 10))

    def test_wider_at_higher_conf_level(self):
        lo = error_metrics(_cm(8, 2, 1, 9), conf_level=0.90).sensitivity_ci
        hi = error_metrics(_cm(8, 2, 1, 9), conf_level=0.99).sensitivity_ci
        assert hi[1] - hi[0] > lo[1] - lo[0]

    def test_invalid_conf_level(self):
        with pytest.raises(ValueError, match="conf_level"):
            error_metrics(_cm(8, 2, 1, 9), conf_level=1.0)


# ---------------------------------------------------------------------------
# Rows and summaries
# ---------------------------------------------------------------------------

class TestRecordOutput:
    """Row and summary rendering."""

    def test_row_columns(self):
        row = error_metrics(_cm(8, 2, 1, 9)).as_row()
        assert list(row) == RESULT_COLUMNS

    def test_row_values(self):
        row = error_metrics(_cm(2, 0, 0, 2)).as_row()
        assert row["detection_limit"] == 1.0
        assert row["time_window"] == "0-30"
        assert (row["TP"], row["FN"], row["FP"], row["TN"]) == (2, 0, 0, 2)
        assert row["J"] == 1.0

    def test_row_undefined(self):
        row = error_metrics(_cm(0, 0, 1, 1)).as_row()
        assert row["Sensitivity"] is None
        assert row["Sensitivity_lower"] is None

    def test_summary(self):
        s = error_metrics(_cm(0, 0, 3, 1)).summary()
        assert "Specificity" in s
        assert "undefined" in s
        assert "25.0%" in s


# ---------------------------------------------------------------------------
# Aggregation over windows
# ---------------------------------------------------------------------------

class TestCombine:
    """Summing matrices over several windows."""

    def test_sums_counts(self):
        a = _cm(2, 1, 0, 3, window="0-30", start=0, stop=30)
        b = _cm(1, 2, 1, 4, window="31-70", start=30, stop=70)
        c = combine_matrices([a, b])
        assert (c.tp, c.fn, c.fp, c.tn) == (3, 3, 1, 7)
        assert (c.time_start, c.time_stop) == (0, 70)
        assert c.time_window == "0-30+31-70"
        assert c.n == a.n + b.n

    def test_skips_empty(self):
        a = _cm(2, 1, 0, 3)
        b = _cm(None, None, None, None, window="71+", start=70, stop=math.inf)
        c = combine_matrices([a, b])
        assert (c.tp, c.fn, c.fp, c.tn) == (2, 1, 0, 3)
        assert math.isinf(c.time_stop)

    def test_all_empty(self):
        c = combine_matrices([_cm(None, None, None, None)])
        assert c.is_empty

    def test_metrics_of_combined(self):
        c = combine_matrices([_cm(1, 0, 0, 1), _cm(0, 1, 1, 0)])
        m = error_metrics(c)
        assert m.sensitivity == 0.5
        assert m.specificity == 0.5
        assert m.youden == 0.0

    def test_mismatched_cutoff(self):
        with pytest.raises(ValueError, match="same compound and cutoff"):
            combine_matrices([_cm(1, 0, 0, 1), _cm(1, 0, 0, 1, cutoff=2.0)])

    def test_empty_input(self):
        with pytest.raises(ValueError, match="at least one"):
            combine_matrices([])
