"""Shared result types for the detection-limit metric engine."""

from __future__ import annotations

from dataclasses import dataclass


def _fmt(value: float | None, spec: str = ".4f", suffix: str = "") -> str:
    return "undefined" if value is None else format(value, spec) + suffix


@dataclass(frozen=True)
class ConfusionMatrix:
    """Counts for one (compound, cutoff, time window) combination.

    A matrix built from a slice with no complete-case records has all
    four counts set to ``None`` ("no data"), which is distinct from a
    real all-negative window.

    Attributes
    ----------
    tp, fn, fp, tn : int or None
        True positives, false negatives, false positives, true negatives.
    compound : str
        Compound column the counts were taken from.
    cutoff : float
        Detection limit used for the positive call.
    time_start, time_stop : float
        Window boundaries (``time_stop`` may be ``inf``).
    time_window : str
        Window label.
    n_missing : int
        Records excluded because the compound value was missing.
    n : int
        Records in the slice after deduplication.
    n_removed : int
        Records lost to deduplication.
    """

    tp: int | None
    fn: int | None
    fp: int | None
    tn: int | None
    compound: str
    cutoff: float
    time_start: float
    time_stop: float
    time_window: str
    n_missing: int = 0
    n: int = 0
    n_removed: int = 0

    def __post_init__(self) -> None:
        counts = (self.tp, self.fn, self.fp, self.tn)
        n_none = sum(c is None for c in counts)
        if n_none not in (0, 4):
            raise ValueError("counts must be all defined or all None")
        if n_none == 0 and any(c < 0 for c in counts):
            raise ValueError(f"counts must be non-negative, got {counts}")

    @property
    def is_empty(self) -> bool:
        """No complete-case record contributed to this matrix."""
        return self.tp is None

    @property
    def total(self) -> int | None:
        if self.is_empty:
            return None
        return self.tp + self.fn + self.fp + self.tn

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            "Confusion Matrix",
            "=" * 40,
            f"Compound      : {self.compound}",
            f"Cutoff        : {self.cutoff:.4g}",
            f"Window        : {self.time_window} ({self.time_start:g} .. {self.time_stop:g})",
        ]
        if self.is_empty:
            lines.append("Counts        : no data")
        else:
            lines += [
                f"TP / FN       : {self.tp} / {self.fn}",
                f"FP / TN       : {self.fp} / {self.tn}",
            ]
        lines += [
            f"N             : {self.n}",
            f"Missing       : {self.n_missing}",
            f"Dedup removed : {self.n_removed}",
        ]
        return "\n".join(lines)


@dataclass(frozen=True)
class MetricsRecord:
    """Classification-quality statistics derived from a confusion matrix.

    Every ratio is ``None`` when its denominator is zero.  Youden's J is
    defined only when both sensitivity and specificity are.
    """

    matrix: ConfusionMatrix
    sensitivity: float | None
    specificity: float | None
    ppv: float | None
    npv: float | None
    efficiency: float | None  # percent
    youden: float | None
    sensitivity_ci: tuple[float, float] | None
    specificity_ci: tuple[float, float] | None
    conf_level: float

    def as_row(self) -> dict:
        """One results-table row."""
        m = self.matrix
        sens_ci = self.sensitivity_ci or (None, None)
        spec_ci = self.specificity_ci or (None, None)
        return {
            "compound": m.compound,
            "detection_limit": m.cutoff,
            "time_start": m.time_start,
            "time_stop": m.time_stop,
            "time_window": m.time_window,
            "TP": m.tp,
            "FN": m.fn,
            "FP": m.fp,
            "TN": m.tn,
            "NAs": m.n_missing,
            "N": m.n,
            "N_removed": m.n_removed,
            "Sensitivity": self.sensitivity,
            "Specificity": self.specificity,
            "PPV": self.ppv,
            "NPV": self.npv,
            "Efficiency": self.efficiency,
            "J": self.youden,
            "Sensitivity_lower": sens_ci[0],
            "Sensitivity_upper": sens_ci[1],
            "Specificity_lower": spec_ci[0],
            "Specificity_upper": spec_ci[1],
        }

    def summary(self) -> str:
        """Human-readable summary."""
        m = self.matrix
        ci = f"{self.conf_level:.0%} CI"

        def _with_ci(value, bounds):
            if bounds is None:
                return _fmt(value)
            return f"{_fmt(value)}  ({ci}: {bounds[0]:.4f}–{bounds[1]:.4f})"

        lines = [
            "Detection-Limit Accuracy",
            "=" * 40,
            f"Compound      : {m.compound}",
            f"Cutoff        : {m.cutoff:.4g}",
            f"Window        : {m.time_window}",
            f"Sensitivity   : {_with_ci(self.sensitivity, self.sensitivity_ci)}",
            f"Specificity   : {_with_ci(self.specificity, self.specificity_ci)}",
            f"PPV           : {_fmt(self.ppv)}",
            f"NPV           : {_fmt(self.npv)}",
            f"Efficiency    : {_fmt(self.efficiency, '.1f', '%')}",
            f"Youden J      : {_fmt(self.youden)}",
        ]
        return "\n".join(lines)


@dataclass(frozen=True)
class BestCutoff:
    """Cutoff with the highest mean Youden J over a time range."""

    compound: str
    cutoff: float
    mean_youden: float
    n_windows: int  # windows with a defined J at this cutoff
    time_range: tuple[float, float]
    matrix: str | None = None

    def summary(self) -> str:
        lines = [
            "Best Detection Limit",
            "=" * 40,
        ]
        if self.matrix is not None:
            lines.append(f"Matrix        : {self.matrix}")
        lines += [
            f"Compound      : {self.compound}",
            f"Cutoff        : {self.cutoff:.4g}",
            f"Mean J        : {self.mean_youden:.4f}",
            f"Windows       : {self.n_windows}",
            f"Time range    : {self.time_range[0]:g} .. {self.time_range[1]:g}",
        ]
        return "\n".join(lines)
