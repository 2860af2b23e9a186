"""Confusion-matrix construction for a compound at a detection limit.

Ground truth depends on when a sample was taken:

- Samples from a pre-exposure window are never truly exposed, whatever
  the treatment arm, so they can only be false positives or true
  negatives.
- After exposure start, every arm except the control arm is truly
  exposed.

The positive call is ``value >= cutoff``, except for a zero cutoff
after exposure start where it is ``value > 0`` (any detectable amount).
The negative call is always the complement of the positive call, so a
record lands in exactly one bucket.

Each post-exposure matrix also carries the pre-exposure records of its
slice, counted with the pre-exposure rule and added to the
post-exposure counts.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pybiomarker.diagnostic._common import ConfusionMatrix
from pybiomarker.timepoints import StudyDesign, TimeWindow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Labeling decision table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LabelingRule:
    """One branch of the labeling policy.

    Attributes
    ----------
    name : str
        Short identifier, e.g. ``'pre-exposure'``.
    truth_from_arm : bool
        ``True`` if non-control arms are truly exposed; ``False`` if every
        record is truly unexposed.
    strict : bool
        Positive call is ``value > cutoff`` instead of ``value >= cutoff``.
    """

    name: str
    truth_from_arm: bool
    strict: bool

    def positive_call(
        self, values: NDArray[np.floating], cutoff: float,
    ) -> NDArray[np.bool_]:
        if self.strict:
            return values > cutoff
        return values >= cutoff

    def count(
        self,
        values: NDArray[np.floating],
        exposed: NDArray[np.bool_],
        cutoff: float,
    ) -> tuple[int, int, int, int]:
        """``(TP, FN, FP, TN)`` for complete-case ``values``."""
        if not self.truth_from_arm:
            exposed = np.zeros(values.shape, dtype=bool)
        pos = self.positive_call(values, cutoff)
        TP = int(np.sum(pos & exposed))
        FN = int(np.sum(~pos & exposed))
        FP = int(np.sum(pos & ~exposed))
        TN = int(np.sum(~pos & ~exposed))
        return TP, FN, FP, TN


PRE_EXPOSURE = LabelingRule("pre-exposure", truth_from_arm=False, strict=False)
POST_ZERO_CUTOFF = LabelingRule("post-exposure, zero cutoff", truth_from_arm=True, strict=True)
POST_CUTOFF = LabelingRule("post-exposure", truth_from_arm=True, strict=False)

# (pre-exposure partition?, cutoff == 0?) -> rule
_RULES: dict[tuple[bool, bool], LabelingRule] = {
    (True, True): PRE_EXPOSURE,
    (True, False): PRE_EXPOSURE,
    (False, True): POST_ZERO_CUTOFF,
    (False, False): POST_CUTOFF,
}


def labeling_rule(pre_exposure: bool, cutoff: float) -> LabelingRule:
    """Look up the labeling rule for a partition and cutoff."""
    return _RULES[(bool(pre_exposure), cutoff == 0)]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _check_cutoff(cutoff: float) -> float:
    cutoff = float(cutoff)
    if not math.isfinite(cutoff) or cutoff < 0:
        raise ValueError(f"cutoff must be a finite non-negative number, got {cutoff}")
    return cutoff


def _check_columns(data: pd.DataFrame, compound: str, design: StudyDesign) -> None:
    if compound not in data.columns:
        raise ValueError(f"unknown compound column {compound!r}")
    missing = [c for c in (design.arm, design.window) if c not in data.columns]
    if missing:
        raise ValueError(f"data is missing required columns: {missing}")


def _check_arms(arms: pd.Series, design: StudyDesign) -> None:
    unknown = sorted(set(arms.dropna().astype(str)) - set(design.arms))
    if unknown:
        raise ValueError(
            f"unknown treatment arms {unknown}; design declares {design.arms}"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def confusion_matrix(
    data: pd.DataFrame,
    compound: str,
    cutoff: float,
    window: TimeWindow,
    design: StudyDesign | None = None,
    *,
    n_removed: int = 0,
    pre_labels: Sequence[str] | None = None,
) -> ConfusionMatrix:
    """Count TP/FN/FP/TN for one compound, cutoff and time window.

    Parameters
    ----------
    data : DataFrame
        Deduplicated slice for ``window`` (for a post-exposure window,
        including the pre-exposure records to be folded in).
    compound : str
        Compound column to classify on.
    cutoff : float
        Detection limit, ``>= 0``.
    window : TimeWindow
        Window the slice belongs to.  A window with ``stop <= 0`` is
        pre-exposure and every record is counted with the pre-exposure
        rule.
    design : StudyDesign
        Column names, control arm and pre-exposure label.
    n_removed : int
        Records dropped by deduplication upstream, carried as metadata.
    pre_labels : sequence of str or None
        Window labels of pre-exposure records inside a post-exposure
        slice.  Defaults to the design's pre-exposure label;
        :func:`sweep` passes the labels of the table's pre-exposure windows.

    Returns
    -------
    ConfusionMatrix
        Counts are ``None`` when no complete-case record remains.

    Notes
    -----
    A record is complete when its compound value, treatment arm and
    window label are all present.  Incomplete records are counted in
    ``n_missing`` and nowhere else.
    """
    design = design or StudyDesign()
    _check_columns(data, compound, design)
    if pre_labels is None:
        pre_labels = (design.pre_exposure_label,)
    cutoff = _check_cutoff(cutoff)
    _check_arms(data[design.arm], design)

    values = pd.to_numeric(data[compound], errors="coerce").to_numpy(dtype=np.float64)
    arm = data[design.arm].astype(object)
    label = data[design.window].astype(object)

    complete = ~np.isnan(values) & arm.notna().to_numpy() & label.notna().to_numpy()
    n_missing = int(np.sum(~complete))

    meta = dict(
        compound=compound,
        cutoff=cutoff,
        time_start=window.start,
        time_stop=window.stop,
        time_window=window.label,
        n_missing=n_missing,
        n=len(data),
        n_removed=int(n_removed),
    )

    if not complete.any():
        logger.debug(
            "no complete-case records for %s at cutoff %g in window %s",
            compound, cutoff, window.label,
        )
        return ConfusionMatrix(tp=None, fn=None, fp=None, tn=None, **meta)

    values = values[complete]
    exposed = (arm[complete] != design.control_arm).to_numpy()

    if window.is_pre_exposure:
        pre = np.ones(values.shape, dtype=bool)
    else:
        pre = label[complete].isin(list(pre_labels)).to_numpy()

    counts = np.zeros(4, dtype=np.int64)
    for is_pre, mask in ((True, pre), (False, ~pre)):
        if not mask.any():
            continue
        rule = labeling_rule(is_pre, cutoff)
        counts += rule.count(values[mask], exposed[mask], cutoff)

    TP, FN, FP, TN = (int(c) for c in counts)
    return ConfusionMatrix(tp=TP, fn=FN, fp=FP, tn=TN, **meta)
