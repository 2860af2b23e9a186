"""Sensitivity, specificity, predictive values, efficiency and Youden J.

Derives the classification-quality statistics of a confusion matrix.
Each ratio is computed on its own; a zero denominator makes that ratio
undefined (``None``) without touching the others.  Sensitivity and
specificity carry exact Clopper-Pearson CIs.

Validates against: R ``epiR::epi.tests()`` point estimates.
"""

from __future__ import annotations

from collections.abc import Iterable

from scipy import stats

from pybiomarker.diagnostic._common import ConfusionMatrix, MetricsRecord


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _ratio(num: int, denom: int) -> float | None:
    if denom == 0:
        return None
    return num / denom


def _clopper_pearson_ci(
    k: int, n: int, conf_level: float,
) -> tuple[float, float] | None:
    """Exact Clopper-Pearson CI for binomial proportion k/n."""
    if n == 0:
        return None
    alpha = 1 - conf_level
    if k == 0:
        lo = 0.0
        hi = 1.0 - (alpha / 2) ** (1.0 / n)
    elif k == n:
        lo = (alpha / 2) ** (1.0 / n)
        hi = 1.0
    else:
        lo = float(stats.beta.ppf(alpha / 2, k, n - k + 1))
        hi = float(stats.beta.ppf(1 - alpha / 2, k + 1, n - k))
    return lo, hi


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def error_metrics(
    matrix: ConfusionMatrix,
    *,
    conf_level: float = 0.95,
) -> MetricsRecord:
    """Compute detection-limit accuracy metrics from a confusion matrix.

    Parameters
    ----------
    matrix : ConfusionMatrix
        Counts for one compound, cutoff and window.  A no-data matrix
        yields a record with every metric undefined.
    conf_level : float
        Confidence level for the sensitivity/specificity CIs.

    Returns
    -------
    MetricsRecord
        ``sensitivity = TP/(TP+FN)``, ``specificity = TN/(TN+FP)``,
        ``ppv = TP/(TP+FP)``, ``npv = TN/(TN+FN)``,
        ``efficiency = 100*(TP+TN)/total``,
        ``youden = sensitivity + specificity - 1``.
    """
    if not 0 < conf_level < 1:
        raise ValueError(f"conf_level must be in (0, 1), got {conf_level}")

    if matrix.is_empty:
        return MetricsRecord(
            matrix=matrix,
            sensitivity=None,
            specificity=None,
            ppv=None,
            npv=None,
            efficiency=None,
            youden=None,
            sensitivity_ci=None,
            specificity_ci=None,
            conf_level=conf_level,
        )

    TP, FN, FP, TN = matrix.tp, matrix.fn, matrix.fp, matrix.tn
    total = TP + FN + FP + TN

    sens = _ratio(TP, TP + FN)
    spec = _ratio(TN, TN + FP)
    ppv = _ratio(TP, TP + FP)
    npv = _ratio(TN, TN + FN)
    eff = _ratio(TP + TN, total)
    if eff is not None:
        eff *= 100.0

    youden = None
    if sens is not None and spec is not None:
        youden = sens + spec - 1.0

    return MetricsRecord(
        matrix=matrix,
        sensitivity=sens,
        specificity=spec,
        ppv=ppv,
        npv=npv,
        efficiency=eff,
        youden=youden,
        sensitivity_ci=_clopper_pearson_ci(TP, TP + FN, conf_level),
        specificity_ci=_clopper_pearson_ci(TN, TN + FP, conf_level),
        conf_level=conf_level,
    )


def combine_matrices(matrices: Iterable[ConfusionMatrix]) -> ConfusionMatrix:
    """Aggregate matrices of one compound and cutoff over several windows.

    Counts and record tallies are summed; no-data matrices contribute
    only their tallies.  The result spans from the earliest start to the
    latest stop, and its label joins the window labels with ``'+'``.
    If every input is empty, the result is a no-data matrix.
    """
    matrices = list(matrices)
    if len(matrices) == 0:
        raise ValueError("need at least one confusion matrix to combine")

    first = matrices[0]
    for m in matrices[1:]:
        if m.compound != first.compound or m.cutoff != first.cutoff:
            raise ValueError(
                "can only combine matrices of the same compound and cutoff, got "
                f"({first.compound!r}, {first.cutoff:g}) and ({m.compound!r}, {m.cutoff:g})"
            )

    filled = [m for m in matrices if not m.is_empty]
    if filled:
        tp = sum(m.tp for m in filled)
        fn = sum(m.fn for m in filled)
        fp = sum(m.fp for m in filled)
        tn = sum(m.tn for m in filled)
    else:
        tp = fn = fp = tn = None

    return ConfusionMatrix(
        tp=tp,
        fn=fn,
        fp=fp,
        tn=tn,
        compound=first.compound,
        cutoff=first.cutoff,
        time_start=min(m.time_start for m in matrices),
        time_stop=max(m.time_stop for m in matrices),
        time_window="+".join(m.time_window for m in matrices),
        n_missing=sum(m.n_missing for m in matrices),
        n=sum(m.n for m in matrices),
        n_removed=sum(m.n_removed for m in matrices),
    )
