"""Select the detection limit with the best mean Youden index.

The Youden index of each window whose stop lies inside the target time
range is averaged per cutoff.  Undefined J values are left out of the
mean rather than counted as zero.  Ties go to the lower cutoff, which
favours sensitivity.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd

from pybiomarker.diagnostic._common import BestCutoff

_TIE_ATOL = 1e-12


def _check_range(time_range: Sequence[float]) -> tuple[float, float]:
    if len(time_range) != 2:
        raise ValueError(f"time_range must be (min, max), got {time_range!r}")
    lo, hi = float(time_range[0]), float(time_range[1])
    if lo > hi:
        raise ValueError(f"time_range min ({lo}) must be <= max ({hi})")
    return lo, hi


def _single_matrix(results: pd.DataFrame) -> str | None:
    if "matrix" not in results.columns:
        return None
    matrices = results["matrix"].dropna().unique()
    if len(matrices) > 1:
        raise ValueError(
            f"results span several matrices {list(matrices)}; rank one matrix at a time"
        )
    return str(matrices[0]) if len(matrices) else None


def _in_range(results: pd.DataFrame, compound: str, lo: float, hi: float) -> pd.DataFrame:
    return results[
        (results["compound"] == compound)
        & (results["time_stop"] >= lo)
        & (results["time_stop"] <= hi)
    ]


def _pick(table: pd.DataFrame) -> pd.Series | None:
    """Row with the highest J, lowest cutoff among ties, or None."""
    defined = table[table["J"].notna()]
    if defined.empty:
        return None
    j = defined["J"].to_numpy(dtype=np.float64)
    tied = defined[np.isclose(j, j.max(), rtol=0.0, atol=_TIE_ATOL)]
    return tied.sort_values("detection_limit", kind="stable").iloc[0]


def mean_youden(
    results: pd.DataFrame,
    compound: str,
    time_range: Sequence[float],
) -> pd.DataFrame:
    """Mean Youden J per cutoff over the windows in ``time_range``.

    Parameters
    ----------
    results : DataFrame
        Results table from :func:`~pybiomarker.diagnostic.sweep` for one
        biological matrix.
    compound : str
    time_range : (float, float)
        Inclusive bounds on each window's ``time_stop``.

    Returns
    -------
    DataFrame
        Columns ``detection_limit``, ``J`` (``pd.NA`` if no window has a
        defined J) and ``n_windows`` (windows with a defined J), sorted
        by ascending cutoff.
    """
    lo, hi = _check_range(time_range)
    _single_matrix(results)

    rows = _in_range(results, compound, lo, hi)
    if rows.empty:
        raise ValueError(
            f"no results for compound {compound!r} with time_stop in [{lo:g}, {hi:g}]"
        )

    j = rows["J"].astype("Float64").groupby(rows["detection_limit"], sort=True)
    out = pd.DataFrame({"J": j.mean(), "n_windows": j.count()}).reset_index()
    out["J"] = out["J"].astype("Float64")
    out["n_windows"] = out["n_windows"].astype(np.int64)
    return out


def best_cutoff(
    results: pd.DataFrame,
    compound: str,
    time_range: Sequence[float],
) -> BestCutoff:
    """Cutoff maximising the mean Youden J for one compound.

    Raises
    ------
    ValueError
        If no cutoff has a defined mean J in ``time_range``.
    """
    table = mean_youden(results, compound, time_range)
    row = _pick(table)
    if row is None:
        raise ValueError(
            f"Youden index is undefined for every cutoff of {compound!r} in {tuple(time_range)}"
        )
    return BestCutoff(
        compound=compound,
        cutoff=float(row["detection_limit"]),
        mean_youden=float(row["J"]),
        n_windows=int(row["n_windows"]),
        time_range=_check_range(time_range),
        matrix=_single_matrix(results),
    )


def best_combination(
    results: pd.DataFrame,
    time_range: Sequence[float],
    *,
    compounds: Sequence[str] | None = None,
) -> BestCutoff:
    """Best (compound, cutoff) pair of one biological matrix.

    Compounds with no window in ``time_range``, or whose J is undefined
    everywhere, are skipped.  Ties go to the lower cutoff, then to the
    compound listed first.
    """
    lo, hi = _check_range(time_range)
    matrix = _single_matrix(results)
    if compounds is None:
        compounds = list(pd.unique(results["compound"]))
    if len(compounds) == 0:
        raise ValueError("no compounds to rank")

    candidates = []
    for compound in compounds:
        if _in_range(results, compound, lo, hi).empty:
            continue
        row = _pick(mean_youden(results, compound, (lo, hi)))
        if row is not None:
            candidates.append({
                "compound": compound,
                "detection_limit": float(row["detection_limit"]),
                "J": float(row["J"]),
                "n_windows": int(row["n_windows"]),
            })
    if not candidates:
        raise ValueError(f"Youden index is undefined for every compound in ({lo:g}, {hi:g})")

    best = _pick(pd.DataFrame(candidates))
    return BestCutoff(
        compound=str(best["compound"]),
        cutoff=float(best["detection_limit"]),
        mean_youden=float(best["J"]),
        n_windows=int(best["n_windows"]),
        time_range=(lo, hi),
        matrix=matrix,
    )
