"""Run a configured study across all biological matrices."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd

from pybiomarker.config import StudyConfig
from pybiomarker.diagnostic import best_combination, sweep
from pybiomarker.timepoints import assign_timepoints

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudyResult:
    """Results table of every matrix plus the best combination per matrix."""

    results: pd.DataFrame
    best: pd.DataFrame  # matrix, compound, cutoff, J, n_windows; NA where J is undefined

    def summary(self) -> str:
        lines = ["Best detection limits", "=" * 40]
        for row in self.best.itertuples(index=False):
            if pd.isna(row.J):
                lines.append(f"{row.matrix:<12s}: J undefined for every compound")
                continue
            lines.append(
                f"{row.matrix:<12s}: {row.compound} >= {row.cutoff:g}  (mean J {row.J:.4f})"
            )
        return "\n".join(lines)


def _best_row(matrix: str, results: pd.DataFrame, time_range: tuple[float, float]) -> dict:
    try:
        best = best_combination(results, time_range)
    except ValueError as exc:
        logger.warning("%s: no best detection limit (%s)", matrix, exc)
        return {"matrix": matrix, "compound": pd.NA, "cutoff": pd.NA, "J": pd.NA, "n_windows": 0}

    logger.info(
        "%s: best %s at cutoff %g (mean J %.4f over %d windows)",
        matrix, best.compound, best.cutoff, best.mean_youden, best.n_windows,
    )
    return {
        "matrix": matrix,
        "compound": best.compound,
        "cutoff": best.cutoff,
        "J": best.mean_youden,
        "n_windows": best.n_windows,
    }


def run_study(
    datasets: Mapping[str, pd.DataFrame],
    config: StudyConfig,
    *,
    n_jobs: int = 1,
) -> StudyResult:
    """Sweep and rank every matrix named in ``config``.

    Parameters
    ----------
    datasets : mapping of str to DataFrame
        One deduplication-ready dataset per biological matrix.  If a
        dataset lacks the window-label column it is assigned from the
        matrix's window table.
    config : StudyConfig
    n_jobs : int
        Worker threads per sweep.

    Returns
    -------
    StudyResult
    """
    missing = [m for m in config.matrices if m not in datasets]
    if missing:
        raise ValueError(f"no dataset supplied for matrices {missing}")

    design = config.design
    frames = []
    best_rows = []
    for matrix in config.matrices:
        table = config.windows[matrix]
        data = datasets[matrix]
        if design.window not in data.columns:
            data = assign_timepoints(data, table, design)

        results = sweep(
            data,
            config.compounds[matrix],
            config.cutoffs,
            table,
            design,
            matrix=matrix,
            n_jobs=n_jobs,
        )
        frames.append(results)
        best_rows.append(_best_row(matrix, results, config.time_range))

    return StudyResult(
        results=pd.concat(frames, ignore_index=True),
        best=pd.DataFrame(
            best_rows, columns=["matrix", "compound", "cutoff", "J", "n_windows"],
        ).astype({"cutoff": "Float64", "J": "Float64", "n_windows": np.int64}),
    )
