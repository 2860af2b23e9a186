"""Sweep compounds x detection limits x time windows into a results table.

Each (compound, cutoff, window) cell is an independent, pure
computation on a read-only slice of the input, so the sweep can run on
a thread pool.  ``Executor.map`` returns results in submission order,
so the table is identical for any ``n_jobs``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pandas as pd

from pybiomarker.diagnostic._common import MetricsRecord
from pybiomarker.diagnostic._confusion import _check_cutoff, confusion_matrix
from pybiomarker.diagnostic._metrics import error_metrics
from pybiomarker.timepoints import StudyDesign, TimeWindow, WindowTable, drop_duplicates

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    "compound", "detection_limit", "time_start", "time_stop", "time_window",
    "TP", "FN", "FP", "TN", "NAs", "N", "N_removed",
    "Sensitivity", "Specificity", "PPV", "NPV", "Efficiency", "J",
    "Sensitivity_lower", "Sensitivity_upper",
    "Specificity_lower", "Specificity_upper",
]
COUNT_COLUMNS = ["TP", "FN", "FP", "TN", "NAs", "N", "N_removed"]
RATIO_COLUMNS = [
    "Sensitivity", "Specificity", "PPV", "NPV", "Efficiency", "J",
    "Sensitivity_lower", "Sensitivity_upper",
    "Specificity_lower", "Specificity_upper",
]


# ---------------------------------------------------------------------------
# Slicing and cutoff candidates
# ---------------------------------------------------------------------------

def window_slice(
    data: pd.DataFrame,
    window: TimeWindow,
    design: StudyDesign | None = None,
    *,
    pre_labels: Sequence[str] | None = None,
) -> pd.DataFrame:
    """Records belonging to ``window``.

    For a post-exposure window the pre-exposure records (those labelled
    with one of ``pre_labels``, by default the design's pre-exposure
    label) are included too, so they are folded into that window's matrix.
    """
    design = design or StudyDesign()
    if pre_labels is None:
        pre_labels = (design.pre_exposure_label,)
    if design.window not in data.columns:
        raise ValueError(f"data has no window-label column {design.window!r}")

    label = data[design.window].astype(object)
    mask = label == window.label
    if not window.is_pre_exposure:
        mask |= label.isin(list(pre_labels))
    return data.loc[mask.to_numpy()]


def candidate_cutoffs(
    data: pd.DataFrame,
    compound: str,
    *,
    lowest_value: float = 0.0,
) -> tuple[float, ...]:
    """Every observed value of ``compound`` above ``lowest_value``, ascending.

    ``lowest_value`` itself is always the first candidate.
    """
    if compound not in data.columns:
        raise ValueError(f"unknown compound column {compound!r}")
    lowest_value = _check_cutoff(lowest_value)

    values = pd.to_numeric(data[compound], errors="coerce").to_numpy(dtype=np.float64)
    values = np.unique(values[np.isfinite(values)])
    values = values[values > lowest_value]
    return (lowest_value, *(float(v) for v in values))


# ---------------------------------------------------------------------------
# Results table
# ---------------------------------------------------------------------------

def results_frame(
    records: Sequence[MetricsRecord],
    *,
    matrix: str | None = None,
) -> pd.DataFrame:
    """Long-format results table; undefined values are ``pd.NA``."""
    df = pd.DataFrame([r.as_row() for r in records], columns=RESULT_COLUMNS)
    for col in COUNT_COLUMNS:
        df[col] = df[col].astype("Int64")
    for col in RATIO_COLUMNS:
        df[col] = df[col].astype("Float64")
    df["detection_limit"] = df["detection_limit"].astype(np.float64)
    df["time_start"] = df["time_start"].astype(np.float64)
    df["time_stop"] = df["time_stop"].astype(np.float64)
    if matrix is not None:
        df.insert(0, "matrix", matrix)
    return df


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _resolve_compounds(compounds: str | Sequence[str]) -> list[str]:
    if isinstance(compounds, str):
        compounds = [compounds]
    compounds = list(compounds)
    if len(compounds) == 0:
        raise ValueError("need at least one compound")
    if len(set(compounds)) != len(compounds):
        raise ValueError(f"compounds must be unique, got {compounds}")
    return compounds


def _resolve_cutoffs(
    data: pd.DataFrame,
    compound: str,
    cutoffs: Sequence[float] | Mapping[str, Sequence[float]] | None,
) -> tuple[float, ...]:
    if isinstance(cutoffs, Mapping):
        cutoffs = cutoffs.get(compound)
    if cutoffs is None:
        return candidate_cutoffs(data, compound)

    resolved = tuple(_check_cutoff(c) for c in cutoffs)
    if len(resolved) == 0:
        raise ValueError(f"no cutoffs given for compound {compound!r}")
    return resolved


def _check_structure(
    data: pd.DataFrame,
    compounds: list[str],
    table: WindowTable,
    design: StudyDesign,
) -> None:
    unknown = [c for c in compounds if c not in data.columns]
    if unknown:
        raise ValueError(f"unknown compound columns {unknown}")

    required = [design.subject, design.arm, design.time, design.window]
    missing = [c for c in required if c not in data.columns]
    if missing:
        raise ValueError(f"data is missing required columns: {missing}")

    labels = set(data[design.window].dropna().astype(str))
    stray = sorted(labels - set(table.labels))
    if stray:
        raise ValueError(
            f"data has window labels {stray} that are not in the window table {table.labels}"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def sweep(
    data: pd.DataFrame,
    compounds: str | Sequence[str],
    cutoffs: Sequence[float] | Mapping[str, Sequence[float]] | None,
    table: WindowTable,
    design: StudyDesign | None = None,
    *,
    matrix: str | None = None,
    n_jobs: int = 1,
    conf_level: float = 0.95,
) -> pd.DataFrame:
    """Evaluate every compound at every cutoff in every time window.

    Parameters
    ----------
    data : DataFrame
        Records of one biological matrix with the window-label column
        already assigned (see :func:`~pybiomarker.timepoints.assign_timepoints`).
    compounds : str or sequence of str
        Compound columns, in reporting order.
    cutoffs : sequence, mapping or None
        Detection limits shared by all compounds, a mapping from compound
        to its own detection limits, or ``None`` to sweep every observed
        value (:func:`candidate_cutoffs`).  A compound missing from a
        mapping also falls back to its observed values.
    table : WindowTable
        Time windows of this matrix, in reporting order.
    design : StudyDesign
    matrix : str or None
        Biological matrix name; if given, added as the first column.
    n_jobs : int
        Worker threads.  ``1`` runs serially.
    conf_level : float
        Confidence level for sensitivity/specificity CIs.

    Returns
    -------
    DataFrame
        One row per (compound, cutoff, window), ordered compound, then
        cutoff (both in caller order), then window (table order).

    Raises
    ------
    ValueError
        On structural problems (unknown compound, missing columns, window
        labels absent from the table, invalid cutoffs).  Row-level data
        problems never raise; they show up as counts and undefined values.
    """
    design = design or StudyDesign()
    compounds = _resolve_compounds(compounds)
    _check_structure(data, compounds, table, design)
    if n_jobs < 1:
        raise ValueError(f"n_jobs must be >= 1, got {n_jobs}")
    if not 0 < conf_level < 1:
        raise ValueError(f"conf_level must be in (0, 1), got {conf_level}")

    plan = {c: _resolve_cutoffs(data, c, cutoffs) for c in compounds}
    pre_labels = table.pre_exposure_labels

    slices = []
    for window in table:
        sliced, n_removed = drop_duplicates(
            window_slice(data, window, design, pre_labels=pre_labels), design
        )
        logger.debug(
            "window %s: %d records after deduplication (%d removed)",
            window.label, len(sliced), n_removed,
        )
        slices.append((window, sliced, n_removed))

    tasks = [
        (compound, cutoff, i)
        for compound in compounds
        for cutoff in plan[compound]
        for i in range(len(slices))
    ]
    logger.info(
        "sweeping %d compounds x %d windows: %d cells%s",
        len(compounds), len(table), len(tasks),
        "" if matrix is None else f" ({matrix})",
    )

    def _cell(task: tuple[str, float, int]) -> MetricsRecord:
        compound, cutoff, i = task
        window, sliced, n_removed = slices[i]
        cm = confusion_matrix(
            sliced, compound, cutoff, window, design,
            n_removed=n_removed, pre_labels=pre_labels,
        )
        return error_metrics(cm, conf_level=conf_level)

    if n_jobs == 1:
        records = [_cell(t) for t in tasks]
    else:
        with ThreadPoolExecutor(max_workers=n_jobs) as pool:
            records = list(pool.map(_cell, tasks))

    return results_frame(records, matrix=matrix)
