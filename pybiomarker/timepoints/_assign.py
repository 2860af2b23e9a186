"""Map elapsed time since exposure start to a named time window.

The first window collects everything up to and including its stop
(baseline samples taken long before exposure still count as
pre-exposure).  Interior windows are half-open ``[start, stop)`` so a
boundary value lands in the window it starts.  The last window is closed
at its stop, or unbounded when open-ended.  Values above the final stop
are out of range and receive no label.
"""

from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pybiomarker.timepoints._common import StudyDesign, WindowTable

logger = logging.getLogger(__name__)


def _window_index(
    times: NDArray[np.floating], table: WindowTable,
) -> NDArray[np.intp]:
    """Index of the containing window for each time, ``-1`` if none."""
    idx = np.full(times.shape, -1, dtype=np.intp)
    n_windows = len(table)
    valid = ~np.isnan(times)

    for i, w in enumerate(table):
        if i == 0:
            inside = times <= w.stop
        elif i == n_windows - 1:
            inside = (times >= w.start) & (times <= w.stop)
        else:
            inside = (times >= w.start) & (times < w.stop)
        # first match wins; the first window also owns its own stop
        idx[valid & inside & (idx == -1)] = i

    return idx


def assign_timepoint(value: float | None, table: WindowTable) -> str | None:
    """Label of the window containing ``value``.

    Parameters
    ----------
    value : float or None
        Elapsed time since exposure start (negative = baseline).
    table : WindowTable

    Returns
    -------
    str or None
        ``None`` when ``value`` is missing or above the final window.
    """
    if value is None:
        return None
    value = float(value)
    if math.isnan(value):
        return None
    i = int(_window_index(np.array([value]), table)[0])
    return None if i < 0 else table[i].label


def assign_timepoints(
    data: pd.DataFrame,
    table: WindowTable,
    design: StudyDesign | None = None,
) -> pd.DataFrame:
    """Return a copy of ``data`` with the window-label column filled in.

    The label column is categorical with categories in table order.
    Rows whose time falls outside every window get a missing label and
    are reported in the log; callers decide whether to drop them.
    """
    design = design or StudyDesign()
    if design.time not in data.columns:
        raise ValueError(f"data has no elapsed-time column {design.time!r}")

    times = pd.to_numeric(data[design.time], errors="coerce").to_numpy(dtype=np.float64)
    idx = _window_index(times, table)

    out = data.copy()
    out[design.window] = pd.Categorical.from_codes(idx, categories=list(table.labels))

    n_missing = int(np.sum(idx < 0))
    if n_missing:
        logger.warning(
            "%d of %d records have no time window (missing or out-of-range %s)",
            n_missing, len(out), design.time,
        )
    return out
