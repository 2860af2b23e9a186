"""Keep one record per subject and time window.

Several samples from the same subject inside one window would weight
that subject more heavily in count-based statistics, so only the
earliest sample of each (subject, window) group is retained.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd

from pybiomarker.timepoints._common import StudyDesign

logger = logging.getLogger(__name__)


def drop_duplicates(
    data: pd.DataFrame,
    design: StudyDesign | None = None,
    *,
    keys: Sequence[str] | None = None,
) -> tuple[pd.DataFrame, int]:
    """Grouped-minimum selection on elapsed time.

    Parameters
    ----------
    data : DataFrame
        Records already labelled with their time window.
    design : StudyDesign
        Supplies the subject, window and time column names.
    keys : sequence of str or None
        Grouping columns.  Defaults to ``(subject, window)``.

    Returns
    -------
    deduplicated : DataFrame
        One row per group, the one with the smallest elapsed time (the
        first in input order among equal times).  Rows keep their input
        order.  Rows with a missing key are dropped.
    n_removed : int
        ``len(data) - len(deduplicated)``.
    """
    design = design or StudyDesign()
    keys = list(keys) if keys is not None else [design.subject, design.window]
    if len(keys) == 0:
        raise ValueError("keys must name at least one column")

    missing = [c for c in [*keys, design.time] if c not in data.columns]
    if missing:
        raise ValueError(f"data is missing columns required for deduplication: {missing}")

    times = pd.to_numeric(data[design.time], errors="coerce").to_numpy(dtype=np.float64)
    # NaN sorts last, so a timed record always beats an untimed one
    order = np.argsort(times, kind="stable")

    ranked = data.iloc[order]
    first = ~ranked.duplicated(subset=keys, keep="first").to_numpy()
    complete = ranked[keys].notna().all(axis=1).to_numpy()

    positions = np.sort(order[first & complete])
    out = data.iloc[positions]
    n_removed = len(data) - len(out)

    if n_removed:
        logger.debug(
            "dropped %d of %d records sharing %s", n_removed, len(data), keys,
        )
    return out, n_removed
