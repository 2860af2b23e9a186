"""Shared fixtures: a small exposure study with hand-checkable counts."""

import numpy as np
import pandas as pd
import pytest

from pybiomarker.timepoints import WindowTable, assign_timepoints


@pytest.fixture
def window_table():
    """Baseline, two post-exposure windows and an open-ended tail."""
    return WindowTable.from_records([
        (-400, 0, "pre-smoking"),
        (0, 30, "0-30"),
        (30, 70, "31-70"),
        (70, None, "71+"),
    ])


@pytest.fixture
def raw_study():
    """Six subjects (2 per arm), four samples each, no window labels yet.

    Per subject: baseline at -30 min, two samples inside 0-30 (10 and
    20 min; the 20-min one is a duplicate that deduplication drops) and
    one at 45 min.

    thc:  placebo  baseline 0.0, 10 min 0.2, 20 min 5.0, 45 min 0.0
          active   baseline 0.0, 10 min 8.0, 20 min 0.1, 45 min 3.0
    cbn:  missing at baseline, 20 and 45 min;
          10 min is 0.1 (placebo) or 2.0 (active)
    """
    arms = {1: "Placebo", 2: "Placebo", 3: "LowDose", 4: "LowDose",
            5: "HighDose", 6: "HighDose"}
    thc = {
        "Placebo": {-30: 0.0, 10: 0.2, 20: 5.0, 45: 0.0},
        "active": {-30: 0.0, 10: 8.0, 20: 0.1, 45: 3.0},
    }
    cbn = {
        "Placebo": {-30: np.nan, 10: 0.1, 20: np.nan, 45: np.nan},
        "active": {-30: np.nan, 10: 2.0, 20: np.nan, 45: np.nan},
    }
    rows = []
    for subject, arm in arms.items():
        key = "Placebo" if arm == "Placebo" else "active"
        for t in (-30, 10, 20, 45):
            rows.append({
                "id": subject,
                "treatment": arm,
                "group": "frequent" if subject % 2 else "occasional",
                "time_from_start": float(t),
                "thc": thc[key][t],
                "cbn": cbn[key][t],
            })
    return pd.DataFrame(rows)


@pytest.fixture
def study(raw_study, window_table):
    """``raw_study`` with window labels assigned."""
    return assign_timepoints(raw_study, window_table)
