"""
Time-window assignment and per-window deduplication.

Maps elapsed time since exposure start to named windows and reduces the
dataset to one record per subject and window before any counting.
"""

from pybiomarker.timepoints._common import StudyDesign, TimeWindow, WindowTable
from pybiomarker.timepoints._assign import assign_timepoint, assign_timepoints
from pybiomarker.timepoints._dedup import drop_duplicates

__all__ = [
    "StudyDesign",
    "TimeWindow",
    "WindowTable",
    "assign_timepoint",
    "assign_timepoints",
    "drop_duplicates",
]
