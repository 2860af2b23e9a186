"""
PyBiomarker: detection-limit accuracy of exposure biomarkers.

Ranks which compound, biological matrix and detection limit best
separate recent exposure from no exposure, window by window after
exposure start: time-window assignment, per-window deduplication,
confusion matrices under the baseline-aware labeling policy, and
sensitivity/specificity/Youden-index sweeps.

Usage:
    from pybiomarker import timepoints, diagnostic
"""

__version__ = "0.1.0"

from pybiomarker import timepoints
from pybiomarker import diagnostic
from pybiomarker.config import StudyConfig, load_study_config
from pybiomarker.pipeline import StudyResult, run_study

__all__ = [
    "__version__",
    "timepoints",
    "diagnostic",
    "StudyConfig",
    "load_study_config",
    "StudyResult",
    "run_study",
]
