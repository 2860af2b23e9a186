"""
Detection-limit accuracy for exposure biomarkers.

Confusion matrices of a compound at a detection limit within a time
window since exposure, the sensitivity/specificity/predictive values and
Youden index derived from them, sweeps over compounds x cutoffs x
windows, and selection of the best detection limit.
"""

from pybiomarker.diagnostic._common import ConfusionMatrix, MetricsRecord, BestCutoff
from pybiomarker.diagnostic._confusion import (
    LabelingRule,
    confusion_matrix,
    labeling_rule,
)
from pybiomarker.diagnostic._metrics import error_metrics, combine_matrices
from pybiomarker.diagnostic._sweep import (
    RESULT_COLUMNS,
    candidate_cutoffs,
    results_frame,
    sweep,
    window_slice,
)
from pybiomarker.diagnostic._ranking import best_combination, best_cutoff, mean_youden

__all__ = [
    "ConfusionMatrix",
    "MetricsRecord",
    "BestCutoff",
    "LabelingRule",
    "RESULT_COLUMNS",
    "confusion_matrix",
    "labeling_rule",
    "error_metrics",
    "combine_matrices",
    "candidate_cutoffs",
    "results_frame",
    "sweep",
    "window_slice",
    "mean_youden",
    "best_cutoff",
    "best_combination",
]
