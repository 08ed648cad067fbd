from .thresholds import best_threshold, evaluate_thresholds, sweep_thresholds
from .summary import score_metrics, threshold_summary, write_outputs

__all__ = [
    'best_threshold',
    'evaluate_thresholds',
    'sweep_thresholds',
    'score_metrics',
    'threshold_summary',
    'write_outputs',
]
