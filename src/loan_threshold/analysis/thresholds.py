"""
Threshold evaluation for the repayment classifier.

A loan is approved (predicted Good) when its probability is >= the
threshold. Accuracy and profit are both step functions of the threshold
that only change at the distinct predicted probabilities, so evaluating
those points (plus one point above the maximum, where nothing is approved)
reproduces the whole curve. Any other set of thresholds, such as the fixed
1000-point grid, is evaluated by the same single pass over sorted scores.

Profit is counted over approved loans only: sum(totalPaid - amount).
Declined loans contribute nothing.
"""
import numpy as np
import pandas as pd

from ..errors import NoScoresError
from ..schema import POSITIVE_LABEL, PRINCIPAL_COL, PROFIT_COL

SWEEP_COLUMNS = ["threshold", "approved", "tp", "fp", "tn", "fn", "accuracy", "profit"]
OBJECTIVES = ("accuracy", "profit")


def loan_profit(df: pd.DataFrame) -> pd.Series:
    """Realised repayment minus principal, in untransformed dollars."""
    return (df[PROFIT_COL] - df[PRINCIPAL_COL]).rename("profit")


def classify(y_prob, threshold: float) -> np.ndarray:
    """Boolean mask of loans predicted Good at this threshold."""
    return np.asarray(y_prob, dtype=float) >= threshold


def exact_thresholds(y_prob) -> np.ndarray:
    y_prob = np.asarray(y_prob, dtype=float)
    if y_prob.size == 0:
        raise NoScoresError("No scored loans to derive thresholds from")
    distinct = np.unique(y_prob)
    return np.append(distinct, np.nextafter(distinct[-1], np.inf))


def fixed_grid(n_points: int = 1000) -> np.ndarray:
    """n equally spaced thresholds covering (0, 1]."""
    if n_points < 1:
        raise ValueError("n_points must be at least 1")
    return np.arange(1, n_points + 1) / n_points


def _as_arrays(y_true, y_prob, profit):
    y_true = np.asarray(y_true)
    if y_true.dtype.kind in "OUS":
        y_true = y_true == POSITIVE_LABEL
    y_true = y_true.astype(int)
    y_prob = np.asarray(y_prob, dtype=float)
    profit = np.asarray(profit, dtype=float)

    if y_prob.size == 0:
        raise NoScoresError("No scored loans to evaluate")
    if not (len(y_true) == len(y_prob) == len(profit)):
        raise ValueError(
            f"Length mismatch: {len(y_true)} labels, {len(y_prob)} scores, {len(profit)} profits"
        )
    if np.isnan(y_prob).any() or (y_prob < 0).any() or (y_prob > 1).any():
        raise ValueError("Predicted probabilities must lie in [0, 1]")
    if np.isnan(profit).any():
        raise ValueError("Profit has missing values")
    return y_true, y_prob, profit


def _suffix_sums(values: np.ndarray) -> np.ndarray:
    # suffix[i] = values[i:].sum(), with suffix[len] == 0 exactly
    return np.concatenate([np.cumsum(values[::-1])[::-1], [0.0]])


def evaluate_thresholds(y_true, y_prob, profit, thresholds) -> pd.DataFrame:
    """
    Confusion counts, accuracy and profit at each threshold.

    Parameters
    ----------
    y_true : array-like  # 1/True or "Good" for repaid loans
    y_prob : array-like  # P(Good) per loan
    profit : array-like  # totalPaid - amount per loan
    thresholds : array-like

    Returns
    -------
    pd.DataFrame with SWEEP_COLUMNS, sorted by threshold
    """
    y_true, y_prob, profit = _as_arrays(y_true, y_prob, profit)
    thresholds = np.sort(np.asarray(thresholds, dtype=float))

    order = np.argsort(y_prob, kind="mergesort")
    sorted_prob = y_prob[order]
    good_suffix = _suffix_sums(y_true[order].astype(float))
    profit_suffix = _suffix_sums(profit[order])

    n = len(y_prob)
    n_good = int(y_true.sum())
    start = np.searchsorted(sorted_prob, thresholds, side="left")

    approved = n - start
    tp = good_suffix[start].round().astype(int)
    fp = approved - tp
    fn = n_good - tp
    tn = (n - n_good) - fp

    return pd.DataFrame({
        "threshold": thresholds,
        "approved": approved,
        "tp": tp,
        "fp": fp,
        "tn": tn,
        "fn": fn,
        "accuracy": (tp + tn) / n,
        "profit": profit_suffix[start],
    }, columns=SWEEP_COLUMNS)


def sweep_thresholds(y_true, y_prob, profit, thresholds=None) -> pd.DataFrame:
    """
    Evaluate every threshold of interest. With thresholds=None the exact
    breakpoints are used; pass fixed_grid() to reproduce a grid search.
    """
    if thresholds is None:
        thresholds = exact_thresholds(y_prob)
    return evaluate_thresholds(y_true, y_prob, profit, thresholds)


def best_threshold(sweep: pd.DataFrame, objective: str) -> pd.Series:
    """
    Row of the sweep maximising the objective. Ties go to the smallest
    threshold.
    """
    if objective not in OBJECTIVES:
        raise ValueError(f"objective must be one of {OBJECTIVES}, got {objective!r}")
    if sweep.empty:
        raise NoScoresError("Threshold sweep is empty")
    ordered = sweep.sort_values("threshold", kind="mergesort")
    best = ordered[objective].max()
    return ordered.loc[ordered[objective] == best].iloc[0]
