import logging
from pathlib import Path

import numpy as np
import pandas as pd
from scipy.stats import ks_2samp
from sklearn.metrics import brier_score_loss, log_loss, roc_auc_score

from ..config import OUTPUT_DIR
from .thresholds import best_threshold

logger = logging.getLogger(__name__)


def gini_coefficient(y_true, y_scores):
    auc = roc_auc_score(y_true, y_scores)
    return 2 * auc - 1


def ks_statistic(y_true, y_scores):
    y_true = np.asarray(y_true)
    y_scores = np.asarray(y_scores)
    return ks_2samp(y_scores[y_true == 0], y_scores[y_true == 1]).statistic


def score_metrics(y_true, y_prob) -> dict:
    """
    Threshold-free ranking and calibration metrics of the test scores.
    y_true is 1 for repaid loans.
    """
    y_true = np.asarray(y_true, dtype=int)
    y_prob = np.asarray(y_prob, dtype=float)
    return {
        "AUC": roc_auc_score(y_true, y_prob),
        "GINI": gini_coefficient(y_true, y_prob),
        "KS": ks_statistic(y_true, y_prob),
        "Brier": brier_score_loss(y_true, y_prob),
        "LogLoss": log_loss(y_true, y_prob, labels=[0, 1]),
    }


def threshold_summary(sweep: pd.DataFrame, reference: pd.DataFrame = None) -> pd.DataFrame:
    """
    One row per reported threshold: the accuracy optimum, the profit optimum
    and any reference thresholds (e.g. 0.5), indexed by a short label.
    """
    rows = {
        "Best accuracy": best_threshold(sweep, "accuracy"),
        "Best profit": best_threshold(sweep, "profit"),
    }
    if reference is not None:
        for _, row in reference.iterrows():
            rows[f"Threshold {row['threshold']:g}"] = row
    summary = pd.DataFrame(rows).T
    summary.index.name = "Criterion"
    dtypes = {col: int for col in ["approved", "tp", "fp", "tn", "fn"]}
    dtypes.update({col: float for col in ["threshold", "accuracy", "profit"]})
    return summary.astype(dtypes)


def summary_markdown(summary: pd.DataFrame, metrics: dict) -> str:
    lines = ["# Threshold Summary\n\n"]
    lines.append("| Criterion | Threshold | Accuracy | Profit | Approved |\n")
    lines.append("|---|---|---|---|---|\n")
    for idx, row in summary.iterrows():
        lines.append(
            f"| {idx} | {row['threshold']:.4f} | {row['accuracy']:.4f} | "
            f"{row['profit']:,.2f} | {int(row['approved'])} |\n"
        )

    if metrics:
        lines.append("\n# Score Metrics\n\n")
        lines.append("| " + " | ".join(metrics) + " |\n")
        lines.append("|" + "---|" * len(metrics) + "\n")
        lines.append("| " + " | ".join(f"{value:.3f}" for value in metrics.values()) + " |\n")

    lines.append("\n# Confusion Matrices\n")
    for idx, row in summary.iterrows():
        lines.append(f"\n## {idx}\n\n")
        lines.append("|       | Pred Bad | Pred Good |\n")
        lines.append("|-------|--------|--------|\n")
        lines.append(f"| Actual Bad | {int(row['tn'])} | {int(row['fp'])} |\n")
        lines.append(f"| Actual Good | {int(row['fn'])} | {int(row['tp'])} |\n")
    return "".join(lines)


def write_outputs(results: dict, output_dir=OUTPUT_DIR) -> Path:
    """
    Write predictions, the sweep, coefficients and the summary tables.
    Returns the output directory.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(exist_ok=True, parents=True)

    scores = results["scores"]
    scores.to_csv(output_dir / "test_preds.csv", index=False)
    results["sweep"].to_csv(output_dir / "threshold_sweep.csv", index=False)
    results["model"].coefficients().to_csv(output_dir / "log_reg_coefs.csv", index=False)
    results["summary"].to_csv(output_dir / "threshold_summary.csv")

    md_file = output_dir / "threshold_summary.md"
    md_file.write_text(summary_markdown(results["summary"], results["metrics"]))
    logger.info("Wrote threshold summary and predictions to %s", output_dir)
    return output_dir
