import logging

import pandas as pd

from .analysis.summary import score_metrics, threshold_summary
from .analysis.thresholds import evaluate_thresholds, fixed_grid, loan_profit, sweep_thresholds
from .config import (
    GRID_POINTS,
    MAX_ITER,
    MAX_MISSING_RATE,
    RANDOM_STATE,
    REFERENCE_THRESHOLDS,
    TEST_SIZE,
)
from .impute import impute_missing
from .models.log_reg import LoanClassifier
from .process_data import clean, make_train_test, transform_numeric
from .schema import LABEL_COL, POSITIVE_LABEL

logger = logging.getLogger(__name__)


def run_pipeline(raw: pd.DataFrame,
                 random_state: int = RANDOM_STATE,
                 test_size: float = TEST_SIZE,
                 max_missing_rate: float = MAX_MISSING_RATE,
                 grid_points=GRID_POINTS,
                 reference_thresholds=REFERENCE_THRESHOLDS,
                 max_iter: int = MAX_ITER) -> dict:
    """
    Clean -> impute -> transform -> split -> fit -> score -> sweep.

    Each stage returns a new frame; nothing is edited in place. Profit is
    taken from the imputed frame before the dollar columns are transformed.

    Returns
    -------
    dict with keys: cleaned, train, test, model, scores, sweep, summary, metrics
    """
    cleaned = clean(raw)
    imputed = impute_missing(cleaned, random_state=random_state, max_missing_rate=max_missing_rate)
    profit = loan_profit(imputed)
    transformed = transform_numeric(imputed)

    train, test = make_train_test(transformed, test_size=test_size, random_state=random_state)
    model = LoanClassifier(max_iter=max_iter).fit(train)

    y_prob = model.predict_probability(test)
    scores = pd.DataFrame({
        "y_true": (test[LABEL_COL] == POSITIVE_LABEL).astype(int),
        "y_pred_prob": y_prob,
        "profit": profit.loc[test.index],
    }, index=test.index)

    thresholds = None if grid_points is None else fixed_grid(grid_points)
    sweep = sweep_thresholds(scores["y_true"], scores["y_pred_prob"], scores["profit"], thresholds)

    reference = None
    if reference_thresholds:
        reference = evaluate_thresholds(
            scores["y_true"], scores["y_pred_prob"], scores["profit"], reference_thresholds
        )
    summary = threshold_summary(sweep, reference)

    if scores["y_true"].nunique() == 2:
        metrics = score_metrics(scores["y_true"], scores["y_pred_prob"])
    else:
        logger.warning("Test partition has a single response class; skipping score metrics")
        metrics = {}

    best_acc = summary.loc["Best accuracy"]
    best_profit = summary.loc["Best profit"]
    logger.info("Best accuracy %.4f at threshold %.4f", best_acc["accuracy"], best_acc["threshold"])
    logger.info("Best profit %.2f at threshold %.4f", best_profit["profit"], best_profit["threshold"])

    return {
        "cleaned": cleaned,
        "train": train,
        "test": test,
        "model": model,
        "scores": scores,
        "sweep": sweep,
        "summary": summary,
        "metrics": metrics,
    }
