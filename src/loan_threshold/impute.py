import logging

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype
from sklearn.linear_model import BayesianRidge, LogisticRegression

from .config import IMPUTE_MAX_ITER, LOW_MISSING_RATE, MAX_MISSING_RATE, RANDOM_STATE
from .errors import ExcessMissingnessError, SchemaError
from .schema import COUNT_COLS, NON_PREDICTOR_COLS

logger = logging.getLogger(__name__)


def missing_report(df: pd.DataFrame) -> pd.Series:
    """Fraction of missing values per column, largest first."""
    return df.isna().mean().sort_values(ascending=False)


def _design(current: pd.DataFrame, target: str, categorical) -> np.ndarray:
    """
    Conditioning matrix for one column: the other numeric columns standardised,
    the other categorical columns one-hot encoded (first level dropped).
    """
    others = current.drop(columns=target)
    numeric = [col for col in others.columns if col not in categorical]
    scaled = others[numeric].astype(float)
    std = scaled.std().replace(0, 1).fillna(1)
    scaled = (scaled - scaled.mean()) / std
    dummies = pd.get_dummies(
        others[[col for col in others.columns if col in categorical]],
        drop_first=True,
        dtype=float,
    )
    return pd.concat([scaled, dummies], axis=1).to_numpy()


def _draw_levels(probs: np.ndarray, classes: np.ndarray, rng) -> np.ndarray:
    """Sample one level per row from the class probabilities."""
    cumulative = probs.cumsum(axis=1)
    u = rng.random(len(probs))[:, None]
    idx = np.minimum((u > cumulative).sum(axis=1), len(classes) - 1)
    return classes[idx]


def _impute_numeric(X, y, missing, bounds, rng, count=False):
    model = BayesianRidge().fit(X[~missing], y[~missing])
    mu, sigma = model.predict(X[missing], return_std=True)
    draws = rng.normal(mu, sigma)
    if count:
        draws = np.round(draws)
    return np.clip(draws, *bounds)


def _impute_categorical(X, y, missing, rng):
    observed = y[~missing]
    classes = np.unique(observed)
    if len(classes) == 1:
        return np.repeat(classes, missing.sum())
    model = LogisticRegression(max_iter=1000).fit(X[~missing], observed)
    return _draw_levels(model.predict_proba(X[missing]), model.classes_, rng)


def impute_missing(df: pd.DataFrame,
                   random_state: int = RANDOM_STATE,
                   max_missing_rate: float = MAX_MISSING_RATE,
                   max_iter: int = IMPUTE_MAX_ITER) -> pd.DataFrame:
    """
    Fill missing predictor values by chained equations (one posterior draw).

    Columns with missing values are visited in order of increasing missingness,
    max_iter times. Each visit conditions on every other predictor, numeric
    columns standardised and categorical columns one-hot encoded:

      - numeric columns: BayesianRidge, with the draw sampled from the
        predictive normal and clipped to the observed range. Count columns
        are rounded to whole numbers.
      - categorical columns: multinomial LogisticRegression, with the level
        sampled from the predicted class probabilities.

    Missing entries start from the observed mean (numeric) or a draw from the
    observed level frequencies (categorical). Observed values are never
    changed. The response and the realised repayment column are excluded and
    must be complete.

    Raises
    ------
    SchemaError             if a held-out column has missing values
    ExcessMissingnessError  if a predictor's missing rate exceeds max_missing_rate
    """
    held_out = [col for col in NON_PREDICTOR_COLS if col in df.columns]
    held_missing = [col for col in held_out if df[col].isna().any()]
    if held_missing:
        raise SchemaError(f"Columns cannot be imputed and have missing values: {held_missing}")

    features = [col for col in df.columns if col not in held_out]
    rates = df[features].isna().mean()

    too_high = rates[rates > max_missing_rate]
    if not too_high.empty:
        raise ExcessMissingnessError(too_high)
    for col, rate in rates[rates > LOW_MISSING_RATE].items():
        logger.warning("Column %s is %.1f%% missing; imputation quality may degrade", col, 100 * rate)

    to_fill = rates[rates > 0].sort_values(kind="stable").index.tolist()
    if not to_fill:
        logger.info("No missing values to impute")
        return df.copy()

    rng = np.random.default_rng(random_state)
    categorical = {col for col in features if not is_numeric_dtype(df[col])}
    current = df[features].copy()
    masks = {col: df[col].isna().to_numpy() for col in to_fill}
    bounds = {col: (df[col].min(), df[col].max()) for col in to_fill if col not in categorical}

    for col in to_fill:
        missing = masks[col]
        observed = df[col].dropna()
        if col in categorical:
            freq = observed.value_counts(normalize=True)
            start = rng.choice(freq.index.to_numpy(), size=missing.sum(), p=freq.to_numpy())
        else:
            start = observed.mean()
            if col in COUNT_COLS:
                start = np.round(start)
        current.loc[missing, col] = start

    for _ in range(max_iter):
        for col in to_fill:
            X = _design(current, col, categorical)
            y = current[col].to_numpy()
            missing = masks[col]
            if col in categorical:
                draws = _impute_categorical(X, y, missing, rng)
            else:
                draws = _impute_numeric(X, y.astype(float), missing, bounds[col], rng, col in COUNT_COLS)
            current.loc[missing, col] = draws

    out = df.copy()
    for col in to_fill:
        out.loc[masks[col], col] = current.loc[masks[col], col]

    logger.info(
        "Imputed %d missing values across %d columns: %s",
        int(sum(mask.sum() for mask in masks.values())), len(to_fill), to_fill,
    )
    return out
