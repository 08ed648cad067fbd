import logging
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from .config import DATA_PATH, RANDOM_STATE, TEST_SIZE
from .errors import SchemaError
from .schema import (
    CATEGORICAL_COLS,
    CUBE_ROOT_COLS,
    DROP_COLS,
    LABEL_COL,
    LENGTH_MISSING,
    LOG10_COLS,
    LOG10_PLUS_ONE_COLS,
    NUMERIC_COLS,
    RECODE_TABLES,
    REQUIRED_COLS,
    STATUS_COL,
    STATUS_LABELS,
    VOCABULARIES,
)

logger = logging.getLogger(__name__)


def load_raw(path=DATA_PATH) -> pd.DataFrame:
    """
    Load the raw loan extract from CSV or Excel.
    """
    path = Path(path)
    try:
        if path.suffix == ".csv":
            df = pd.read_csv(path)
        elif path.suffix in (".xlsx", ".xls"):
            df = pd.read_excel(path)
        else:
            raise ValueError("Only CSV and Excel files supported")
    except (OSError, ValueError) as e:
        raise SchemaError(f"Failed to read {path}: {e}") from e

    logger.info("Loaded %d rows and %d columns from %s", len(df), df.shape[1], path)
    return df


def _unexpected(values: pd.Series, allowed) -> list:
    return sorted(set(values.dropna().unique()) - set(allowed))


def validate_schema(df: pd.DataFrame) -> pd.DataFrame:
    """
    Check required columns and vocabularies, returning a copy with numeric
    columns as numbers and categorical values stripped of whitespace.

    Raises SchemaError on the first column that does not conform.
    """
    missing = [col for col in REQUIRED_COLS if col not in df.columns]
    if missing:
        raise SchemaError(
            f"File is missing required columns: {missing}. "
            f"Required columns are: {REQUIRED_COLS}"
        )

    out = df.copy()

    for col in NUMERIC_COLS:
        converted = pd.to_numeric(out[col], errors="coerce")
        bad = out.loc[converted.isna() & out[col].notna(), col]
        if not bad.empty:
            raise SchemaError(
                f"Column '{col}' has non-numeric values: {sorted(map(str, bad.unique()))[:5]}"
            )
        out[col] = converted

    for col in CATEGORICAL_COLS:
        values = out[col]
        out[col] = values.where(values.isna(), values.astype(str).str.strip())
        unknown = _unexpected(out[col], VOCABULARIES[col])
        if unknown:
            raise SchemaError(f"Column '{col}' has unrecognised values: {unknown}")

    if out[STATUS_COL].isna().any():
        raise SchemaError(f"Column '{STATUS_COL}' has missing values")

    return out


def derive_label(df: pd.DataFrame) -> pd.DataFrame:
    """
    Replace the status column with the Good/Bad response, keeping only
    loans that reached a terminal status.
    """
    unknown = _unexpected(df[STATUS_COL], VOCABULARIES[STATUS_COL])
    if unknown:
        raise SchemaError(f"Column '{STATUS_COL}' has unrecognised values: {unknown}")

    terminal = df[STATUS_COL].isin(list(STATUS_LABELS))
    out = df.loc[terminal].copy()
    out[LABEL_COL] = out[STATUS_COL].map(STATUS_LABELS)
    out = out.drop(columns=STATUS_COL).reset_index(drop=True)

    if out.empty:
        raise SchemaError("No loans with a terminal status (Fully Paid / Charged Off)")

    logger.info("Kept %d of %d loans with a terminal status", len(out), len(df))
    return out


def drop_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.drop(columns=[col for col in DROP_COLS if col in df.columns])


def recode_categories(df: pd.DataFrame) -> pd.DataFrame:
    """
    Collapse categorical columns into their buckets and replace state with
    census region. 'n/a' employment length becomes missing so it is imputed.
    """
    out = df.copy()
    for col, (table, new_col) in RECODE_TABLES.items():
        values = out[col]
        if col == "length":
            values = values.mask(values == LENGTH_MISSING)

        unknown = _unexpected(values, table)
        if unknown:
            raise SchemaError(f"Column '{col}' has values with no bucket: {unknown}")

        recoded = values.map(table)
        if new_col != col:
            out = out.drop(columns=col)
        out[new_col] = recoded
    return out


def _check_domain(series: pd.Series, lower: float, strict: bool):
    below = series <= lower if strict else series < lower
    if below.any():
        bound = f"> {lower}" if strict else f">= {lower}"
        raise SchemaError(
            f"Column '{series.name}' must be {bound} for a log transform; "
            f"found {int(below.sum())} rows outside the domain"
        )


def transform_numeric(df: pd.DataFrame) -> pd.DataFrame:
    """
    Apply the variance-stabilising transforms:
      - log10(x)      for LOG10_COLS (strictly positive)
      - log10(x + 1)  for LOG10_PLUS_ONE_COLS (may be zero)
      - cbrt(x)       for CUBE_ROOT_COLS
    The inverse is inverse_transform_numeric.
    """
    out = df.copy()
    for col in LOG10_COLS:
        _check_domain(out[col], 0, strict=True)
        out[col] = np.log10(out[col])
    for col in LOG10_PLUS_ONE_COLS:
        _check_domain(out[col], 0, strict=False)
        out[col] = np.log10(out[col] + 1)
    for col in CUBE_ROOT_COLS:
        out[col] = np.cbrt(out[col])
    return out


def inverse_transform_numeric(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    for col in LOG10_COLS:
        out[col] = 10 ** out[col]
    for col in LOG10_PLUS_ONE_COLS:
        out[col] = 10 ** out[col] - 1
    for col in CUBE_ROOT_COLS:
        out[col] = out[col] ** 3
    return out


def clean(df: pd.DataFrame) -> pd.DataFrame:
    """
    Validate, label, drop and recode. Imputation and the numeric transforms
    are separate stages, run in that order by the pipeline.
    """
    df = validate_schema(df)
    df = derive_label(df)
    df = drop_columns(df)
    return recode_categories(df)


def make_train_test(df: pd.DataFrame,
                    test_size: float = TEST_SIZE,
                    random_state: int = RANDOM_STATE):
    """
    Uniform random train/test partition of the rows, without replacement.

    Returns
    -------
    train, test : pd.DataFrame  # original index labels are preserved
    """
    train, test = train_test_split(
        df,
        test_size=test_size,
        random_state=random_state,
        shuffle=True,
    )
    logger.info("Partitioned %d loans into %d train / %d test", len(df), len(train), len(test))
    return train, test
