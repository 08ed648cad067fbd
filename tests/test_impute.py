import logging

import numpy as np
import pandas as pd
import pytest
from pandas.api.types import is_numeric_dtype

from loan_threshold.errors import ExcessMissingnessError, SchemaError
from loan_threshold.impute import impute_missing, missing_report


def test_missing_report_orders_by_rate(cleaned_loans):
    report = missing_report(cleaned_loans)
    assert report.iloc[0] == report.max()
    assert report["response"] == 0


def test_impute_fills_every_predictor(cleaned_loans):
    assert cleaned_loans.isna().any().any()
    imputed = impute_missing(cleaned_loans, random_state=0)
    assert not imputed.isna().any().any()
    assert imputed.shape == cleaned_loans.shape


def test_impute_keeps_observed_values(cleaned_loans):
    imputed = impute_missing(cleaned_loans, random_state=0)
    for col in ["revolRatio", "bcOpen", "length"]:
        observed = cleaned_loans[col].notna()
        assert (imputed.loc[observed, col] == cleaned_loans.loc[observed, col]).all()


def test_impute_preserves_column_types(cleaned_loans):
    imputed = impute_missing(cleaned_loans, random_state=0)

    assert is_numeric_dtype(imputed["bcRatio"])
    assert not is_numeric_dtype(imputed["length"])
    assert set(imputed["length"]) <= set(cleaned_loans["length"].dropna())


def test_impute_stays_in_observed_range(cleaned_loans):
    imputed = impute_missing(cleaned_loans, random_state=0)
    assert imputed["bcOpen"].min() >= cleaned_loans["bcOpen"].min()
    assert imputed["bcOpen"].max() <= cleaned_loans["bcOpen"].max()


def test_impute_is_deterministic_given_seed(cleaned_loans):
    first = impute_missing(cleaned_loans, random_state=3)
    second = impute_missing(cleaned_loans, random_state=3)
    pd.testing.assert_frame_equal(first, second)


def test_impute_without_missing_values_returns_copy(cleaned_loans):
    complete = cleaned_loans.dropna()
    imputed = impute_missing(complete)
    pd.testing.assert_frame_equal(imputed, complete)
    assert imputed is not complete


def test_impute_rejects_excess_missingness(cleaned_loans):
    df = cleaned_loans.copy()
    df.loc[df.index[: len(df) // 3], "revolRatio"] = np.nan

    with pytest.raises(ExcessMissingnessError) as exc_info:
        impute_missing(df, max_missing_rate=0.10)
    assert "revolRatio" in exc_info.value.rates


def test_impute_warns_above_low_missingness(cleaned_loans, caplog):
    df = cleaned_loans.copy()
    df.loc[df.index[: int(0.07 * len(df))], "revolRatio"] = np.nan

    with caplog.at_level(logging.WARNING, logger="loan_threshold.impute"):
        imputed = impute_missing(df, max_missing_rate=0.10)

    assert "revolRatio" in caplog.text
    assert not imputed["revolRatio"].isna().any()


def test_impute_never_fills_held_out_columns(cleaned_loans):
    df = cleaned_loans.copy()
    df.loc[df.index[0], "totalPaid"] = np.nan
    with pytest.raises(SchemaError, match="totalPaid"):
        impute_missing(df)


def test_imputed_levels_follow_observed_frequencies(large_cleaned_loans):
    # No other column carries information about length, so the draws should
    # match its marginal distribution rather than any ordering of the labels
    rng = np.random.default_rng(1)
    df = large_cleaned_loans.copy()
    df["length"] = rng.choice(["0-3 years", "4-6 years", "10+ years"], len(df), p=[0.45, 0.45, 0.10])
    missing = rng.random(len(df)) < 0.04
    df.loc[missing, "length"] = np.nan

    imputed = impute_missing(df, random_state=0)
    shares = imputed.loc[missing, "length"].value_counts(normalize=True)

    assert shares.get("10+ years", 0) < 0.25
    assert 0.25 < shares.get("0-3 years", 0) < 0.65
    assert 0.25 < shares.get("4-6 years", 0) < 0.65


def test_imputed_levels_condition_on_other_columns(cleaned_loans):
    rng = np.random.default_rng(2)
    by_home = {"MORTGAGE": "10+ years", "OWN": "4-6 years", "RENT": "0-3 years"}
    df = cleaned_loans.copy()
    df["length"] = df["home"].map(by_home)
    missing = rng.random(len(df)) < 0.04
    df.loc[missing, "length"] = np.nan

    imputed = impute_missing(df, random_state=0)
    expected = df.loc[missing, "home"].map(by_home)
    assert (imputed.loc[missing, "length"] == expected).mean() > 0.8


def test_imputed_counts_are_whole_numbers(cleaned_loans):
    df = cleaned_loans.copy()
    missing = np.zeros(len(df), dtype=bool)
    missing[::30] = True
    df.loc[missing, ["delinq2yr", "openAcc"]] = np.nan

    imputed = impute_missing(df, random_state=0)
    for col in ["delinq2yr", "openAcc"]:
        values = imputed.loc[missing, col]
        assert (values == values.round()).all()
        assert values.min() >= 0
