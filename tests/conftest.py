import numpy as np
import pandas as pd
import pytest

from loan_threshold.impute import impute_missing
from loan_threshold.process_data import clean, transform_numeric
from loan_threshold.schema import REASON_BUCKETS

GRADES = list("ABCDEFG")
LENGTHS = [
    "< 1 year", "1 year", "2 years", "3 years", "4 years", "5 years",
    "6 years", "7 years", "8 years", "9 years", "10+ years",
]
STATES = ["CA", "WA", "NY", "PA", "TX", "FL", "IL", "OH"]
EXCLUDED = ["Current", "In Grace Period", "Late (16-30 days)", "Late (31-120 days)", "Default"]


def make_raw_loans(n=1200, seed=7, missing_rate=0.02):
    """
    Synthetic loans with the loans50k columns. Repayment depends on grade,
    debt-to-income and term so the fitted model has signal to find.
    """
    rng = np.random.default_rng(seed)

    grade = rng.choice(GRADES, n)
    grade_idx = np.array([GRADES.index(g) for g in grade])
    term = rng.choice(["36 months", "60 months"], n)
    amount = rng.integers(1000, 35000, n).astype(float)
    rate = 6 + 3 * grade_idx + rng.normal(0, 1, n)
    debt_inc = rng.uniform(0, 40, n)

    log_odds = 2.2 - 0.35 * grade_idx - 0.02 * debt_inc - 0.4 * (term == "60 months")
    good = rng.random(n) < 1 / (1 + np.exp(-log_odds))
    terminal = rng.random(n) < 0.85
    status = np.where(
        terminal,
        np.where(good, "Fully Paid", "Charged Off"),
        rng.choice(EXCLUDED, n),
    )
    paid_ratio = np.where(
        ~terminal,
        rng.uniform(0.2, 0.8, n),
        np.where(good, rng.uniform(1.05, 1.35, n), rng.uniform(0.05, 0.9, n)),
    )

    total_rev_lim = rng.lognormal(10, 0.8, n).round()
    total_il_lim = rng.lognormal(10, 1.0, n).round()

    df = pd.DataFrame({
        "loanID": np.arange(n),
        "amount": amount,
        "term": term,
        "rate": rate.round(2),
        "payment": (amount / 36).round(2),
        "grade": grade,
        "employment": rng.choice(["Teacher", "Nurse", "Engineer", "Driver", "Manager"], n),
        "length": rng.choice(LENGTHS, n),
        "home": rng.choice(["MORTGAGE", "OWN", "RENT"], n),
        "income": rng.lognormal(11, 0.5, n).round(),
        "verified": rng.choice(["Not Verified", "Source Verified", "Verified"], n),
        "status": status,
        "reason": rng.choice(list(REASON_BUCKETS), n),
        "state": rng.choice(STATES, n),
        "debtIncRat": debt_inc.round(2),
        "delinq2yr": rng.poisson(0.3, n).astype(float),
        "inq6mth": rng.poisson(1.0, n).astype(float),
        "openAcc": rng.poisson(10, n).astype(float),
        "pubRec": rng.poisson(0.2, n).astype(float),
        "revolRatio": rng.uniform(0, 1, n).round(3),
        "totalAcc": rng.poisson(25, n).astype(float),
        "totalPaid": (amount * paid_ratio).round(2),
        "totalBal": rng.lognormal(11, 1.0, n).round(),
        "totalRevLim": total_rev_lim,
        "accOpen24": rng.poisson(4, n).astype(float),
        "avgBal": rng.lognormal(9, 1.0, n).round(),
        "bcOpen": rng.lognormal(8, 1.2, n).round(),
        "bcRatio": rng.uniform(0, 100, n).round(1),
        "totalLim": (total_rev_lim + total_il_lim + rng.lognormal(9, 1.0, n)).round(),
        "totalRevBal": rng.lognormal(9.5, 1.0, n).round(),
        "totalBcLim": rng.lognormal(9.5, 0.9, n).round(),
        "totalIlLim": total_il_lim,
    })

    for col in ["revolRatio", "bcOpen", "bcRatio"]:
        df.loc[rng.random(n) < missing_rate, col] = np.nan
    df["length"] = df["length"].mask(rng.random(n) < missing_rate, "n/a")
    return df


@pytest.fixture
def raw_loans():
    return make_raw_loans()


@pytest.fixture
def cleaned_loans(raw_loans):
    return clean(raw_loans)


@pytest.fixture
def model_frame(cleaned_loans):
    return transform_numeric(impute_missing(cleaned_loans, random_state=0))


@pytest.fixture
def large_cleaned_loans():
    return clean(make_raw_loans(n=4000, seed=11))
