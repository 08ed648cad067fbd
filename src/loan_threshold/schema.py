"""
Column roles, vocabularies and recoding tables for the loans50k extract.

Every categorical recode is an explicit old value -> bucket table. Values
that are not keys of the table are rejected by ``process_data`` rather than
passed through, so a new category in the source file stops the run.
"""
import pandas as pd

LABEL_COL = "response"
STATUS_COL = "status"
PROFIT_COL = "totalPaid"
PRINCIPAL_COL = "amount"

POSITIVE_LABEL = "Good"
NEGATIVE_LABEL = "Bad"

STATUS_LABELS = {
    "Fully Paid": POSITIVE_LABEL,
    "Charged Off": NEGATIVE_LABEL,
}
# Recognised but not terminal: these rows are excluded from modelling
EXCLUDED_STATUSES = {
    "Current",
    "Default",
    "In Grace Period",
    "Late (16-30 days)",
    "Late (31-120 days)",
}

TERM_VALUES = {"36 months", "60 months"}
GRADE_VALUES = {"A", "B", "C", "D", "E", "F", "G"}
HOME_VALUES = {"MORTGAGE", "OWN", "RENT"}

LENGTH_MISSING = "n/a"
LENGTH_BUCKETS = {
    "< 1 year": "0-3 years",
    "1 year": "0-3 years",
    "2 years": "0-3 years",
    "3 years": "0-3 years",
    "4 years": "4-6 years",
    "5 years": "4-6 years",
    "6 years": "4-6 years",
    "7 years": "7-9 years",
    "8 years": "7-9 years",
    "9 years": "7-9 years",
    "10+ years": "10+ years",
}

VERIFIED_BUCKETS = {
    "Not Verified": "Not Verified",
    "Source Verified": "Verified",
    "Verified": "Verified",
}

REASON_BUCKETS = {
    "credit_card": "credit_card",
    "debt_consolidation": "debt_consolidation",
    "home_improvement": "home_improvement",
    "major_purchase": "major_purchase",
    "car": "other",
    "educational": "other",
    "house": "other",
    "medical": "other",
    "moving": "other",
    "other": "other",
    "renewable_energy": "other",
    "small_business": "other",
    "vacation": "other",
    "wedding": "other",
}

# US Census Bureau regions
_REGION_STATES = {
    "Northeast": ["CT", "ME", "MA", "NH", "RI", "VT", "NJ", "NY", "PA"],
    "Midwest": ["IL", "IN", "MI", "OH", "WI", "IA", "KS", "MN", "MO", "NE", "ND", "SD"],
    "South": [
        "DE", "DC", "FL", "GA", "MD", "NC", "SC", "VA", "WV",
        "AL", "KY", "MS", "TN", "AR", "LA", "OK", "TX",
    ],
    "West": ["AZ", "CO", "ID", "MT", "NV", "NM", "UT", "WY", "AK", "CA", "HI", "OR", "WA"],
}
STATE_REGIONS = {
    state: region for region, states in _REGION_STATES.items() for state in states
}

# column -> (bucket table, name of the recoded column)
RECODE_TABLES = {
    "length": (LENGTH_BUCKETS, "length"),
    "verified": (VERIFIED_BUCKETS, "verified"),
    "reason": (REASON_BUCKETS, "reason"),
    "state": (STATE_REGIONS, "region"),
}

VOCABULARIES = {
    "term": TERM_VALUES,
    "grade": GRADE_VALUES,
    "home": HOME_VALUES,
    "status": set(STATUS_LABELS) | EXCLUDED_STATUSES,
    "length": set(LENGTH_BUCKETS) | {LENGTH_MISSING},
    "verified": set(VERIFIED_BUCKETS),
    "reason": set(REASON_BUCKETS),
    "state": set(STATE_REGIONS),
}

CATEGORICAL_COLS = ["term", "grade", "length", "home", "verified", "status", "reason", "state"]

NUMERIC_COLS = [
    "amount",
    "rate",
    "income",
    "debtIncRat",
    "delinq2yr",
    "inq6mth",
    "openAcc",
    "pubRec",
    "revolRatio",
    "totalAcc",
    "totalPaid",
    "totalBal",
    "totalRevLim",
    "accOpen24",
    "avgBal",
    "bcOpen",
    "bcRatio",
    "totalLim",
    "totalRevBal",
    "totalBcLim",
    "totalIlLim",
]

REQUIRED_COLS = CATEGORICAL_COLS + NUMERIC_COLS

# Identifier, free-text job title, and the instalment (a function of amount, rate and term)
DROP_COLS = ["loanID", "employment", "payment"]

LOG10_COLS = ["amount"]
LOG10_PLUS_ONE_COLS = [
    "income",
    "totalBal",
    "totalRevLim",
    "avgBal",
    "bcOpen",
    "totalLim",
    "totalRevBal",
    "totalBcLim",
    "totalIlLim",
]
CUBE_ROOT_COLS = ["delinq2yr", "inq6mth", "pubRec"]

# Whole-number counts; imputed draws are rounded
COUNT_COLS = ["delinq2yr", "inq6mth", "openAcc", "pubRec", "totalAcc", "accOpen24"]

# Never imputed and never used as predictors
NON_PREDICTOR_COLS = [LABEL_COL, PROFIT_COL]


def get_expected_schema() -> pd.DataFrame:
    """
    Return a DataFrame describing the required raw columns, for display or
    for checking a new extract by eye.
    """
    rows = []
    for col in CATEGORICAL_COLS:
        values = sorted(VOCABULARIES[col])
        shown = ", ".join(values[:6]) + (", ..." if len(values) > 6 else "")
        rows.append({"Column": col, "Type": "categorical", "Notes": f"One of: {shown}"})
    for col in NUMERIC_COLS:
        if col in LOG10_COLS:
            note = "log10 transform"
        elif col in LOG10_PLUS_ONE_COLS:
            note = "log10(x + 1) transform"
        elif col in CUBE_ROOT_COLS:
            note = "cube root transform"
        elif col == PROFIT_COL:
            note = "realised repayment, used for profit only"
        else:
            note = ""
        rows.append({"Column": col, "Type": "numeric", "Notes": note})
    return pd.DataFrame(rows, columns=["Column", "Type", "Notes"])
