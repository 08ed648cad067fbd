class LoanDataError(Exception):
    """Base class for every failure raised by the loan pipeline."""


class SchemaError(LoanDataError, ValueError):
    """A required column is missing or holds a value outside its vocabulary."""


class ExcessMissingnessError(LoanDataError, ValueError):
    """A column has too many missing values to be imputed reliably."""

    def __init__(self, rates):
        self.rates = dict(rates)
        detail = ", ".join(f"{col}={rate:.1%}" for col, rate in self.rates.items())
        super().__init__(f"Missing-value rate too high to impute: {detail}")


class ModelFitError(LoanDataError, RuntimeError):
    """The logistic model could not be fitted or applied."""


class NoScoresError(LoanDataError, ValueError):
    """A threshold sweep was requested on an empty set of scored rows."""
