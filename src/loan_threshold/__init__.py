from .errors import (
    ExcessMissingnessError,
    LoanDataError,
    ModelFitError,
    NoScoresError,
    SchemaError,
)
from .models import LoanClassifier
from .pipeline import run_pipeline

__all__ = [
    'ExcessMissingnessError',
    'LoanClassifier',
    'LoanDataError',
    'ModelFitError',
    'NoScoresError',
    'SchemaError',
    'run_pipeline',
]
