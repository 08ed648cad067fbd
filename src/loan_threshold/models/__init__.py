from .log_reg import LoanClassifier

__all__ = ['LoanClassifier']
