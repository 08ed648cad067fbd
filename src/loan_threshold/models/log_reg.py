import logging
import warnings

import joblib
import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype
from sklearn.compose import ColumnTransformer
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from ..config import MAX_ITER, MODEL_PATH
from ..errors import ModelFitError
from ..schema import LABEL_COL, NON_PREDICTOR_COLS, POSITIVE_LABEL

logger = logging.getLogger(__name__)


def split_features(df: pd.DataFrame):
    """
    Predictor columns of a cleaned frame, as (numeric, categorical) lists.
    Everything except the response and the realised repayment is a predictor.
    """
    predictors = [col for col in df.columns if col not in NON_PREDICTOR_COLS]
    numeric = [col for col in predictors if is_numeric_dtype(df[col])]
    categorical = [col for col in predictors if col not in numeric]
    return numeric, categorical


def _rank_deficient_columns(design: np.ndarray, names) -> list:
    """Columns that add nothing to the rank of [intercept | design]."""
    basis = np.ones((design.shape[0], 1))
    rank = 1
    dependent = []
    for i, name in enumerate(names):
        candidate = np.column_stack([basis, design[:, i]])
        new_rank = np.linalg.matrix_rank(candidate)
        if new_rank > rank:
            basis, rank = candidate, new_rank
        else:
            dependent.append(name)
    return dependent


class LoanClassifier:
    """
    Unpenalised binomial logistic regression of P(Good) on every retained
    predictor. Numeric predictors are standardised and categorical ones are
    dummy coded against their first level, which leaves fitted probabilities
    identical to a fit on the raw design.
    """

    def __init__(self, max_iter: int = MAX_ITER):
        self.max_iter = max_iter
        self.preprocessor = None
        self.classifier = None
        self.numeric_features = None
        self.categorical_features = None

    def _build_preprocessor(self) -> ColumnTransformer:
        transformers = []
        if self.numeric_features:
            transformers.append(("num", StandardScaler(), self.numeric_features))
        if self.categorical_features:
            transformers.append((
                "cat",
                OneHotEncoder(drop="first", handle_unknown="error", sparse_output=False),
                self.categorical_features,
            ))
        return ColumnTransformer(transformers=transformers, remainder="drop")

    def _predictors(self, df: pd.DataFrame) -> pd.DataFrame:
        features = self.numeric_features + self.categorical_features
        missing = [col for col in features if col not in df.columns]
        if missing:
            raise ModelFitError(f"Missing predictor columns: {missing}")
        X = df[features]
        incomplete = X.columns[X.isna().any()].tolist()
        if incomplete:
            raise ModelFitError(f"Predictors have missing values, impute first: {incomplete}")
        return X

    def fit(self, train: pd.DataFrame) -> "LoanClassifier":
        """
        Fit on a cleaned, imputed and transformed training frame.

        Raises ModelFitError when the response has a single class, when the
        design matrix is rank deficient, or when the solver does not converge.
        """
        if LABEL_COL not in train.columns:
            raise ModelFitError(f"Training data has no '{LABEL_COL}' column")
        y = (train[LABEL_COL] == POSITIVE_LABEL).astype(int)
        if y.nunique() < 2:
            raise ModelFitError("Training data contains a single response class")

        self.numeric_features, self.categorical_features = split_features(train)
        X = self._predictors(train)

        preprocessor = self._build_preprocessor()
        design = preprocessor.fit_transform(X)
        names = list(preprocessor.get_feature_names_out())

        dependent = _rank_deficient_columns(design, names)
        if dependent:
            raise ModelFitError(
                f"Design matrix is rank deficient; collinear or constant predictors: {dependent}"
            )

        classifier = LogisticRegression(C=np.inf, max_iter=self.max_iter)
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConvergenceWarning)
            try:
                classifier.fit(design, y)
            except ConvergenceWarning as e:
                raise ModelFitError(f"Logistic regression did not converge: {e}") from e

        self.preprocessor = preprocessor
        self.classifier = classifier
        logger.info(
            "Fitted logistic regression on %d loans, %d design columns, %d iterations",
            len(train), design.shape[1], int(np.max(classifier.n_iter_)),
        )
        return self

    def _check_levels(self, X: pd.DataFrame):
        if not self.categorical_features:
            return
        encoder = self.preprocessor.named_transformers_["cat"]
        unseen = {}
        for col, levels in zip(self.categorical_features, encoder.categories_):
            extra = sorted(set(X[col].unique()) - set(levels))
            if extra:
                unseen[col] = extra
        if unseen:
            raise ModelFitError(f"Categorical levels not seen in training: {unseen}")

    def predict_probability(self, df: pd.DataFrame) -> np.ndarray:
        """
        Probability that each loan is repaid in full (the Good class).
        """
        if self.classifier is None:
            raise ModelFitError("Model has not been fitted")
        X = self._predictors(df)
        self._check_levels(X)
        design = self.preprocessor.transform(X)
        return self.classifier.predict_proba(design)[:, 1]

    def coefficients(self) -> pd.DataFrame:
        if self.classifier is None:
            raise ModelFitError("Model has not been fitted")
        features = ["intercept"] + list(self.preprocessor.get_feature_names_out())
        coefs = np.concatenate([self.classifier.intercept_, self.classifier.coef_[0]])
        return pd.DataFrame({"Feature": features, "Coefficient": coefs})

    def save(self, path=MODEL_PATH):
        artifacts = {
            "preprocessor": self.preprocessor,
            "classifier": self.classifier,
            "numeric_features": self.numeric_features,
            "categorical_features": self.categorical_features,
            "max_iter": self.max_iter,
        }
        joblib.dump(artifacts, path)
        logger.info("Saved model to %s", path)

    @classmethod
    def load(cls, path=MODEL_PATH) -> "LoanClassifier":
        try:
            artifacts = joblib.load(path)
            model = cls(max_iter=artifacts["max_iter"])
            model.preprocessor = artifacts["preprocessor"]
            model.classifier = artifacts["classifier"]
            model.numeric_features = artifacts["numeric_features"]
            model.categorical_features = artifacts["categorical_features"]
        except Exception as e:
            raise ModelFitError(f"Failed to load model: {e}") from e
        return model
