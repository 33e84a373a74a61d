"""
Generalized Additive Model Learner for SWIFT spatial prediction

Binomial additive model with penalized regression splines: every feature
with enough distinct values gets a cubic B-spline basis, the rest enter
linearly, and all coefficients share a ridge penalty (1 / C = alpha).
Proportions are fitted through binomially expanded rows.
"""
import numpy as np
import pandas as pd
from typing import Dict, Optional
from sklearn.compose import ColumnTransformer
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import SplineTransformer, StandardScaler

from ..base import BaseLearner, expand_binomial, weighted_mean


class GAMLearner(BaseLearner):
    """Additive logistic model with penalized B-spline smooths."""

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(name="gam", config=config)

        self.n_knots = int(self.config.get('df', 5))
        self.degree = int(self.config.get('degree', 3))
        self.alpha = float(self.config.get('alpha', 1.0))
        self.max_iter = int(self.config.get('max_iter', 5000))
        if self.n_knots < 2:
            raise ValueError(f"df must be >= 2, got {self.n_knots}")
        if self.alpha <= 0:
            raise ValueError(f"alpha must be positive, got {self.alpha}")

        self.smooth_idx_ = None
        self.linear_idx_ = None
        self.pipeline_ = None
        self.mean_ = None

    def _build_pipeline(self) -> Pipeline:
        transformers = []
        if len(self.smooth_idx_):
            transformers.append((
                'smooth',
                SplineTransformer(n_knots=self.n_knots, degree=self.degree, extrapolation='linear'),
                list(self.smooth_idx_),
            ))
        if len(self.linear_idx_):
            transformers.append(('linear', StandardScaler(), list(self.linear_idx_)))

        return Pipeline([
            ('basis', ColumnTransformer(transformers, remainder='drop')),
            ('logistic', LogisticRegression(C=1.0 / self.alpha, max_iter=self.max_iter)),
        ])

    def fit(self, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray] = None) -> 'GAMLearner':
        """Fit penalized additive logistic model."""
        y = np.asarray(y, dtype=float)
        w = self._weights(y, weights)
        Xd = self._design(X, fit=True)
        self.mean_ = weighted_mean(y, w)

        n_unique = np.array([len(np.unique(Xd[:, j])) for j in range(Xd.shape[1])], dtype=int)
        self.smooth_idx_ = np.where(n_unique > self.n_knots)[0]
        self.linear_idx_ = np.where((n_unique > 1) & (n_unique <= self.n_knots))[0]

        if len(self.smooth_idx_) + len(self.linear_idx_) == 0:
            self.pipeline_ = None
            self.is_fitted = True
            return self

        X_long, y_long, w_long = expand_binomial(Xd, y, w)
        self.pipeline_ = self._build_pipeline()
        self.pipeline_.fit(X_long, y_long, logistic__sample_weight=w_long)
        self.is_fitted = True
        return self

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predict prevalence."""
        self._check_fitted()
        Xd = self._design(X)
        if self.pipeline_ is None:
            return np.full(len(X), self.mean_)
        return self.pipeline_.predict_proba(Xd)[:, 1]
