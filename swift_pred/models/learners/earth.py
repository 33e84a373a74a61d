"""
MARS-style Learner for SWIFT spatial prediction

Multivariate adaptive regression splines for proportions:
1. Piecewise-linear basis per feature (degree-1 B-splines, i.e. hinge
   functions joined at evenly spaced knots)
2. Optional products of basis terms up to `max_degree` (interactions)
3. Lasso-penalized logistic regression on the expanded basis, which keeps
   the few terms that matter in place of MARS backward pruning

Features with too few distinct values for knots enter linearly.
"""
import numpy as np
import pandas as pd
from typing import Dict, Optional
from sklearn.compose import ColumnTransformer
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import PolynomialFeatures, SplineTransformer, StandardScaler

from ..base import BaseLearner, expand_binomial, weighted_mean


class EarthLearner(BaseLearner):
    """Hinge-basis logistic regression with lasso term selection."""

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(name="earth", config=config)

        cfg = self.config
        self.n_knots = int(cfg.get('n_knots', 5))
        self.max_degree = int(cfg.get('max_degree', 1))
        self.C = float(cfg.get('C', 1.0))
        self.max_iter = int(cfg.get('max_iter', 5000))
        self.random_state = cfg.get('random_state', 42)
        if self.n_knots < 2:
            raise ValueError(f"n_knots must be >= 2, got {self.n_knots}")
        if self.max_degree not in (1, 2):
            raise ValueError(f"max_degree must be 1 or 2, got {self.max_degree}")

        self.hinge_idx_ = None
        self.linear_idx_ = None
        self.pipeline_ = None
        self.mean_ = None

    def _build_pipeline(self) -> Pipeline:
        transformers = []
        if len(self.hinge_idx_):
            transformers.append((
                'hinge',
                SplineTransformer(n_knots=self.n_knots, degree=1, extrapolation='linear'),
                list(self.hinge_idx_),
            ))
        if len(self.linear_idx_):
            transformers.append(('linear', 'passthrough', list(self.linear_idx_)))

        steps = [('basis', ColumnTransformer(transformers, remainder='drop'))]
        if self.max_degree > 1:
            steps.append(('interactions', PolynomialFeatures(
                degree=self.max_degree, interaction_only=True, include_bias=False
            )))
        steps += [
            ('scale', StandardScaler()),
            ('logistic', LogisticRegression(
                penalty='elasticnet',
                l1_ratio=1.0,
                C=self.C,
                solver='saga',
                max_iter=self.max_iter,
                random_state=self.random_state,
            )),
        ]
        return Pipeline(steps)

    def fit(self, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray] = None) -> 'EarthLearner':
        """Fit hinge basis and lasso logistic regression."""
        y = np.asarray(y, dtype=float)
        w = self._weights(y, weights)
        Xd = self._design(X, fit=True)
        self.mean_ = weighted_mean(y, w)

        n_unique = np.array([len(np.unique(Xd[:, j])) for j in range(Xd.shape[1])], dtype=int)
        self.hinge_idx_ = np.where(n_unique > self.n_knots)[0]
        self.linear_idx_ = np.where((n_unique > 1) & (n_unique <= self.n_knots))[0]

        if len(self.hinge_idx_) + len(self.linear_idx_) == 0:
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

    def n_selected_terms(self) -> int:
        """Number of basis terms with a non-zero coefficient."""
        self._check_fitted()
        if self.pipeline_ is None:
            return 0
        return int(np.count_nonzero(self.pipeline_.named_steps['logistic'].coef_))
