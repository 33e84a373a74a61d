"""
Penalized Logistic Regression Learner for SWIFT spatial prediction

Elastic-net logistic regression (lasso by default) on standardized
features. Proportions are fitted through binomially expanded rows.
"""
import numpy as np
import pandas as pd
from typing import Dict, Optional
from sklearn.linear_model import LogisticRegression
from sklearn.preprocessing import StandardScaler

from ..base import BaseLearner, expand_binomial, weighted_mean


class GLMNetLearner(BaseLearner):
    """Elastic-net penalized logistic regression."""

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(name="glmnet", config=config)

        self.C = self.config.get('C', 1.0)
        self.l1_ratio = self.config.get('l1_ratio', 1.0)
        self.max_iter = self.config.get('max_iter', 5000)

        self.model = LogisticRegression(
            penalty='elasticnet',
            C=self.C,
            l1_ratio=self.l1_ratio,
            solver='saga',
            max_iter=self.max_iter,
            random_state=self.config.get('random_state', 42)
        )
        # Scaler for feature normalization
        self.scaler = StandardScaler()
        self.mean_ = None

    def fit(self, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray] = None) -> 'GLMNetLearner':
        """Fit penalized logistic regression."""
        y = np.asarray(y, dtype=float)
        w = self._weights(y, weights)
        Xd = self._design(X, fit=True)

        self.mean_ = weighted_mean(y, w)
        if Xd.shape[1] == 0:
            self.is_fitted = True
            return self

        X_scaled = self.scaler.fit_transform(Xd)
        X_long, y_long, w_long = expand_binomial(X_scaled, y, w)
        self.model.fit(X_long, y_long, sample_weight=w_long)
        self.is_fitted = True
        return self

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predict prevalence."""
        self._check_fitted()
        Xd = self._design(X)
        if Xd.shape[1] == 0:
            return np.full(len(X), self.mean_)
        return self.model.predict_proba(self.scaler.transform(Xd))[:, 1]

    def get_coefficients(self) -> Dict[str, float]:
        """Get standardized coefficients for interpretation."""
        self._check_fitted()
        if not self.feature_names:
            return {}
        return dict(zip(self.feature_names, self.model.coef_[0].tolist()))
