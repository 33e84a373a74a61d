"""
Binomial GLM Learner for SWIFT spatial prediction

Logistic regression on community prevalence with the number tested as
variance weights (statsmodels GLM, Binomial family).
"""
import numpy as np
import pandas as pd
import statsmodels.api as sm
from typing import Dict, Optional

from ..base import BaseLearner


def with_intercept(X: np.ndarray) -> np.ndarray:
    return np.column_stack([np.ones(len(X)), X])


class GLMLearner(BaseLearner):
    """Main-terms logistic regression for proportions."""

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(name="glm", config=config)
        self.max_iter = self.config.get('max_iter', 100)
        self.result_ = None

    def fit(self, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray] = None) -> 'GLMLearner':
        """Fit binomial GLM by IRLS."""
        y = np.clip(np.asarray(y, dtype=float), 0.0, 1.0)
        w = self._weights(y, weights)
        exog = with_intercept(self._design(X, fit=True))

        model = sm.GLM(y, exog, family=sm.families.Binomial(), var_weights=w)
        self.result_ = model.fit(maxiter=self.max_iter)
        self.is_fitted = True
        return self

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predict prevalence."""
        self._check_fitted()
        exog = with_intercept(self._design(X))
        return np.asarray(self.result_.predict(exog), dtype=float)

    def get_coefficients(self) -> Dict[str, float]:
        """Get fitted coefficients for interpretation."""
        self._check_fitted()
        names = ['intercept'] + list(self.feature_names)
        return dict(zip(names, np.asarray(self.result_.params, dtype=float)))
