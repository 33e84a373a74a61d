"""
Random Forest Learner for SWIFT spatial prediction

Non-linear tree ensemble regression on prevalence, weighted by the number
tested. Good for capturing covariate interactions.
"""
import numpy as np
import pandas as pd
from typing import Dict, Optional
from sklearn.ensemble import RandomForestRegressor

from ..base import BaseLearner, weighted_mean


class RandomForestLearner(BaseLearner):
    """Random Forest regressor on community prevalence."""

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(name="random_forest", config=config)

        cfg = self.config
        self.n_estimators = cfg.get('n_estimators', 500)
        self.max_depth = cfg.get('max_depth', None)
        self.min_samples_leaf = cfg.get('min_samples_leaf', 5)
        self.max_features = cfg.get('max_features', 1.0 / 3)
        self.n_jobs = cfg.get('n_jobs', 1)
        self.random_state = cfg.get('random_state', 42)

        self.model = RandomForestRegressor(
            n_estimators=self.n_estimators,
            max_depth=self.max_depth,
            min_samples_leaf=self.min_samples_leaf,
            max_features=self.max_features,
            n_jobs=self.n_jobs,
            random_state=self.random_state,
        )
        self.mean_ = None

    def fit(self, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray] = None) -> 'RandomForestLearner':
        """Fit Random Forest."""
        y = np.asarray(y, dtype=float)
        w = self._weights(y, weights)
        Xd = self._design(X, fit=True)

        self.mean_ = weighted_mean(y, w)
        if Xd.shape[1] > 0:
            self.model.fit(Xd, y, sample_weight=w)
        self.is_fitted = True
        return self

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predict prevalence."""
        self._check_fitted()
        Xd = self._design(X)
        if Xd.shape[1] == 0:
            return np.full(len(X), self.mean_)
        return np.clip(self.model.predict(Xd), 0.0, 1.0)
