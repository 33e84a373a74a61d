"""
XGBoost Learner for SWIFT spatial prediction

Gradient boosted trees with a logistic objective, so predictions stay in
[0, 1]. Handles missing values natively.
"""
import numpy as np
import pandas as pd
from typing import Dict, Optional
from xgboost import XGBRegressor

from ..base import BaseLearner, weighted_mean


class XGBoostLearner(BaseLearner):
    """XGBoost regressor on community prevalence."""

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(name="xgboost", config=config)

        cfg = self.config
        self.n_estimators = cfg.get('n_estimators', 200)
        self.max_depth = cfg.get('max_depth', 3)
        self.learning_rate = cfg.get('learning_rate', 0.05)
        self.subsample = cfg.get('subsample', 0.8)
        self.colsample_bytree = cfg.get('colsample_bytree', 0.8)
        self.reg_alpha = cfg.get('reg_alpha', 0.0)
        self.reg_lambda = cfg.get('reg_lambda', 1.0)
        self.random_state = cfg.get('random_state', 42)

        self.model = XGBRegressor(
            objective='reg:logistic',
            n_estimators=self.n_estimators,
            max_depth=self.max_depth,
            learning_rate=self.learning_rate,
            subsample=self.subsample,
            colsample_bytree=self.colsample_bytree,
            reg_alpha=self.reg_alpha,
            reg_lambda=self.reg_lambda,
            random_state=self.random_state,
            n_jobs=cfg.get('n_jobs', 1),
            verbosity=0
        )
        self.mean_ = None

    def fit(self, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray] = None) -> 'XGBoostLearner':
        """Fit XGBoost model."""
        y = np.clip(np.asarray(y, dtype=float), 0.0, 1.0)
        w = self._weights(y, weights)
        Xd = self._design(X, fit=True).astype(np.float32)

        self.mean_ = weighted_mean(y, w)
        if Xd.shape[1] > 0:
            self.model.fit(Xd, y, sample_weight=w)
        self.is_fitted = True
        return self

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predict prevalence."""
        self._check_fitted()
        Xd = self._design(X).astype(np.float32)
        if Xd.shape[1] == 0:
            return np.full(len(X), self.mean_)
        return np.asarray(self.model.predict(Xd), dtype=float)
