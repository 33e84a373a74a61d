"""
Mean Learner for SWIFT spatial prediction

Intercept-only benchmark: predicts the (weighted) training prevalence for
every community. Every R² is relative to this learner.
"""
import numpy as np
import pandas as pd
from typing import Dict, Optional

from ..base import BaseLearner, weighted_mean


class MeanLearner(BaseLearner):
    """Weighted mean prevalence."""

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(name="mean", config=config)
        self.mean_ = None

    def fit(self, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray] = None) -> 'MeanLearner':
        y = np.asarray(y, dtype=float)
        self.mean_ = weighted_mean(y, self._weights(y, weights))
        self.is_fitted = True
        return self

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        self._check_fitted()
        return np.full(len(X), self.mean_)
