"""
Base Learner Interface for SWIFT spatial prediction

Abstract base class that all learners must implement.
Ensures consistent API across the super learner library.

Outcomes are community prevalences in [0, 1] (or 0/1 indicators) and the
optional weights are the number of people tested, so every learner fits a
binomial-type model and predicts values in [0, 1].
"""
from abc import ABC, abstractmethod
import numpy as np
import pandas as pd
from typing import Dict, List, Optional
import pickle
from pathlib import Path


COORD_COLS = ('latitude', 'longitude')


class BaseLearner(ABC):
    """Abstract base class for all prediction learners."""

    # Learners that cannot fit without latitude/longitude
    requires_coordinates = False

    def __init__(self, name: str, config: Optional[Dict] = None):
        """
        Initialize learner.

        Args:
            name: Learner identifier
            config: Learner-specific configuration
        """
        self.name = name
        self.config = dict(config or {})
        self.use_coordinates = bool(self.config.get('use_coordinates', False))
        self.is_fitted = False
        self.feature_names: Optional[List[str]] = None
        self.fill_values_: Optional[np.ndarray] = None

    def clone(self) -> 'BaseLearner':
        """Unfitted copy with the same configuration."""
        learner = self.__class__(config=self.config)
        learner.name = self.name
        return learner

    def _design(self, X: pd.DataFrame, fit: bool = False) -> np.ndarray:
        """
        Design matrix from a feature DataFrame.

        Coordinate columns are dropped unless `use_coordinates` is set.
        Missing values are imputed with training-set column means.
        """
        if fit:
            cols = [c for c in X.columns if self.use_coordinates or c not in COORD_COLS]
            self.feature_names = cols
        elif self.feature_names is None:
            raise ValueError("Model not fitted. Call fit() first.")

        missing = [c for c in self.feature_names if c not in X.columns]
        if missing:
            raise ValueError(f"Missing feature columns: {missing}")

        arr = X[self.feature_names].to_numpy(dtype=float)
        if fit:
            means = pd.DataFrame(arr).mean(axis=0).to_numpy(dtype=float)
            self.fill_values_ = np.nan_to_num(means, nan=0.0)
        if arr.shape[1]:
            nan_mask = np.isnan(arr)
            if nan_mask.any():
                arr = np.where(nan_mask, self.fill_values_[None, :], arr)
        return arr

    @staticmethod
    def _weights(y: np.ndarray, weights: Optional[np.ndarray]) -> np.ndarray:
        if weights is None:
            return np.ones(len(y))
        weights = np.asarray(weights, dtype=float)
        if len(weights) != len(y):
            raise ValueError("weights must have the same length as y")
        if (weights < 0).any():
            raise ValueError("weights must be non-negative")
        return weights

    @abstractmethod
    def fit(self, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray] = None) -> 'BaseLearner':
        """
        Fit learner to training data.

        Args:
            X: Feature DataFrame (n_samples, n_features)
            y: Outcome in [0, 1] (n_samples,)
            weights: Number tested per community (n_samples,)

        Returns:
            self
        """
        pass

    @abstractmethod
    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """
        Predict prevalence.

        Args:
            X: Feature DataFrame

        Returns:
            Predictions in [0, 1] (n_samples,)
        """
        pass

    def _check_fitted(self) -> None:
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")

    def save(self, path: str) -> None:
        """Save learner to disk."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            pickle.dump(self, f)

    @classmethod
    def load(cls, path: str) -> 'BaseLearner':
        """Load learner from disk."""
        with open(path, 'rb') as f:
            return pickle.load(f)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', fitted={self.is_fitted})"


def expand_binomial(X: np.ndarray, y: np.ndarray, weights: np.ndarray):
    """
    Expand proportions into weighted 0/1 rows.

    A community with prevalence y and n tested becomes one positive row with
    weight y*n and one negative row with weight (1-y)*n, so classifiers fit
    the binomial likelihood.
    """
    y = np.clip(np.asarray(y, dtype=float), 0.0, 1.0)
    X_long = np.vstack([X, X])
    y_long = np.concatenate([np.ones(len(y)), np.zeros(len(y))])
    w_long = np.concatenate([y * weights, (1.0 - y) * weights])
    return X_long, y_long, w_long


def weighted_mean(y: np.ndarray, weights: np.ndarray) -> float:
    """Weighted mean of the outcome, unweighted when all weights are zero."""
    y = np.asarray(y, dtype=float)
    if weights.sum() > 0:
        return float(np.average(y, weights=weights))
    return float(np.mean(y))
