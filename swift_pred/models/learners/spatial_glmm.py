"""
Spatial Mixed-Effects Logistic Regression Learner for SWIFT spatial prediction

Binomial GLM for the fixed effects plus a spatially correlated random
effect with a Matérn covariance on the logit scale:

    logit(p_i) = x_i'β + u(s_i),   u ~ GP(0, σ² Matérn(ν, ρ))

Fitted in two stages: β by binomial IRLS, then a Gaussian process on the
empirical-logit residuals with per-community binomial noise
var ≈ 1/(k+0.5) + 1/(n-k+0.5). Predictions add the GP posterior mean
at new locations to the fixed-effect linear predictor.
"""
import numpy as np
import pandas as pd
import statsmodels.api as sm
from typing import Dict, Optional
from scipy.special import expit
from sklearn.gaussian_process import GaussianProcessRegressor
from sklearn.gaussian_process.kernels import ConstantKernel, Matern, WhiteKernel

from ..base import BaseLearner, COORD_COLS
from .glm import with_intercept


KM_PER_DEG_LAT = 110.574
KM_PER_DEG_LON_EQUATOR = 111.320


class SpatialGLMMLearner(BaseLearner):
    """Logistic regression with a Matérn spatial random effect."""

    requires_coordinates = True

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(name="spatial_glmm", config=config)

        cfg = self.config
        self.nu = float(cfg.get('nu', 0.5))
        self.length_scale_km = float(cfg.get('length_scale_km', 10.0))
        self.length_scale_bounds = tuple(cfg.get('length_scale_bounds', (0.1, 1000.0)))
        self.n_restarts_optimizer = int(cfg.get('n_restarts_optimizer', 0))
        self.random_state = cfg.get('random_state', 42)

        self.glm_ = None
        self.gp_ = None
        self.origin_ = None

    def _coords_km(self, X: pd.DataFrame) -> np.ndarray:
        missing = [c for c in COORD_COLS if c not in X.columns]
        if missing:
            raise ValueError(f"spatial_glmm requires coordinate columns: {missing}")
        lat = X['latitude'].to_numpy(dtype=float)
        lon = X['longitude'].to_numpy(dtype=float)
        if np.isnan(lat).any() or np.isnan(lon).any():
            raise ValueError("spatial_glmm requires coordinates for every community")

        lat0, lon0 = self.origin_
        x = (lon - lon0) * KM_PER_DEG_LON_EQUATOR * np.cos(np.radians(lat0))
        y = (lat - lat0) * KM_PER_DEG_LAT
        return np.column_stack([x, y])

    def _kernel(self):
        return (
            ConstantKernel(1.0, (1e-3, 1e2))
            * Matern(length_scale=self.length_scale_km,
                     length_scale_bounds=self.length_scale_bounds, nu=self.nu)
            + WhiteKernel(noise_level=0.1, noise_level_bounds=(1e-5, 1e1))
        )

    def fit(self, X: pd.DataFrame, y: np.ndarray, weights: Optional[np.ndarray] = None) -> 'SpatialGLMMLearner':
        """Fit fixed effects, then the spatial random effect."""
        y = np.clip(np.asarray(y, dtype=float), 0.0, 1.0)
        w = self._weights(y, weights)
        missing = [c for c in COORD_COLS if c not in X.columns]
        if missing:
            raise ValueError(f"spatial_glmm requires coordinate columns: {missing}")
        self.origin_ = (float(X['latitude'].mean()), float(X['longitude'].mean()))
        coords = self._coords_km(X)

        exog = with_intercept(self._design(X, fit=True))
        self.glm_ = sm.GLM(y, exog, family=sm.families.Binomial(), var_weights=w).fit()
        eta = exog @ np.asarray(self.glm_.params, dtype=float)

        # Empirical logit of observed prevalence and its binomial variance
        n = np.maximum(w, 1.0)
        k = y * n
        elogit = np.log((k + 0.5) / (n - k + 0.5))
        noise = 1.0 / (k + 0.5) + 1.0 / (n - k + 0.5)

        self.gp_ = GaussianProcessRegressor(
            kernel=self._kernel(),
            alpha=noise,
            normalize_y=False,
            n_restarts_optimizer=self.n_restarts_optimizer,
            random_state=self.random_state,
        )
        self.gp_.fit(coords, elogit - eta)
        self.is_fitted = True
        return self

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predict prevalence at new locations."""
        self._check_fitted()
        exog = with_intercept(self._design(X))
        eta = exog @ np.asarray(self.glm_.params, dtype=float)
        return expit(eta + self.gp_.predict(self._coords_km(X)))

    def get_spatial_parameters(self) -> Dict[str, float]:
        """Fitted Matérn variance, range (km) and nugget."""
        self._check_fitted()
        params = self.gp_.kernel_.get_params()
        return {
            'variance': float(params['k1__k1__constant_value']),
            'length_scale_km': float(params['k1__k2__length_scale']),
            'nu': self.nu,
            'nugget': float(params['k2__noise_level']),
        }
