"""
Super Learner for SWIFT spatial prediction

Cross-validated ensemble of the learner library:
1. V-fold cross-validated predictions for every learner
2. Non-negative least squares metalearner on those predictions, with
   weights normalized to sum to one
3. Every learner with positive weight refitted on the full training data

If NNLS puts zero weight on every learner (or `metalearner: discrete`), the
learner with the lowest cross-validated risk gets all the weight.
"""
import warnings
import numpy as np
import pandas as pd
from typing import Dict, List, Optional
from scipy.optimize import nnls

from .base import BaseLearner
from swift_pred.evaluation.cv import CVFold, make_folds


class SuperLearner(BaseLearner):
    """NNLS super learner over a library of BaseLearners."""

    def __init__(self, learners: Optional[Dict[str, BaseLearner]] = None, config: Optional[Dict] = None):
        super().__init__(name="super_learner", config=config)
        if not learners:
            raise ValueError("SuperLearner needs at least one learner")
        self.learners = learners

        cfg = self.config
        self.n_folds = int(cfg.get('n_folds', 5))
        self.fold_scheme = cfg.get('fold_scheme', 'random')
        self.block_size_km = cfg.get('block_size_km')
        self.seed = cfg.get('seed', 42)
        self.metalearner = cfg.get('metalearner', 'nnls')
        if self.metalearner not in ('nnls', 'discrete'):
            raise ValueError(f"Unknown metalearner: {self.metalearner}")

        self.coef_: Optional[pd.Series] = None
        self.cv_risk_: Optional[pd.DataFrame] = None
        self.cv_predictions_: Optional[pd.DataFrame] = None
        self.fitted_learners_: Dict[str, BaseLearner] = {}

    def clone(self) -> 'SuperLearner':
        return SuperLearner({k: v.clone() for k, v in self.learners.items()}, config=self.config)

    def _folds(self, X: pd.DataFrame) -> List[CVFold]:
        n_folds = min(self.n_folds, len(X))
        return make_folds(
            X, scheme=self.fold_scheme, n_folds=n_folds, seed=self.seed,
            block_size_km=self.block_size_km
        )

    def fit(
        self,
        X: pd.DataFrame,
        y: np.ndarray,
        weights: Optional[np.ndarray] = None,
        folds: Optional[List[CVFold]] = None
    ) -> 'SuperLearner':
        """
        Fit the ensemble.

        Args:
            X: Feature DataFrame (coordinates included for spatial learners)
            y: Outcome in [0, 1]
            weights: Number tested per community
            folds: Inner CV folds (built from config when omitted)

        Returns:
            self
        """
        X = X.reset_index(drop=True)
        y = np.asarray(y, dtype=float)
        w = self._weights(y, weights)
        folds = folds if folds is not None else self._folds(X)

        names = list(self.learners.keys())
        Z = np.full((len(y), len(names)), np.nan)
        failed = set()

        for fold in folds:
            X_train, X_val = X.iloc[fold.train_idx], X.iloc[fold.validation_idx]
            for j, name in enumerate(names):
                if name in failed:
                    continue
                try:
                    model = self.learners[name].clone()
                    model.fit(X_train, y[fold.train_idx], w[fold.train_idx])
                    Z[fold.validation_idx, j] = model.predict(X_val)
                except Exception as e:
                    warnings.warn(f"Learner {name} failed in {fold.fold_name} ({e}); dropped from ensemble")
                    failed.add(name)

        keep = [j for j, name in enumerate(names) if name not in failed and not np.isnan(Z[:, j]).any()]
        if not keep:
            raise RuntimeError("Every learner failed during super learner cross-validation")

        risk_w = w if w.sum() > 0 else np.ones(len(y))
        risks = {
            name: float(np.average((y - Z[:, j]) ** 2, weights=risk_w)) if j in keep else np.nan
            for j, name in enumerate(names)
        }

        coef = np.zeros(len(names))
        Z_keep = Z[:, keep]
        if self.metalearner == 'nnls':
            sw = np.sqrt(risk_w)
            beta, _ = nnls(Z_keep * sw[:, None], y * sw)
            if beta.sum() > 0:
                coef[keep] = beta / beta.sum()
        if coef.sum() == 0:
            best = min(keep, key=lambda j: risks[names[j]])
            coef[best] = 1.0

        self.fitted_learners_ = {}
        refit_failed = set()
        for j, name in enumerate(names):
            if coef[j] > 0 and not self._refit(name, X, y, w):
                coef[j] = 0.0
                refit_failed.add(name)

        if coef.sum() == 0:
            # Fall back to the lowest-risk learner that can be refitted
            for j in sorted(keep, key=lambda j: risks[names[j]]):
                if names[j] not in refit_failed and self._refit(names[j], X, y, w):
                    coef[j] = 1.0
                    break
            else:
                raise RuntimeError("Every learner failed when refitted on the full training data")
        coef = coef / coef.sum()

        self.coef_ = pd.Series(coef, index=names)
        self.cv_risk_ = pd.DataFrame({
            'learner': names,
            'cv_risk': [risks[n] for n in names],
            'coef': coef,
        })
        self.cv_predictions_ = pd.DataFrame(Z, columns=names)
        self.is_fitted = True
        return self

    def _refit(self, name: str, X: pd.DataFrame, y: np.ndarray, w: np.ndarray) -> bool:
        """Fit one learner on all the training data, warning if it fails."""
        try:
            self.fitted_learners_[name] = self.learners[name].clone().fit(X, y, w)
        except Exception as e:
            warnings.warn(f"Learner {name} failed on the full training data ({e}); dropped from ensemble")
            return False
        return True

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Weighted combination of the learners' predictions."""
        self._check_fitted()
        pred = np.zeros(len(X))
        for name, model in self.fitted_learners_.items():
            pred += self.coef_[name] * model.predict(X)
        return np.clip(pred, 0.0, 1.0)

    def predict_learners(self, X: pd.DataFrame) -> pd.DataFrame:
        """Predictions of each learner with positive weight."""
        self._check_fitted()
        return pd.DataFrame({name: m.predict(X) for name, m in self.fitted_learners_.items()})
