# tests/test_super_learner.py
import numpy as np
import pandas as pd
import pytest

from swift_pred.evaluation.cv import create_random_folds
from swift_pred.models.base import BaseLearner
from swift_pred.models.learners import GLMLearner, build_library
from swift_pred.models.super_learner import SuperLearner


class BrokenLearner(BaseLearner):
    def __init__(self, config=None):
        super().__init__(name="broken", config=config)

    def fit(self, X, y, weights=None):
        raise np.linalg.LinAlgError("singular matrix")

    def predict(self, X):
        self._check_fitted()
        return np.zeros(len(X))


class FullDataFailingGLM(GLMLearner):
    """Fits on inner-fold training sets but not on more than 50 rows."""

    def fit(self, X, y, weights=None):
        if len(X) > 50:
            raise ValueError("design matrix too large")
        return super().fit(X, y, weights)


def _xy(df):
    return df[['feat_pcr_0_5y_m0', 'feat_sero_0_5y_m0']], df['outcome'].to_numpy(), df['outcome_n'].to_numpy()


def test_weights_are_convex(community_dataset):
    X, y, w = _xy(community_dataset)
    sl = SuperLearner(build_library({'mean': {}, 'glm': {}, 'glmnet': {}}), {'n_folds': 4})
    sl.fit(X, y, w)

    assert sl.coef_.sum() == pytest.approx(1.0)
    assert (sl.coef_ >= 0).all()
    assert list(sl.cv_risk_['learner']) == ['mean', 'glm', 'glmnet']
    # The informative GLM beats the intercept-only benchmark
    risk = sl.cv_risk_.set_index('learner')['cv_risk']
    assert risk['glm'] < risk['mean']
    assert set(sl.fitted_learners_) == set(sl.coef_[sl.coef_ > 0].index)

    pred = sl.predict(X)
    assert pred.shape == (len(y),)
    assert np.all((pred >= 0) & (pred <= 1))
    assert list(sl.predict_learners(X).columns) == list(sl.fitted_learners_)


def test_discrete_metalearner_picks_lowest_risk(community_dataset):
    X, y, w = _xy(community_dataset)
    sl = SuperLearner(build_library({'mean': {}, 'glm': {}}), {'metalearner': 'discrete'})
    sl.fit(X, y, w)
    best = sl.cv_risk_.sort_values('cv_risk').iloc[0]['learner']
    assert sl.coef_[best] == 1.0
    assert sl.coef_.sum() == 1.0


def test_failing_learner_dropped(community_dataset):
    X, y, w = _xy(community_dataset)
    library = build_library({'mean': {}, 'glm': {}})
    library['broken'] = BrokenLearner()
    sl = SuperLearner(library, {'n_folds': 3})

    with pytest.warns(UserWarning, match='broken'):
        sl.fit(X, y, w)
    assert sl.coef_['broken'] == 0.0
    assert np.isnan(sl.cv_risk_.set_index('learner').loc['broken', 'cv_risk'])


def test_all_learners_fail(community_dataset):
    X, y, w = _xy(community_dataset)
    sl = SuperLearner({'broken': BrokenLearner()}, {'n_folds': 3})
    with pytest.warns(UserWarning):
        with pytest.raises(RuntimeError):
            sl.fit(X, y, w)


def test_explicit_folds_and_validation(community_dataset):
    X, y, w = _xy(community_dataset)
    folds = create_random_folds(len(y), n_folds=3, seed=0)
    sl = SuperLearner(build_library({'mean': {}, 'glm': {}}))
    sl.fit(X, y, w, folds=folds)
    assert not sl.cv_predictions_.isna().any().any()

    with pytest.raises(ValueError):
        SuperLearner({})
    with pytest.raises(ValueError):
        SuperLearner(build_library({'mean': {}}), {'metalearner': 'stacking'})
    with pytest.raises(ValueError, match='not fitted'):
        SuperLearner(build_library({'mean': {}})).predict(X)


def test_learner_failing_on_full_data_is_dropped(community_dataset):
    X, y, w = _xy(community_dataset)
    library = build_library({'mean': {}})
    library['fragile'] = FullDataFailingGLM()
    sl = SuperLearner(library, {'n_folds': 3})

    with pytest.warns(UserWarning, match='full training data'):
        sl.fit(X, y, w)
    assert sl.coef_['fragile'] == 0.0
    assert sl.coef_.sum() == pytest.approx(1.0)
    assert list(sl.fitted_learners_) == ['mean']
    assert sl.cv_risk_.set_index('learner')['coef'].sum() == pytest.approx(1.0)
    assert len(np.unique(sl.predict(X))) == 1


def test_no_learner_survives_full_data_refit(community_dataset):
    X, y, w = _xy(community_dataset)
    sl = SuperLearner({'fragile': FullDataFailingGLM()}, {'n_folds': 3})
    with pytest.warns(UserWarning):
        with pytest.raises(RuntimeError, match='full training data'):
            sl.fit(X, y, w)
