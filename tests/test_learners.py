# tests/test_learners.py
import numpy as np
import pytest

from swift_pred.models.base import expand_binomial
from swift_pred.models.learners import LEARNERS, build_learner, build_library
from swift_pred.models.learners import EarthLearner, GLMLearner, MeanLearner, SpatialGLMMLearner

FAST = {
    'random_forest': {'n_estimators': 30},
    'xgboost': {'n_estimators': 30},
    'spatial_glmm': {'length_scale_km': 20},
}


def _xy(df):
    X = df[['feat_pcr_0_5y_m0', 'feat_sero_0_5y_m0', 'latitude', 'longitude']]
    return X, df['outcome'].to_numpy(), df['outcome_n'].to_numpy()


@pytest.mark.parametrize('name', sorted(LEARNERS))
def test_learner_predictions_in_unit_interval(community_dataset, name):
    X, y, w = _xy(community_dataset)
    learner = build_learner(name, FAST.get(name))
    learner.fit(X.iloc[:45], y[:45], w[:45])
    pred = learner.predict(X.iloc[45:])
    assert pred.shape == (15,)
    assert np.all((pred >= 0) & (pred <= 1))
    assert learner.is_fitted


@pytest.mark.parametrize('name', sorted(LEARNERS))
def test_unfitted_learner_raises(community_dataset, name):
    X, _, _ = _xy(community_dataset)
    with pytest.raises(ValueError, match='not fitted'):
        build_learner(name, FAST.get(name)).predict(X)


def test_mean_learner_is_weighted(community_dataset):
    X, y, w = _xy(community_dataset)
    pred = MeanLearner().fit(X, y, w).predict(X)
    assert pred == pytest.approx(np.full(len(y), np.average(y, weights=w)))


def test_glm_recovers_signal(community_dataset):
    X, y, w = _xy(community_dataset)
    glm = GLMLearner().fit(X, y, w)
    coef = glm.get_coefficients()
    assert 'latitude' not in coef
    assert coef['feat_pcr_0_5y_m0'] > 2.0


def test_missing_values_imputed(community_dataset):
    X, y, w = _xy(community_dataset)
    X = X.copy()
    X.iloc[::4, 0] = np.nan
    pred = GLMLearner().fit(X, y, w).predict(X)
    assert not np.isnan(pred).any()


def test_spatial_glmm_needs_coordinates(community_dataset):
    X, y, w = _xy(community_dataset)
    with pytest.raises(ValueError, match='coordinate'):
        SpatialGLMMLearner().fit(X.drop(columns=['latitude']), y, w)
    params = SpatialGLMMLearner({'length_scale_km': 20}).fit(X, y, w).get_spatial_parameters()
    assert params['length_scale_km'] > 0


def test_build_learner_aliases():
    ridge = build_learner('ridge', {'learner': 'glmnet', 'l1_ratio': 0.0})
    assert ridge.name == 'ridge'
    assert ridge.l1_ratio == 0.0
    assert ridge.clone().name == 'ridge'
    with pytest.raises(ValueError):
        build_learner('svm')
    with pytest.raises(ValueError):
        build_library({})
    assert list(build_library({'mean': None, 'glm': {}})) == ['mean', 'glm']


def test_save_load_roundtrip(tmp_path, community_dataset):
    X, y, w = _xy(community_dataset)
    glm = GLMLearner().fit(X, y, w)
    path = tmp_path / 'models' / 'glm.pkl'
    glm.save(str(path))
    loaded = GLMLearner.load(str(path))
    assert np.allclose(loaded.predict(X), glm.predict(X))


def test_expand_binomial():
    X = np.array([[1.0], [2.0]])
    X_long, y_long, w_long = expand_binomial(X, np.array([0.25, 1.0]), np.array([4.0, 2.0]))
    assert X_long.shape == (4, 1)
    assert y_long.tolist() == [1, 1, 0, 0]
    assert w_long.tolist() == [1.0, 2.0, 3.0, 0.0]


def test_earth_selects_hinge_terms(community_dataset):
    X, y, w = _xy(community_dataset)
    additive = EarthLearner().fit(X, y, w)
    assert 0 < additive.n_selected_terms() <= 10

    interactions = EarthLearner({'max_degree': 2, 'C': 0.5}).fit(X, y, w)
    pred = interactions.predict(X)
    assert np.all((pred >= 0) & (pred <= 1))
    # The informative feature should order predictions like the truth
    assert np.corrcoef(pred, X['feat_pcr_0_5y_m0'])[0, 1] > 0.5

    with pytest.raises(ValueError):
        EarthLearner({'max_degree': 3})
    with pytest.raises(ValueError):
        EarthLearner({'n_knots': 1})
