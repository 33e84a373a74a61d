"""Learner library for the super learner."""

from typing import Dict, Optional

from ..base import BaseLearner
from .mean import MeanLearner
from .glm import GLMLearner
from .glmnet import GLMNetLearner
from .gam import GAMLearner
from .earth import EarthLearner
from .random_forest import RandomForestLearner
from .xgboost_model import XGBoostLearner
from .spatial_glmm import SpatialGLMMLearner


LEARNERS = {
    'mean': MeanLearner,
    'glm': GLMLearner,
    'glmnet': GLMNetLearner,
    'gam': GAMLearner,
    'earth': EarthLearner,
    'random_forest': RandomForestLearner,
    'xgboost': XGBoostLearner,
    'spatial_glmm': SpatialGLMMLearner,
}


def build_learner(name: str, config: Optional[Dict] = None) -> BaseLearner:
    """
    Create a learner by name.

    A `learner` key in the config selects the class, so one class can appear
    in the library several times under different names
    (e.g. `ridge: {learner: glmnet, l1_ratio: 0.0}`).
    """
    config = dict(config or {})
    kind = config.pop('learner', name)
    if kind not in LEARNERS:
        raise ValueError(f"Unknown learner: {kind}")
    learner = LEARNERS[kind](config=config)
    learner.name = name
    return learner


def build_library(library_config: Dict[str, Optional[Dict]]) -> Dict[str, BaseLearner]:
    """Create every learner listed in `models.library`."""
    if not library_config:
        raise ValueError("Missing models.library in config.")
    return {name: build_learner(name, cfg) for name, cfg in library_config.items()}


__all__ = [
    'LEARNERS',
    'build_learner',
    'build_library',
    'MeanLearner',
    'GLMLearner',
    'GLMNetLearner',
    'GAMLearner',
    'EarthLearner',
    'RandomForestLearner',
    'XGBoostLearner',
    'SpatialGLMMLearner',
]
