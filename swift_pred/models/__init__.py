"""Models module - learner library and super learner."""

from swift_pred.models.base import BaseLearner
from swift_pred.models.learners import LEARNERS, build_learner, build_library
from swift_pred.models.super_learner import SuperLearner

__all__ = [
    'BaseLearner',
    'LEARNERS',
    'build_learner',
    'build_library',
    'SuperLearner',
]
