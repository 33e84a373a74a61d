"""Features module - predictor sets and modeling dataset assembly."""

from swift_pred.features.feature_sets import (
    FEATURE_SETS,
    column_survey,
    select_feature_columns,
)

from swift_pred.features.dataset import (
    age_group_key,
    build_modeling_dataset,
    get_feature_columns,
    missing_report,
)

__all__ = [
    'FEATURE_SETS',
    'column_survey',
    'select_feature_columns',
    'age_group_key',
    'build_modeling_dataset',
    'get_feature_columns',
    'missing_report',
]
