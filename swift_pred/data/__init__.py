"""Data module - field results and community prevalence."""

from swift_pred.data.loader import (
    assign_age_group,
    classify_serostatus,
    load_individual_data,
    compute_community_prevalence,
    match_community_names,
    load_community_locations,
    attach_locations,
    build_community_prevalence,
)

__all__ = [
    'assign_age_group',
    'classify_serostatus',
    'load_individual_data',
    'compute_community_prevalence',
    'match_community_names',
    'load_community_locations',
    'attach_locations',
    'build_community_prevalence',
]
