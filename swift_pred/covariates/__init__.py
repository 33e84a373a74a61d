"""Covariates module - raster summaries and distance features."""

from swift_pred.covariates.raster import (
    pixel_centers,
    summarize_buffer,
    extract_raster_covariate,
    summarize_monthly_covariate,
)

from swift_pred.covariates.distance import (
    nearest_distance_km,
    count_within_km,
    load_point_features,
)

from swift_pred.covariates.extract import (
    community_points,
    build_covariate_table,
)

__all__ = [
    'pixel_centers',
    'summarize_buffer',
    'extract_raster_covariate',
    'summarize_monthly_covariate',
    'nearest_distance_km',
    'count_within_km',
    'load_point_features',
    'community_points',
    'build_covariate_table',
]
