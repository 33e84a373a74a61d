"""Feature set definitions.

Shared helper to select the predictor subsets compared in the analysis:
field indicators alone (serology, PCR, clinical), geospatial covariates
alone, and their combinations.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence


FEATURE_SETS: Dict[str, Sequence[str]] = {
    "none": (),
    "sero": ("feat_sero_",),
    "pcr": ("feat_pcr_",),
    "clin": ("feat_clin_",),
    "geo": ("feat_geo_",),
    "sero_geo": ("feat_sero_", "feat_geo_"),
    "pcr_geo": ("feat_pcr_", "feat_geo_"),
    "clin_geo": ("feat_clin_", "feat_geo_"),
    "field": ("feat_sero_", "feat_pcr_", "feat_clin_"),
    "all": ("feat_",),
}

_SURVEY_SUFFIX = re.compile(r"_m(\d+)$")


def column_survey(column: str) -> Optional[int]:
    """Survey month encoded in a feature name (`..._m24`), or None."""
    match = _SURVEY_SUFFIX.search(column)
    return int(match.group(1)) if match else None


def select_feature_columns(
    all_columns: Iterable[str],
    feature_set: str = "all",
    surveys: Optional[Sequence[int]] = None,
) -> List[str]:
    """Select feature columns for a named predictor set.

    `surveys` restricts survey-specific columns to the given survey months;
    columns without a survey suffix (static covariates) are always kept.
    """
    if feature_set not in FEATURE_SETS:
        raise ValueError(f"Unknown feature_set: {feature_set}")

    prefixes = FEATURE_SETS[feature_set]
    selected = [c for c in all_columns if any(c.startswith(p) for p in prefixes)]

    if surveys is not None:
        allowed = {int(s) for s in surveys}
        selected = [
            c for c in selected
            if column_survey(c) is None or column_survey(c) in allowed
        ]

    return selected
