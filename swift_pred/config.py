"""
Configuration loader for SWIFT spatial prediction.
Loads YAML config and provides typed access to study constants.
"""
import yaml
import pandas as pd
from pathlib import Path
from typing import Any, Dict, Optional


# Study-wide constants. Every value can be overridden from the `study`
# section of the YAML config.
SWIFT_CRS = 4326
SURVEY_LIST = [0, 12, 24, 36]
AGE_GROUP_LIST = ["0-5y", "6-9y", "10+y"]
TRACH_IND = ["prevalence_sero", "prevalence_pcr", "prevalence_clin"]

# Seropositivity thresholds (MFI-BG) from ROC cutoffs on reference samples.
# See Migchelsen, et al. Defining seropositivity thresholds for use in
# trachoma elimination studies. PLOS NTD 2017.
PGP3_CUTOFF = 1113
CT694_CUTOFF = 337

# Monthly windows start the year prior to the baseline survey, which was
# conducted at the end of 2015.
STUDY_START = "2015-01-01"
N_STUDY_MONTHS = 12 * 4
BASELINE_MONTH_INDEX = 11


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to config/config_default.yaml

    Returns:
        Dictionary containing all configuration settings
    """
    if config_path is None:
        config_path = get_project_root() / "config" / "config_default.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    return config or {}


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def get_data_path(relative_path: str) -> Path:
    """
    Get absolute path for a data file.

    Args:
        relative_path: Path relative to project root (e.g., "data/raw/file.csv")

    Returns:
        Absolute Path object
    """
    return get_project_root() / relative_path


def require(config: Dict[str, Any], *keys: str) -> Any:
    """Fetch a nested config value, raising with the dotted key path if absent."""
    node: Any = config
    for key in keys:
        if not isinstance(node, dict) or node.get(key) is None:
            raise ValueError(f"Missing {'.'.join(keys)} in config.")
        node = node[key]
    return node


def get_study_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Study constants merged with any overrides from `config['study']`."""
    study = (config or {}).get('study', {}) or {}
    return {
        'crs': study.get('crs', SWIFT_CRS),
        'survey_list': list(study.get('survey_list', SURVEY_LIST)),
        'age_group_list': list(study.get('age_group_list', AGE_GROUP_LIST)),
        'trach_ind': list(study.get('trach_ind', TRACH_IND)),
        'pgp3_cutoff': float(study.get('pgp3_cutoff', PGP3_CUTOFF)),
        'ct694_cutoff': float(study.get('ct694_cutoff', CT694_CUTOFF)),
        'study_start': study.get('study_start', STUDY_START),
        'n_study_months': int(study.get('n_study_months', N_STUDY_MONTHS)),
        'baseline_month_index': int(study.get('baseline_month_index', BASELINE_MONTH_INDEX)),
    }


def monthly_windows(start: str = STUDY_START, n_months: int = N_STUDY_MONTHS) -> pd.DataFrame:
    """
    Start and end dates of each calendar month in the study period.

    Returns:
        DataFrame with month_index, start_date, end_date (last day of month)
    """
    if n_months <= 0:
        raise ValueError(f"n_months must be positive, got {n_months}")

    starts = pd.date_range(start=start, periods=n_months, freq='MS')
    ends = starts + pd.offsets.MonthEnd(0)
    return pd.DataFrame({
        'month_index': range(n_months),
        'start_date': starts.strftime('%Y-%m-%d'),
        'end_date': ends.strftime('%Y-%m-%d'),
    })


def survey_month_index(survey: int, baseline_month_index: int = BASELINE_MONTH_INDEX) -> int:
    """Calendar month index (into `monthly_windows`) for a study survey month."""
    return baseline_month_index + int(survey)
