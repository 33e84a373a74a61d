"""
Prediction tasks for SWIFT spatial prediction

A task is one (outcome, predictor set, fold scheme) combination. Each task
runs nested cross-validation: the super learner is fitted within every outer
training set (with its own inner folds) and predicts the held-out fold.
Tasks are independent, so batches run in parallel with joblib.
"""
import numpy as np
import pandas as pd
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional, Tuple
from joblib import Parallel, delayed

from swift_pred.config import require
from swift_pred.evaluation.cv import CVFold, make_folds, fold_ids
from swift_pred.evaluation.metrics import (
    compute_mse,
    r2_influence_ci,
    auc_influence_ci,
    compute_brier_score,
)
from swift_pred.features.feature_sets import select_feature_columns
from swift_pred.models.base import COORD_COLS
from swift_pred.models.learners import build_library
from swift_pred.models.super_learner import SuperLearner


OUTCOMES = ('outcome', 'outcome_any')


@dataclass
class PredictionTask:
    """One prediction target / predictor set / fold scheme combination."""
    outcome: str = 'outcome'
    feature_set: str = 'all'
    fold_scheme: str = 'spatial_block'
    surveys: Optional[List[int]] = field(default=None)

    def __post_init__(self):
        if self.outcome not in OUTCOMES:
            raise ValueError(f"Unknown outcome: {self.outcome}")

    @property
    def binary(self) -> bool:
        return self.outcome == 'outcome_any'

    @property
    def task_id(self) -> str:
        surveys = 'm' + '-'.join(str(s) for s in self.surveys) if self.surveys else 'allsurveys'
        return f"{self.outcome}__{self.feature_set}__{surveys}__{self.fold_scheme}"


def build_tasks(config: Dict[str, Any]) -> List[PredictionTask]:
    """Every outcome x feature set combination listed under `prediction`."""
    pred_cfg = config.get('prediction', {}) or {}
    outcomes = pred_cfg.get('outcomes', ['outcome'])
    feature_sets = pred_cfg.get('feature_sets', ['all'])
    scheme = config.get('cv', {}).get('scheme', 'spatial_block')
    surveys = pred_cfg.get('surveys')
    return [
        PredictionTask(outcome=o, feature_set=fs, fold_scheme=scheme, surveys=surveys)
        for o in outcomes
        for fs in feature_sets
    ]


def task_folds(df: pd.DataFrame, task: PredictionTask, config: Dict[str, Any]) -> List[CVFold]:
    """Outer CV folds for a task."""
    cv_cfg = config.get('cv', {}) or {}
    block_size = cv_cfg.get('block_size_km')
    if task.fold_scheme == 'spatial_block' and block_size is None:
        raise ValueError("Missing cv.block_size_km in config.")
    return make_folds(
        df,
        scheme=task.fold_scheme,
        n_folds=int(cv_cfg.get('n_folds', 5)),
        seed=cv_cfg.get('seed', 42),
        block_size_km=block_size,
        selection=cv_cfg.get('selection', 'random'),
        group_col=cv_cfg.get('group_col'),
    )


def usable_feature_columns(df: pd.DataFrame, task: PredictionTask) -> List[str]:
    """Feature columns for a task, dropping columns with no observed values."""
    cols = select_feature_columns(df.columns, task.feature_set, surveys=task.surveys)
    return [c for c in cols if df[c].notna().any()]


def cross_validated_predictions(
    df: pd.DataFrame,
    feature_cols: List[str],
    outcome_col: str,
    weight_col: Optional[str],
    folds: List[CVFold],
    library_config: Dict[str, Any],
    sl_config: Optional[Dict[str, Any]] = None,
    use_coordinates: bool = True
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Out-of-fold super learner predictions.

    Args:
        df: Modeling dataset
        feature_cols: Predictor columns
        outcome_col: Outcome column
        weight_col: Binomial weight column (None = equal weights)
        folds: Outer CV folds
        library_config: `models.library` section
        sl_config: Super learner settings (inner folds, metalearner)
        use_coordinates: Pass latitude/longitude to the learners. When False,
            learners that need coordinates are left out of the library, so
            an empty feature list gives an intercept-only fit.

    Returns:
        Tuple of (predictions, learner_summary). predictions holds one row
        per community with fold, y, pred and weight; learner_summary holds
        CV risk and ensemble weight of every learner in every outer fold.
    """
    df = df.reset_index(drop=True)
    x_cols = list(feature_cols)
    if use_coordinates:
        x_cols += [c for c in COORD_COLS if c in df.columns]
    X = df[x_cols]
    y = df[outcome_col].to_numpy(dtype=float)
    w = df[weight_col].to_numpy(dtype=float) if weight_col else np.ones(len(df))

    library = build_library(library_config)
    if not use_coordinates:
        library = {k: v for k, v in library.items() if not v.requires_coordinates}
        if not library:
            raise ValueError("Every learner in models.library requires coordinates")

    pred = np.full(len(df), np.nan)
    summaries = []
    for fold in folds:
        sl = SuperLearner({k: v.clone() for k, v in library.items()}, config=sl_config)
        sl.fit(X.iloc[fold.train_idx], y[fold.train_idx], w[fold.train_idx])
        pred[fold.validation_idx] = sl.predict(X.iloc[fold.validation_idx])

        summary = sl.cv_risk_.copy()
        summary.insert(0, 'fold', fold.fold_name)
        summaries.append(summary)

    ids = fold_ids(folds, len(df))
    predictions = pd.DataFrame({
        'community': df['community'].to_numpy() if 'community' in df.columns else np.arange(len(df)),
        'fold': ids,
        'y': y,
        'pred': pred,
        'weight': w,
    })
    return predictions, pd.concat(summaries, ignore_index=True)


def evaluate_predictions(
    predictions: pd.DataFrame,
    binary: bool = False,
    alpha: float = 0.05
) -> Dict[str, float]:
    """
    Cross-validated performance of out-of-fold predictions.

    Continuous outcomes report R² with influence-function CI and MSE;
    binary outcomes report AUC with influence-curve CI and Brier score.
    """
    y = predictions['y'].to_numpy(dtype=float)
    pred = predictions['pred'].to_numpy(dtype=float)
    ids = predictions['fold'].to_numpy()

    metrics: Dict[str, float] = {
        'n_samples': int(len(y)),
        'n_folds': int(len(np.unique(ids))),
        'mse': compute_mse(y, pred),
    }
    if binary:
        auc = auc_influence_ci(y, pred, fold_ids=ids, alpha=alpha)
        metrics.update({
            'auc': auc['auc'],
            'auc_se': auc['se'],
            'auc_ci_lower': auc['ci_lower'],
            'auc_ci_upper': auc['ci_upper'],
            'brier': compute_brier_score(y.astype(int), pred),
            'n_positive': int(np.sum(y == 1)),
        })
    else:
        r2 = r2_influence_ci(y, pred, fold_ids=ids, alpha=alpha)
        metrics.update({
            'r2': r2['r2'],
            'r2_se_log': r2['se_log'],
            'r2_ci_lower': r2['ci_lower'],
            'r2_ci_upper': r2['ci_upper'],
        })
    return metrics


def run_task(df: pd.DataFrame, task: PredictionTask, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run one prediction task end to end.

    Returns:
        Dictionary with task fields, metrics, predictions and learner summary
    """
    library_config = require(config, 'models', 'library')
    cv_cfg = config.get('cv', {}) or {}
    sl_config = {
        'n_folds': cv_cfg.get('inner_n_folds', 5),
        'fold_scheme': cv_cfg.get('inner_scheme', 'random'),
        'block_size_km': cv_cfg.get('block_size_km'),
        'seed': cv_cfg.get('seed', 42),
        'metalearner': config.get('models', {}).get('metalearner', 'nnls'),
    }

    data = df.dropna(subset=[task.outcome]).reset_index(drop=True)
    feature_cols = usable_feature_columns(data, task)
    folds = task_folds(data, task, config)
    weight_col = None if task.binary else 'outcome_n'

    predictions, learner_summary = cross_validated_predictions(
        data, feature_cols, task.outcome, weight_col, folds, library_config, sl_config,
        use_coordinates=task.feature_set != 'none',
    )
    predictions.insert(0, 'task_id', task.task_id)
    learner_summary.insert(0, 'task_id', task.task_id)

    metrics = evaluate_predictions(
        predictions, binary=task.binary, alpha=config.get('prediction', {}).get('alpha', 0.05)
    )
    metrics['n_features'] = len(feature_cols)

    return {
        'task_id': task.task_id,
        'task': asdict(task),
        'metrics': metrics,
        'predictions': predictions,
        'learner_summary': learner_summary,
    }


def run_tasks(
    df: pd.DataFrame,
    tasks: List[PredictionTask],
    config: Dict[str, Any],
    n_jobs: int = 1
) -> List[Dict[str, Any]]:
    """Run independent tasks in parallel (joblib)."""
    return Parallel(n_jobs=n_jobs)(delayed(run_task)(df, task, config) for task in tasks)


def results_to_dataframe(results: List[Dict[str, Any]]) -> pd.DataFrame:
    """One row per task: task fields plus metrics."""
    rows = []
    for res in results:
        row = {'task_id': res['task_id']}
        row.update({k: v for k, v in res['task'].items() if k != 'surveys'})
        row['surveys'] = ','.join(str(s) for s in res['task']['surveys']) if res['task']['surveys'] else 'all'
        row.update(res['metrics'])
        rows.append(row)
    return pd.DataFrame(rows)
