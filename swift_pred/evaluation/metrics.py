"""
Evaluation Metrics for SWIFT spatial prediction

Implements:
- MSE and R² for community prevalence
- Cross-validated R² with influence-function confidence interval
- Cross-validated AUC with influence-curve confidence interval (any infection)
- Threshold classification metrics and Brier score
"""
import numpy as np
from typing import Dict, Optional
from scipy.stats import norm
from sklearn.metrics import (
    roc_auc_score,
    f1_score,
    brier_score_loss,
    confusion_matrix
)


def compute_mse(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    weights: Optional[np.ndarray] = None
) -> float:
    """(Weighted) mean squared error."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    return float(np.average((y_true - y_pred) ** 2, weights=weights))


def compute_r2(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    R² = 1 - MSE / Var(Y), with Var using the mean of y_true.

    Returns NaN when y_true is constant.
    """
    y_true = np.asarray(y_true, dtype=float)
    var = np.mean((y_true - y_true.mean()) ** 2)
    if var == 0:
        return np.nan
    return 1.0 - compute_mse(y_true, y_pred) / var


def _fold_array(fold_ids: Optional[np.ndarray], n: int) -> np.ndarray:
    if fold_ids is None:
        return np.zeros(n, dtype=int)
    fold_ids = np.asarray(fold_ids)
    if len(fold_ids) != n:
        raise ValueError(f"fold_ids has length {len(fold_ids)}, expected {n}")
    return fold_ids


def r2_influence_ci(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    fold_ids: Optional[np.ndarray] = None,
    alpha: float = 0.05
) -> Dict[str, float]:
    """
    Cross-validated R² with an influence-function based confidence interval.

    MSE and Var(Y) are computed within each validation fold and averaged
    across folds. The standard error is derived on the log(MSE / Var) scale,
    where each observation's influence is

        IF_i = [(y_i - f_i)² - MSE_v] / MSE - [(y_i - ȳ_v)² - Var_v] / Var

    and the interval is back-transformed as 1 - exp(θ ± z·se).

    Args:
        y_true: Observed outcome
        y_pred: Out-of-fold predictions
        fold_ids: Validation fold of each observation (None = single fold)
        alpha: 1 - confidence level

    Returns:
        Dictionary with r2, se_log, ci_lower, ci_upper, mse, var, n
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    n = len(y_true)
    if n < 2:
        raise ValueError("At least two observations are required")
    if len(y_pred) != n:
        raise ValueError("y_true and y_pred must have the same length")
    if np.isnan(y_true).any() or np.isnan(y_pred).any():
        raise ValueError("y_true and y_pred must not contain NaN")

    ids = _fold_array(fold_ids, n)

    ic_mse = np.zeros(n)
    ic_var = np.zeros(n)
    mse_folds = []
    var_folds = []
    for v in np.unique(ids):
        mask = ids == v
        yv = y_true[mask]
        resid2 = (yv - y_pred[mask]) ** 2
        dev2 = (yv - yv.mean()) ** 2
        mse_v = resid2.mean()
        var_v = dev2.mean()
        ic_mse[mask] = resid2 - mse_v
        ic_var[mask] = dev2 - var_v
        mse_folds.append(mse_v)
        var_folds.append(var_v)

    mse = float(np.mean(mse_folds))
    var = float(np.mean(var_folds))
    if var <= 0:
        raise ValueError("Outcome has zero variance within validation folds; R² is undefined")

    r2 = 1.0 - mse / var
    if mse == 0:
        return {'r2': 1.0, 'se_log': 0.0, 'ci_lower': 1.0, 'ci_upper': 1.0,
                'mse': mse, 'var': var, 'n': n}

    ic_log = ic_mse / mse - ic_var / var
    se_log = float(np.sqrt(np.mean(ic_log ** 2) / n))
    z = norm.ppf(1 - alpha / 2)
    theta = np.log(mse / var)

    return {
        'r2': float(r2),
        'se_log': se_log,
        'ci_lower': float(1.0 - np.exp(theta + z * se_log)),
        'ci_upper': float(1.0 - np.exp(theta - z * se_log)),
        'mse': mse,
        'var': var,
        'n': n,
    }


def _auc_influence(y: np.ndarray, pred: np.ndarray):
    pos = pred[y == 1]
    neg = pred[y == 0]
    # Proportion of negatives ranked below each positive (ties count half)
    below = ((pos[:, None] > neg[None, :]) + 0.5 * (pos[:, None] == neg[None, :])).mean(axis=1)
    # Proportion of positives ranked above each negative
    above = ((pos[:, None] > neg[None, :]) + 0.5 * (pos[:, None] == neg[None, :])).mean(axis=0)
    auc = below.mean()
    p = len(pos) / len(y)

    ic = np.empty(len(y))
    ic[y == 1] = (below - auc) / p
    ic[y == 0] = (above - auc) / (1 - p)
    return auc, ic


def auc_influence_ci(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    fold_ids: Optional[np.ndarray] = None,
    alpha: float = 0.05
) -> Dict[str, float]:
    """
    Cross-validated AUC with influence-curve standard error.

    AUC is computed within each validation fold and averaged. Folds holding a
    single class are skipped; if no fold has both classes the result is NaN.

    Returns:
        Dictionary with auc, se, ci_lower, ci_upper, n, n_folds_used
    """
    y_true = np.asarray(y_true, dtype=float).astype(int)
    y_pred = np.asarray(y_pred, dtype=float)
    n = len(y_true)
    ids = _fold_array(fold_ids, n)

    aucs = []
    ic2 = []
    n_used = 0
    for v in np.unique(ids):
        mask = ids == v
        yv = y_true[mask]
        if len(np.unique(yv)) < 2:
            continue
        auc_v, ic_v = _auc_influence(yv, y_pred[mask])
        aucs.append(auc_v)
        ic2.append(np.mean(ic_v ** 2))
        n_used += int(mask.sum())

    if not aucs:
        return {'auc': np.nan, 'se': np.nan, 'ci_lower': np.nan, 'ci_upper': np.nan,
                'n': n, 'n_folds_used': 0}

    auc = float(np.mean(aucs))
    se = float(np.sqrt(np.mean(ic2) / n_used))
    z = norm.ppf(1 - alpha / 2)
    return {
        'auc': auc,
        'se': se,
        'ci_lower': float(max(auc - z * se, 0.0)),
        'ci_upper': float(min(auc + z * se, 1.0)),
        'n': n,
        'n_folds_used': len(aucs),
    }


def compute_auc(y_true: np.ndarray, y_pred_proba: np.ndarray) -> float:
    """
    Compute AUC-ROC score.

    Returns:
        AUC score, NaN when only one class is present
    """
    if len(np.unique(y_true)) < 2:
        return np.nan
    return float(roc_auc_score(y_true, y_pred_proba))


def compute_classification_metrics(
    y_true: np.ndarray,
    y_pred_proba: np.ndarray,
    threshold: float
) -> Dict[str, float]:
    """
    Compute classification metrics at a given threshold.

    Args:
        y_true: Binary true labels
        y_pred_proba: Predicted probabilities
        threshold: Classification threshold (config-driven)

    Returns:
        Dictionary with metrics
    """
    y_pred = (y_pred_proba >= threshold).astype(int)

    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()

    return {
        'sensitivity': tp / (tp + fn) if (tp + fn) > 0 else 0.0,
        'specificity': tn / (tn + fp) if (tn + fp) > 0 else 0.0,
        'precision': tp / (tp + fp) if (tp + fp) > 0 else 0.0,
        'f1': f1_score(y_true, y_pred, zero_division=0),
        'true_positives': int(tp),
        'false_positives': int(fp),
        'true_negatives': int(tn),
        'false_negatives': int(fn)
    }


def compute_brier_score(y_true: np.ndarray, y_pred_proba: np.ndarray) -> float:
    """
    Compute Brier score (calibration metric).

    Lower is better. 0.0 = perfect, 0.25 = random for balanced classes.
    """
    return float(brier_score_loss(y_true, np.clip(y_pred_proba, 0.0, 1.0)))


def compute_all_metrics(
    y_true: np.ndarray,
    y_pred_proba: np.ndarray,
    threshold: float = 0.5
) -> Dict[str, float]:
    """
    Compute all binary evaluation metrics.

    Args:
        y_true: Binary true labels
        y_pred_proba: Predicted probabilities
        threshold: Classification threshold

    Returns:
        Dictionary with all metrics
    """
    y_true = np.asarray(y_true, dtype=np.float64).astype(int)
    y_pred_proba = np.asarray(y_pred_proba, dtype=np.float64)

    metrics = {}
    metrics['auc'] = compute_auc(y_true, y_pred_proba)
    metrics.update(compute_classification_metrics(y_true, y_pred_proba, threshold))
    metrics['brier'] = compute_brier_score(y_true, y_pred_proba)

    metrics['n_samples'] = len(y_true)
    metrics['n_positive'] = int(np.sum(y_true == 1))
    metrics['n_negative'] = int(np.sum(y_true == 0))

    return metrics


def print_metrics(metrics: Dict[str, float], title: str = "Metrics") -> None:
    """Pretty print metrics."""
    print(f"\n{title}")
    print("-" * 40)
    if 'r2' in metrics:
        print(f"  R²:           {metrics.get('r2', np.nan):.3f} "
              f"({metrics.get('r2_ci_lower', np.nan):.3f}, {metrics.get('r2_ci_upper', np.nan):.3f})")
        print(f"  MSE:          {metrics.get('mse', np.nan):.4f}")
    if 'auc' in metrics:
        print(f"  AUC:          {metrics.get('auc', np.nan):.3f} "
              f"({metrics.get('auc_ci_lower', np.nan):.3f}, {metrics.get('auc_ci_upper', np.nan):.3f})")
    if 'brier' in metrics:
        print(f"  Brier:        {metrics.get('brier', np.nan):.3f}")
    print(f"  Samples:      {metrics.get('n_samples', 0)}")
