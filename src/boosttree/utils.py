"""
Utility functions for boosting: link function, loss, gradients, input checks and metrics.

References:
- Friedman, J. H. (2001). Greedy function approximation: A gradient boosting machine.
- Chen, T., & Guestrin, C. (2016). XGBoost: A scalable tree boosting system.
"""

from typing import Sequence, Tuple, Union
import numpy as np
from scipy.special import expit, log_expit
from sklearn.metrics import (
    accuracy_score, precision_score, recall_score, f1_score, log_loss, roc_auc_score
)

from .exceptions import InvalidInputError

ArrayLike = Union[np.ndarray, Sequence[Sequence[float]]]


# ===========================
# Link, Loss and Gradients
# ===========================

def sigmoid(x: np.ndarray) -> np.ndarray:
    """Logistic link 1 / (1 + exp(-x)), stable for large |x|."""
    return expit(x)


def logistic_loss(y_true: np.ndarray, y_pred_raw: np.ndarray) -> float:
    """
    Binary cross-entropy of raw scores.

    For y ∈ {0,1} and p = sigmoid(F):
    L = -y*log(p) - (1-y)*log(1-p) = -y*log σ(F) - (1-y)*log σ(-F).
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred_raw = np.asarray(y_pred_raw, dtype=float)
    return float(-np.mean(y_true * log_expit(y_pred_raw) + (1 - y_true) * log_expit(-y_pred_raw)))


def residual_gradient(y_true: np.ndarray, y_pred: np.ndarray) -> np.ndarray:
    """
    First-order residual fitted by each boosting round: g = y - F.

    F is the current additive prediction (starting from the base score),
    not its sigmoid. No hessian term is used.
    """
    return y_true - y_pred


# ===========================
# Input Validation
# ===========================

def _as_matrix(X: ArrayLike, name: str) -> np.ndarray:
    """Convert a 2-D array or a sequence of rows to a float matrix, rejecting ragged rows."""
    if isinstance(X, np.ndarray):
        if X.ndim != 2:
            raise InvalidInputError(f"{name} must be 2-dimensional, got shape {X.shape}")
        try:
            return X.astype(float, copy=False)
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"{name} must contain numeric features") from exc

    rows = list(X)
    if len(rows) == 0:
        return np.empty((0, 0), dtype=float)
    if not all(hasattr(row, "__len__") for row in rows):
        raise InvalidInputError(f"{name} must be a sequence of feature rows")
    n_features = len(rows[0])
    for i, row in enumerate(rows):
        if len(row) != n_features:
            raise InvalidInputError(
                f"{name} row {i} has {len(row)} features, expected {n_features}"
            )
    try:
        return np.asarray(rows, dtype=float).reshape(len(rows), n_features)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must contain numeric features") from exc


def is_ragged(X: ArrayLike) -> bool:
    """True when X is a sequence of rows that do not all have the same length."""
    if isinstance(X, np.ndarray):
        return False
    return len({len(row) for row in X if hasattr(row, "__len__")}) > 1


def check_vector(x: Sequence[float], name: str = "x") -> np.ndarray:
    """Validate one feature vector and return it as a 1-D float array."""
    try:
        x = np.asarray(x, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must contain numeric features") from exc
    if x.ndim != 1:
        raise InvalidInputError(f"{name} must be 1-dimensional, got shape {x.shape}")
    if not np.all(np.isfinite(x)):
        raise InvalidInputError(f"{name} contains NaN or infinite values")
    return x


def check_features(X: ArrayLike, name: str = "X", allow_empty: bool = False) -> np.ndarray:
    """
    Validate a feature matrix.

    Parameters
    ----------
    X : array-like, shape (n_samples, n_features)
        Feature rows; every row must have the same length.
    name : str
        Name used in error messages.
    allow_empty : bool
        Accept a matrix with zero rows (prediction on an empty batch).

    Returns
    -------
    X : np.ndarray, shape (n_samples, n_features)
        Float copy (or view) of the input.

    Raises
    ------
    InvalidInputError
        If X is ragged, not 2-D, contains non-finite values, or is empty
        while allow_empty is False.
    """
    X = _as_matrix(X, name)
    if X.shape[0] == 0 and not allow_empty:
        raise InvalidInputError(f"{name} must contain at least one sample")
    if not np.all(np.isfinite(X)):
        raise InvalidInputError(f"{name} contains NaN or infinite values")
    return X


def check_X_y(X: ArrayLike, y: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    """Validate training data and return (X, y) as float arrays."""
    X = check_features(X)
    try:
        y = np.asarray(y, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("y must contain numeric labels") from exc
    if y.ndim != 1:
        raise InvalidInputError(f"y must be 1-dimensional, got shape {y.shape}")
    if X.shape[0] != y.shape[0]:
        raise InvalidInputError(
            f"X and y have incompatible shapes: {X.shape[0]} vs {y.shape[0]}"
        )
    if not np.all(np.isfinite(y)):
        raise InvalidInputError("y contains NaN or infinite values")
    return X, y


# ===========================
# Metrics
# ===========================

def compute_metrics_classification(
    y_true: np.ndarray,
    y_pred_proba: np.ndarray
) -> dict:
    """Compute classification metrics from predicted probabilities."""
    y_pred = (y_pred_proba >= 0.5).astype(int)

    # Clip probabilities for log_loss
    y_pred_proba_clipped = np.clip(y_pred_proba, 1e-15, 1 - 1e-15)

    # ROC AUC and log loss only if both classes present
    if len(np.unique(y_true)) == 2:
        logloss = log_loss(y_true, y_pred_proba_clipped)
        auc = roc_auc_score(y_true, y_pred_proba)
    else:
        logloss = np.nan
        auc = np.nan

    return {
        "accuracy": accuracy_score(y_true, y_pred),
        "precision": precision_score(y_true, y_pred, zero_division=0),
        "recall": recall_score(y_true, y_pred, zero_division=0),
        "f1": f1_score(y_true, y_pred, zero_division=0),
        "log_loss": logloss,
        "roc_auc": auc
    }
