"""Input checks shared by the functional API."""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from sklearn.utils import check_array

from kernel_smoother.exceptions import InvalidInputError


def as_features(X: ArrayLike, name: str = "X") -> NDArray[np.floating]:
    """Return X as a finite float64 array of shape (n_samples, n_features).

    A 1-D input is read as a single feature column.
    """
    X = np.asarray(X)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    try:
        return check_array(X, dtype=np.float64, ensure_2d=True, copy=False)
    except ValueError as err:
        raise InvalidInputError(f"Invalid {name}: {err}") from err


def as_query(X0: ArrayLike, n_features: int, name: str = "X0") -> NDArray[np.floating]:
    """Return query points as shape (n_queries, n_features).

    A 1-D input of length n_features is one query point; any other 1-D
    input is read as a column of 1-D queries.
    """
    X0 = np.asarray(X0, dtype=np.float64)
    if X0.ndim == 0:
        X0 = X0.reshape(1, 1)
    elif X0.ndim == 1:
        X0 = X0.reshape(1, -1) if X0.size == n_features else X0.reshape(-1, 1)
    X0 = as_features(X0, name=name)
    if X0.shape[1] != n_features:
        raise InvalidInputError(
            f"{name} has {X0.shape[1]} features, expected {n_features}"
        )
    return X0


def as_targets(y: ArrayLike, name: str = "y") -> NDArray[np.floating]:
    """Return y as a non-empty finite float64 vector."""
    y = np.asarray(y, dtype=np.float64)
    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if y.ndim != 1:
        raise InvalidInputError(f"{name} must be 1-D, got shape {y.shape}")
    if y.size == 0:
        raise InvalidInputError(f"{name} is empty")
    if not np.all(np.isfinite(y)):
        raise InvalidInputError(f"{name} contains NaN or infinite values")
    return y


def check_xy(
    y: ArrayLike, X: ArrayLike
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Validate a training set and check y and X have matching lengths."""
    y = as_targets(y)
    X = as_features(X)
    if X.shape[0] != y.shape[0]:
        raise InvalidInputError(
            f"y has {y.shape[0]} observations but X has {X.shape[0]} rows"
        )
    return y, X


def check_pair(
    y: ArrayLike, y_pred: ArrayLike
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Validate observed and predicted vectors of the same length."""
    y = as_targets(y)
    y_pred = as_targets(y_pred, name="y_pred")
    if y.shape != y_pred.shape:
        raise InvalidInputError(
            f"y has shape {y.shape} but y_pred has shape {y_pred.shape}"
        )
    return y, y_pred
