"""
Nadaraya-Watson local averaging.

Provides the functional smoother ``nadaraya_watson`` returning predictions
together with the smoother (hat) matrix, and a sklearn-compatible
``NadarayaWatson`` estimator built on top of it.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.utils.validation import check_is_fitted, validate_data

from kernel_smoother._validation import as_query, check_xy
from kernel_smoother.config import settings
from kernel_smoother.exceptions import DegenerateWeightsError, InvalidParameterError
from kernel_smoother.kernels import (
    EpanechnikovKernel,
    Kernel,
    euclidean_distances,
    get_kernel,
)

logger = logging.getLogger(__name__)

DegeneratePolicy = Literal["raise", "mean"]


@dataclass
class SmootherResult:
    """
    Predictions and the smoother matrix that produced them.

    Unpacks as ``y_hat, K = nadaraya_watson(...)``.

    Attributes:
        predictions: Fitted values of shape (n_queries,).
        weights: Row-normalized smoother matrix of shape (n_queries, n_train).
        degenerate_rows: Query rows that had no kernel support and were
            replaced by the training mean (only with ``on_degenerate="mean"``).
    """

    predictions: NDArray[np.floating]
    weights: NDArray[np.floating]
    degenerate_rows: NDArray[np.intp]

    def __iter__(self) -> Iterator[NDArray[np.floating]]:
        yield self.predictions
        yield self.weights


def normalize_weights(
    raw_weights: NDArray[np.floating],
    on_degenerate: DegeneratePolicy = "raise",
) -> tuple[NDArray[np.floating], NDArray[np.intp]]:
    """
    Row-normalize raw kernel weights so each row sums to one.

    Args:
        raw_weights: Non-negative weights of shape (n_queries, n_train).
        on_degenerate: What to do with rows whose weights sum to zero.
            "raise" raises DegenerateWeightsError; "mean" gives the row
            uniform weights, which predicts the training mean.

    Returns:
        Normalized weights and the indices of degenerate rows.
    """
    if on_degenerate not in ("raise", "mean"):
        raise InvalidParameterError(
            f"on_degenerate must be 'raise' or 'mean', got {on_degenerate!r}"
        )
    weight_sums = np.sum(raw_weights, axis=1)
    empty = np.flatnonzero(weight_sums <= 0)

    if empty.size > 0:
        if on_degenerate == "raise":
            raise DegenerateWeightsError(empty)
        logger.warning(
            "No kernel support for %d query point(s); predicting the training mean",
            empty.size,
        )
        raw_weights = raw_weights.copy()
        raw_weights[empty] = 1.0
        weight_sums = np.sum(raw_weights, axis=1)

    return raw_weights / weight_sums[:, np.newaxis], empty


def nadaraya_watson(
    y: ArrayLike,
    X: ArrayLike,
    X0: ArrayLike,
    kernel: str | Kernel,
    on_degenerate: DegeneratePolicy = "raise",
) -> SmootherResult:
    """
    Nadaraya-Watson estimate at each query point.

        K[j, i] = w_i(x0_j) / sum_l w_l(x0_j)
        y_hat_j = sum_i K[j, i] * y_i

    Args:
        y: Training targets of shape (n_train,).
        X: Training inputs of shape (n_train, n_features).
        X0: Query points of shape (n_queries, n_features).
        kernel: Kernel instance or registered kernel name.
        on_degenerate: Policy for query points without kernel support.

    Returns:
        SmootherResult with predictions and the smoother matrix.

    Raises:
        InvalidInputError: Empty or mismatched inputs.
        InvalidParameterError: Kernel hyperparameter out of domain.
        DegenerateWeightsError: A query row has zero total weight and
            on_degenerate is "raise".

    Example:
        >>> y_hat, K = nadaraya_watson(y, X, X, EpanechnikovKernel(0.5))
    """
    y, X = check_xy(y, X)
    X0 = as_query(X0, X.shape[1])
    kernel = get_kernel(kernel)

    raw = kernel.from_distances(euclidean_distances(X0, X))
    weights, empty = normalize_weights(raw, on_degenerate)
    predictions = weights @ y

    return SmootherResult(predictions=predictions, weights=weights, degenerate_rows=empty)


class NadarayaWatson(RegressorMixin, BaseEstimator):
    """
    Nadaraya-Watson kernel regression estimator.

    Implements local constant kernel regression:

        y_hat(x) = sum_i w_i(x) * y_i / sum_i w_i(x)

    Parameters
    ----------
    kernel : str or Kernel, default="epanechnikov"
        "epanechnikov", "knn" or a Kernel instance. A Kernel instance is
        used as given and ``bandwidth`` / ``n_neighbors`` are ignored.

    bandwidth : float or "cv", default=1.0
        Epanechnikov bandwidth. "cv" selects it by k-fold cross-validation
        over a Silverman-scaled grid.

    n_neighbors : int or "cv", default=5
        Number of neighbors for the "knn" kernel. "cv" selects it by
        k-fold cross-validation.

    degenerate : {"raise", "mean"}, default="raise"
        Handling of query points without kernel support.

    n_folds : int, default=5
        Number of folds when a hyperparameter is "cv".

    selection : {"min", "one_se"}, default="min"
        Cross-validation selection rule.

    random_state : int or None, default=None
        Seed for fold assignment; None uses the configured default seed.

    Attributes
    ----------
    X_ : ndarray of shape (n_samples, n_features)
        Training data

    y_ : ndarray of shape (n_samples,)
        Training targets

    kernel_ : Kernel
        Kernel with the fitted hyperparameter

    param_ : float or int
        Fitted bandwidth or number of neighbors

    effective_df_ : float
        Trace of the in-sample smoother matrix

    cv_results_ : CrossValidationResult or None
        Cross-validation results when a hyperparameter was selected

    Examples
    --------
    >>> import numpy as np
    >>> from kernel_smoother import NadarayaWatson
    >>> X = np.linspace(0, 10, 100).reshape(-1, 1)
    >>> y = np.sin(X[:, 0]) + 0.1 * np.random.randn(100)
    >>> model = NadarayaWatson(kernel="epanechnikov", bandwidth="cv").fit(X, y)
    >>> predictions = model.predict(X[:5])
    """

    def __init__(
        self,
        kernel: str | Kernel = "epanechnikov",
        bandwidth: float | str = 1.0,
        n_neighbors: int | str = 5,
        degenerate: DegeneratePolicy = "raise",
        n_folds: int = settings.n_folds,
        selection: str = "min",
        random_state: int | None = None,
    ):
        self.kernel = kernel
        self.bandwidth = bandwidth
        self.n_neighbors = n_neighbors
        self.degenerate = degenerate
        self.n_folds = n_folds
        self.selection = selection
        self.random_state = random_state

    def _resolve_kernel(
        self, X: NDArray[np.floating], y: NDArray[np.floating]
    ) -> Kernel:
        """Build the kernel, selecting its hyperparameter if requested."""
        self.cv_results_ = None
        if isinstance(self.kernel, Kernel):
            return self.kernel

        base = get_kernel(self.kernel)
        param = self.bandwidth if isinstance(base, EpanechnikovKernel) else self.n_neighbors

        if isinstance(param, str):
            if param != "cv":
                raise InvalidParameterError(f"Unknown hyperparameter method: {param}")
            from kernel_smoother.bandwidth import CrossValidatedBandwidth

            selector = CrossValidatedBandwidth(
                kernel=base,
                n_folds=self.n_folds,
                seed=self.random_state,
                rule=self.selection,
            )
            param = selector(X, y)
            self.cv_results_ = selector.cv_results_

        return base.with_param(param)

    def fit(self, X: ArrayLike, y: ArrayLike) -> "NadarayaWatson":
        """
        Fit the Nadaraya-Watson model.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training data
        y : array-like of shape (n_samples,)
            Target values

        Returns
        -------
        self
            Fitted estimator
        """
        X, y = validate_data(self, X, y, y_numeric=True, dtype=np.float64)
        y = y.astype(np.float64)

        self.X_ = X
        self.y_ = y
        self.kernel_ = self._resolve_kernel(X, y)
        self.param_ = self.kernel_.param
        self.effective_df_ = float(np.trace(self._smooth(X).weights))

        logger.debug(
            "Fitted %s kernel with param=%s (effective df %.2f)",
            self.kernel_.name,
            self.param_,
            self.effective_df_,
        )
        return self

    def _smooth(self, X: NDArray[np.floating]) -> SmootherResult:
        return nadaraya_watson(
            self.y_, self.X_, X, self.kernel_, on_degenerate=self.degenerate
        )

    def predict(self, X: ArrayLike) -> NDArray[np.floating]:
        """
        Predict using Nadaraya-Watson estimator.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Samples to predict

        Returns
        -------
        y_pred : ndarray of shape (n_samples,)
            Predicted values
        """
        check_is_fitted(self)
        X = validate_data(self, X, dtype=np.float64, reset=False)
        return self._smooth(X).predictions

    def get_weights(self, X: ArrayLike) -> NDArray[np.floating]:
        """
        Get normalized kernel weights for prediction points.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Points to get weights for

        Returns
        -------
        weights : ndarray of shape (n_samples, n_train)
            Rows of the smoother matrix
        """
        check_is_fitted(self)
        X = validate_data(self, X, dtype=np.float64, reset=False)
        return self._smooth(X).weights

    def smoother_matrix(self) -> NDArray[np.floating]:
        """In-sample smoother matrix H with y_hat = H @ y at the training inputs."""
        check_is_fitted(self)
        return self._smooth(self.X_).weights
