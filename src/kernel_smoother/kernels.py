"""
Kernel weighting strategies for local averaging.

A kernel turns the distances between a query point and the training inputs
into one non-negative weight per training observation. Two strategies are
provided:

- EpanechnikovKernel: smooth weights that vanish beyond the bandwidth.
- KNearestNeighborKernel: weight 1 for the k closest points, 0 otherwise.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.spatial.distance import cdist

from kernel_smoother._validation import as_features, as_query
from kernel_smoother.config import settings
from kernel_smoother.exceptions import InvalidInputError, InvalidParameterError


def epanechnikov_kernel(u: NDArray[np.floating]) -> NDArray[np.floating]:
    """
    Epanechnikov kernel (optimal in MSE sense).

    K(u) = 0.75 * (1 - u^2) for |u| <= 1, else 0

    Parameters
    ----------
    u : ndarray
        Scaled distances ||x - x_i|| / h

    Returns
    -------
    ndarray
        Kernel weights
    """
    weights = 0.75 * (1 - u**2)
    weights = np.where(np.abs(u) <= 1, weights, 0.0)
    return weights


def euclidean_distances(
    X0: NDArray[np.floating], X_train: NDArray[np.floating]
) -> NDArray[np.floating]:
    """Distances of shape (n_queries, n_train) between query and training rows."""
    return cdist(X0, X_train, metric="euclidean")


class Kernel(ABC):
    """
    Weighting strategy shared by the estimator and cross-validation.

    Subclasses hold a single hyperparameter, exposed as ``param``, and
    turn a matrix of query-to-training distances into raw weights.

    Attributes:
        name: Registry name of the kernel.
        simpler_is_larger: True when a larger hyperparameter gives a
            smoother (simpler) fit. Used by the one-standard-error rule.
    """

    name: str = "kernel"
    simpler_is_larger: bool = True

    @property
    @abstractmethod
    def param(self) -> float:
        """Current hyperparameter value."""

    @abstractmethod
    def with_param(self, value: float) -> "Kernel":
        """Return a copy of this kernel with a new hyperparameter."""

    @abstractmethod
    def from_distances(self, distances: NDArray[np.floating]) -> NDArray[np.floating]:
        """Raw weights of shape (n_queries, n_train) from distances."""

    def weight_matrix(
        self, X_train: ArrayLike, X0: ArrayLike
    ) -> NDArray[np.floating]:
        """Raw (unnormalized) weights for every query row."""
        X_train = as_features(X_train, name="X_train")
        X0 = as_query(X0, X_train.shape[1])
        return self.from_distances(euclidean_distances(X0, X_train))

    def weights(self, X_train: ArrayLike, x0: ArrayLike) -> NDArray[np.floating]:
        """
        Raw weights of every training observation for one query point.

        Args:
            X_train: Training inputs of shape (n_train, n_features).
            x0: Query point of shape (n_features,) or (1, n_features).

        Returns:
            Non-negative weights of shape (n_train,).
        """
        X_train = as_features(X_train, name="X_train")
        x0 = as_query(x0, X_train.shape[1], name="x0")
        if x0.shape[0] != 1:
            raise InvalidInputError(
                f"x0 must be a single point, got {x0.shape[0]} rows"
            )
        return self.from_distances(euclidean_distances(x0, X_train))[0]


@dataclass(frozen=True)
class EpanechnikovKernel(Kernel):
    """
    Epanechnikov weights on the Euclidean distance scaled by the bandwidth.

    w_i = 0.75 * (1 - d_i^2) if d_i <= 1 else 0, with d_i = ||x_i - x0|| / h.
    A point exactly one bandwidth away sits on the boundary and gets weight 0.

    Args:
        bandwidth: Neighborhood radius, must be positive and finite.
    """

    bandwidth: float = settings.bandwidth

    name = "epanechnikov"
    simpler_is_larger = True

    def __post_init__(self):
        bandwidth = float(self.bandwidth)
        if not np.isfinite(bandwidth) or bandwidth <= 0:
            raise InvalidParameterError(
                f"bandwidth must be positive and finite, got {self.bandwidth}"
            )
        object.__setattr__(self, "bandwidth", bandwidth)

    @property
    def param(self) -> float:
        return self.bandwidth

    def with_param(self, value: float) -> "EpanechnikovKernel":
        return replace(self, bandwidth=value)

    def from_distances(self, distances: NDArray[np.floating]) -> NDArray[np.floating]:
        return epanechnikov_kernel(distances / self.bandwidth)


@dataclass(frozen=True)
class KNearestNeighborKernel(Kernel):
    """
    Binary weights selecting the k closest training points.

    Distances are ranked with a stable sort, so ties are resolved in favour
    of the training point with the lower index.

    Args:
        n_neighbors: Number of neighbors k, 1 <= k <= n_train.
    """

    n_neighbors: int = 5

    name = "knn"
    simpler_is_larger = True

    def __post_init__(self):
        k = self.n_neighbors
        if isinstance(k, (bool, np.bool_)) or not float(k).is_integer():
            raise InvalidParameterError(f"n_neighbors must be an integer, got {k}")
        if int(k) < 1:
            raise InvalidParameterError(f"n_neighbors must be >= 1, got {k}")
        object.__setattr__(self, "n_neighbors", int(k))

    @property
    def param(self) -> int:
        return self.n_neighbors

    def with_param(self, value: float) -> "KNearestNeighborKernel":
        return replace(self, n_neighbors=value)

    def from_distances(self, distances: NDArray[np.floating]) -> NDArray[np.floating]:
        n_train = distances.shape[1]
        if self.n_neighbors > n_train:
            raise InvalidParameterError(
                f"n_neighbors={self.n_neighbors} exceeds the {n_train} "
                f"available training points"
            )
        order = np.argsort(distances, axis=1, kind="stable")
        nearest = order[:, : self.n_neighbors]
        weights = np.zeros_like(distances, dtype=np.float64)
        np.put_along_axis(weights, nearest, 1.0, axis=1)
        return weights


KERNELS: dict[str, type[Kernel]] = {
    "epanechnikov": EpanechnikovKernel,
    "knn": KNearestNeighborKernel,
    "nearest_neighbor": KNearestNeighborKernel,
}


def get_kernel(kernel: str | Kernel, param: float | None = None) -> Kernel:
    """
    Get a kernel by name or return a Kernel instance.

    Parameters
    ----------
    kernel : str or Kernel
        Kernel name ("epanechnikov", "knn", "nearest_neighbor") or instance
    param : float or int, optional
        Hyperparameter (bandwidth or number of neighbors). When None the
        kernel's default (or the instance's own value) is kept.

    Returns
    -------
    Kernel
        Kernel instance
    """
    if isinstance(kernel, Kernel):
        return kernel if param is None else kernel.with_param(param)
    if kernel not in KERNELS:
        valid = ", ".join(KERNELS.keys())
        raise InvalidParameterError(f"Unknown kernel '{kernel}'. Valid options: {valid}")
    kernel_cls = KERNELS[kernel]
    return kernel_cls() if param is None else kernel_cls(param)


def kernel_weight_matrix(
    X_train: ArrayLike,
    X0: ArrayLike,
    kernel: str | Kernel,
) -> NDArray[np.floating]:
    """
    Compute raw kernel weights for every query row.

    Parameters
    ----------
    X_train : ndarray of shape (n_train, n_features)
        Training points
    X0 : ndarray of shape (n_queries, n_features)
        Evaluation points
    kernel : str or Kernel
        Weighting strategy

    Returns
    -------
    ndarray of shape (n_queries, n_train)
        Non-negative, unnormalized weights
    """
    return get_kernel(kernel).weight_matrix(X_train, X0)
