"""
Hyperparameter selection for kernel smoothers.

Brute-force k-fold cross-validation over a grid of bandwidths (Epanechnikov)
or neighbor counts (k-nearest-neighbor), with rule-of-thumb helpers to
build the grid.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import ArrayLike, NDArray
from sklearn.model_selection import KFold
from sklearn.utils.parallel import Parallel, delayed

from kernel_smoother._validation import as_features, check_xy
from kernel_smoother.config import settings
from kernel_smoother.diagnostics import LossFunction, mean_error, squared_error_loss
from kernel_smoother.estimators import nadaraya_watson
from kernel_smoother.exceptions import (
    DegenerateWeightsError,
    InvalidConfigurationError,
    InvalidParameterError,
)
from kernel_smoother.kernels import Kernel, KNearestNeighborKernel, get_kernel

logger = logging.getLogger(__name__)

SELECTION_RULES = ("min", "one_se")


def silverman_bandwidth(
    X: ArrayLike,
    factor: float = 1.0,
) -> NDArray[np.floating]:
    """
    Silverman's rule of thumb for bandwidth selection.

    h_j = factor * 1.06 * sigma_j * n^(-1/5)

    Parameters
    ----------
    X : ndarray of shape (n_samples, n_features)
        Training data
    factor : float, default=1.0
        Multiplicative factor to adjust bandwidth

    Returns
    -------
    ndarray of shape (n_features,)
        Bandwidth for each feature
    """
    X = as_features(X)
    n_samples = X.shape[0]

    # Robust scale: min of std and IQR / 1.349
    q75 = np.percentile(X, 75, axis=0)
    q25 = np.percentile(X, 25, axis=0)
    iqr = q75 - q25
    std = np.std(X, axis=0, ddof=1) if n_samples > 1 else np.zeros(X.shape[1])

    scale = np.minimum(std, iqr / 1.349)
    scale = np.where(scale > 0, scale, std)
    scale = np.where(scale > 0, scale, 1.0)

    return factor * 1.06 * scale * (n_samples ** (-1 / 5))


def bandwidth_grid(
    X: ArrayLike,
    n_values: int = 30,
    factor_range: tuple[float, float] = (0.1, 5.0),
) -> NDArray[np.floating]:
    """
    Log-spaced Epanechnikov bandwidths around the Silverman bandwidth.

    The Euclidean kernel uses a single radius, so the widest per-feature
    Silverman bandwidth is used as the reference scale.

    Args:
        X: Training inputs of shape (n_samples, n_features).
        n_values: Number of grid points.
        factor_range: Smallest and largest multiple of the reference scale.

    Returns:
        Increasing bandwidths of shape (n_values,).
    """
    if n_values < 1:
        raise InvalidConfigurationError(f"n_values must be >= 1, got {n_values}")
    h_rot = float(np.max(silverman_bandwidth(X)))
    low, high = factor_range
    return h_rot * np.logspace(np.log10(low), np.log10(high), n_values)


def neighbor_grid(n_train: int, n_values: int = 20) -> NDArray[np.intp]:
    """Distinct, roughly log-spaced neighbor counts between 1 and n_train."""
    if n_train < 1:
        raise InvalidConfigurationError(f"n_train must be >= 1, got {n_train}")
    if n_values < 1:
        raise InvalidConfigurationError(f"n_values must be >= 1, got {n_values}")
    ks = np.geomspace(1, n_train, n_values).round().astype(np.intp)
    return np.unique(ks)


def _check_n_folds(n_samples: int, n_folds: int) -> None:
    if isinstance(n_folds, (bool, np.bool_)) or int(n_folds) != n_folds:
        raise InvalidConfigurationError(f"n_folds must be an integer, got {n_folds}")
    if not 2 <= n_folds <= n_samples:
        raise InvalidConfigurationError(
            f"n_folds must be between 2 and {n_samples}, got {n_folds}"
        )


def kfold_indices(
    n_samples: int,
    n_folds: int,
    seed: int | None = None,
) -> list[NDArray[np.intp]]:
    """
    Randomly partition observation indices into k folds.

    Fold sizes differ by at most one. The same seed always gives the same
    partition.

    Args:
        n_samples: Number of observations n.
        n_folds: Number of folds k, 2 <= k <= n.
        seed: Random seed; None uses the configured default.

    Returns:
        List of k disjoint index arrays covering 0..n-1.
    """
    _check_n_folds(n_samples, n_folds)
    seed = settings.random_seed if seed is None else seed
    kf = KFold(n_splits=int(n_folds), shuffle=True, random_state=seed)
    folds = [test_idx for _, test_idx in kf.split(np.zeros((n_samples, 1)))]
    logger.debug(
        "Built %d folds over %d observations (sizes %s, seed=%s)",
        len(folds),
        n_samples,
        [len(f) for f in folds],
        seed,
    )
    return folds


def _fold_error(
    y: NDArray[np.floating],
    X: NDArray[np.floating],
    train_idx: NDArray[np.intp],
    test_idx: NDArray[np.intp],
    kernel: Kernel,
    loss: LossFunction,
    on_degenerate: str,
) -> float:
    """Fit on the training indices and score the held-out fold.

    With on_degenerate="skip" a fold without kernel support scores NaN.
    """
    try:
        result = nadaraya_watson(y[train_idx], X[train_idx], X[test_idx], kernel)
    except DegenerateWeightsError as err:
        if on_degenerate != "skip":
            raise
        logger.debug("Skipping %s param=%s: %s", kernel.name, kernel.param, err)
        return np.nan
    return mean_error(y[test_idx], result.predictions, loss)


@dataclass
class CrossValidationResult:
    """
    Test errors of a cross-validation sweep.

    Attributes:
        grid: Hyperparameter values of shape (n_params,).
        errors: Held-out mean errors of shape (n_folds, n_params).
        folds: Test indices of each fold.
        kernel: Registry name of the kernel that was swept.
        simpler_is_larger: Whether larger grid values give simpler fits.
    """

    grid: NDArray
    errors: NDArray[np.floating]
    folds: list[NDArray[np.intp]] = field(repr=False)
    kernel: str = "kernel"
    simpler_is_larger: bool = True

    @property
    def n_folds(self) -> int:
        return self.errors.shape[0]

    @property
    def valid(self) -> NDArray[np.bool_]:
        """Hyperparameters scored on every fold (no skipped cells)."""
        return np.all(np.isfinite(self.errors), axis=0)

    @property
    def mean_error(self) -> NDArray[np.floating]:
        """Mean test error per hyperparameter."""
        return np.mean(self.errors, axis=0)

    @property
    def std_error(self) -> NDArray[np.floating]:
        """Sample standard deviation (ddof=1) of the fold errors."""
        return np.std(self.errors, axis=0, ddof=1)

    @property
    def standard_error(self) -> NDArray[np.floating]:
        """Standard error of the mean CV error, std / sqrt(k)."""
        return self.std_error / np.sqrt(self.n_folds)

    def best_index(self, rule: str = "min") -> int:
        """
        Index of the selected hyperparameter.

        Rules:
            "min": smallest mean error; ties go to the smaller grid value.
            "one_se": simplest model whose mean error is within one
                standard error of the minimum.

        Hyperparameters with skipped folds are never selected.
        """
        if rule not in SELECTION_RULES:
            raise InvalidConfigurationError(
                f"Unknown selection rule '{rule}'. Valid options: {', '.join(SELECTION_RULES)}"
            )
        valid = self.valid
        if not np.any(valid):
            raise InvalidConfigurationError(
                "No hyperparameter in the grid was scored on every fold"
            )
        mean = np.where(valid, self.mean_error, np.inf)
        ties = np.flatnonzero(mean == np.min(mean))
        best = int(ties[np.argmin(self.grid[ties])])
        if rule == "min":
            return best

        threshold = mean[best] + self.standard_error[best]
        candidates = np.flatnonzero(valid & (mean <= threshold))
        if self.simpler_is_larger:
            return int(candidates[np.argmax(self.grid[candidates])])
        return int(candidates[np.argmin(self.grid[candidates])])

    def best_param(self, rule: str = "min"):
        """Selected hyperparameter value."""
        value = self.grid[self.best_index(rule)]
        return value.item() if hasattr(value, "item") else value

    def summary(self) -> str:
        """Per-hyperparameter table of mean and standard deviation of CV error."""
        best = best_se = -1
        if np.any(self.valid):
            best = self.best_index("min")
            best_se = self.best_index("one_se")
        lines = [
            f"{self.n_folds}-fold cross-validation ({self.kernel})",
            f"{'param':>12s} {'mean':>12s} {'std':>12s}",
        ]
        for i, (h, m, s) in enumerate(zip(self.grid, self.mean_error, self.std_error)):
            mark = ""
            if i == best:
                mark += " *min"
            if i == best_se:
                mark += " *1se"
            lines.append(f"{h:12.4g} {m:12.6f} {s:12.6f}{mark}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()


def cross_validate(
    y: ArrayLike,
    X: ArrayLike,
    grid: ArrayLike,
    kernel: str | Kernel,
    n_folds: int = settings.n_folds,
    seed: int | None = None,
    loss: LossFunction = squared_error_loss,
    n_jobs: int | None = None,
    on_degenerate: str = "raise",
) -> CrossValidationResult:
    """
    K-fold cross-validation of a kernel smoother over a hyperparameter grid.

    Every configuration error is raised before any fitting starts. Each
    (fold, hyperparameter) cell is independent; with n_jobs the cells are
    evaluated in parallel and the result is identical to a sequential run.

    Args:
        y: Targets of shape (n_samples,).
        X: Inputs of shape (n_samples, n_features).
        grid: Candidate bandwidths or neighbor counts.
        kernel: Kernel instance or name; its hyperparameter is replaced by
            each grid value.
        n_folds: Number of folds k, 2 <= k <= n.
        seed: Fold assignment seed; None uses the configured default.
        loss: Elementwise loss averaged over each held-out fold.
        n_jobs: Number of parallel jobs, None for sequential.
        on_degenerate: "raise" propagates DegenerateWeightsError; "skip"
            records NaN for the affected cell and excludes that
            hyperparameter from selection.

    Returns:
        CrossValidationResult with an error matrix of shape
        (n_folds, len(grid)).

    Raises:
        InvalidInputError: Empty or mismatched data.
        InvalidConfigurationError: Bad n_folds or empty grid.
        InvalidParameterError: A grid value is outside the kernel's domain.
        DegenerateWeightsError: A held-out point had no kernel support and
            on_degenerate is "raise".

    Example:
        >>> result = cross_validate(y, X, [0.5, 1.0, 2.0], "epanechnikov", seed=0)
        >>> result.best_param("one_se")
    """
    y, X = check_xy(y, X)
    n_samples = X.shape[0]
    _check_n_folds(n_samples, n_folds)

    if on_degenerate not in ("raise", "skip"):
        raise InvalidConfigurationError(
            f"on_degenerate must be 'raise' or 'skip', got {on_degenerate!r}"
        )

    grid_values = np.asarray(grid).ravel()
    if grid_values.size == 0:
        raise InvalidConfigurationError("hyperparameter grid is empty")

    base = get_kernel(kernel)
    kernels = [base.with_param(h.item()) for h in grid_values]

    folds = kfold_indices(n_samples, n_folds, seed)
    min_train = n_samples - max(len(f) for f in folds)
    for kern in kernels:
        if isinstance(kern, KNearestNeighborKernel) and kern.n_neighbors > min_train:
            raise InvalidParameterError(
                f"n_neighbors={kern.n_neighbors} exceeds the smallest training "
                f"fold ({min_train} observations)"
            )

    all_idx = np.arange(n_samples)
    splits = [(np.setdiff1d(all_idx, test_idx), test_idx) for test_idx in folds]

    cell_errors = Parallel(n_jobs=n_jobs)(
        delayed(_fold_error)(y, X, train_idx, test_idx, kern, loss, on_degenerate)
        for kern in kernels
        for train_idx, test_idx in splits
    )
    errors = np.asarray(cell_errors, dtype=np.float64).reshape(len(kernels), n_folds).T

    result = CrossValidationResult(
        grid=np.asarray([kern.param for kern in kernels]),
        errors=errors,
        folds=folds,
        kernel=base.name,
        simpler_is_larger=base.simpler_is_larger,
    )
    for h, m in zip(result.grid, result.mean_error):
        logger.debug("%s param=%s mean CV error %.6f", base.name, h, m)
    return result


class CrossValidatedBandwidth:
    """
    Cross-validation hyperparameter selector for kernel smoothers.

    Selects the Epanechnikov bandwidth or the number of nearest neighbors
    by k-fold cross-validation over a grid.

    Args:
        kernel: Kernel name or instance.
        grid: Candidate values. If None, a Silverman-scaled bandwidth grid
            or a log-spaced neighbor grid is built from the data.
        n_folds: Number of folds.
        seed: Fold assignment seed; None uses the configured default.
        rule: Selection rule, "min" or "one_se".
        n_values: Grid size when grid is None.
        n_jobs: Number of parallel jobs for the sweep.
        on_degenerate: "skip" (default) excludes hyperparameters that leave
            a held-out point without kernel support; "raise" propagates
            DegenerateWeightsError.

    Attributes:
        cv_results_: CrossValidationResult after calling the selector.

    Example:
        >>> selector = CrossValidatedBandwidth(kernel="knn", rule="one_se")
        >>> k = selector(X, y)
        >>> print(selector.cv_results_)
    """

    def __init__(
        self,
        kernel: str | Kernel = "epanechnikov",
        grid: ArrayLike | None = None,
        n_folds: int = settings.n_folds,
        seed: int | None = None,
        rule: str = "min",
        n_values: int = 30,
        n_jobs: int | None = None,
        on_degenerate: str = "skip",
    ):
        self.kernel = kernel
        self.grid = grid
        self.n_folds = n_folds
        self.seed = seed
        self.rule = rule
        self.n_values = n_values
        self.n_jobs = n_jobs
        self.on_degenerate = on_degenerate
        self.cv_results_: CrossValidationResult | None = None

    def _default_grid(self, X: NDArray[np.floating], base: Kernel) -> NDArray:
        if isinstance(base, KNearestNeighborKernel):
            n_samples = X.shape[0]
            _check_n_folds(n_samples, self.n_folds)
            min_train = n_samples - int(np.ceil(n_samples / self.n_folds))
            return neighbor_grid(min_train, self.n_values)
        return bandwidth_grid(X, self.n_values)

    def __call__(self, X: ArrayLike, y: ArrayLike):
        """
        Select a hyperparameter via cross-validation.

        Parameters
        ----------
        X : ndarray of shape (n_samples, n_features)
            Training features
        y : ndarray of shape (n_samples,)
            Training targets

        Returns
        -------
        float or int
            Selected bandwidth or number of neighbors
        """
        if self.rule not in SELECTION_RULES:
            raise InvalidConfigurationError(
                f"Unknown selection rule '{self.rule}'. Valid options: {', '.join(SELECTION_RULES)}"
            )
        y, X = check_xy(y, X)
        base = get_kernel(self.kernel)
        grid = self._default_grid(X, base) if self.grid is None else self.grid

        self.cv_results_ = cross_validate(
            y,
            X,
            grid,
            base,
            n_folds=self.n_folds,
            seed=self.seed,
            n_jobs=self.n_jobs,
            on_degenerate=self.on_degenerate,
        )
        best = self.cv_results_.best_param(self.rule)
        logger.info(
            "Selected %s param=%s by %d-fold CV (rule=%s)",
            base.name,
            best,
            self.n_folds,
            self.rule,
        )
        return best
