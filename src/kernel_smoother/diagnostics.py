"""
Model-selection diagnostics for kernel smoothers.

Includes effective degrees of freedom (trace of the smoother matrix),
loss functions, and penalized error criteria (AIC, BIC) in the
mean-error-plus-complexity form used to compare bandwidths.
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from kernel_smoother._validation import check_pair, check_xy
from kernel_smoother.estimators import nadaraya_watson
from kernel_smoother.exceptions import InvalidInputError
from kernel_smoother.kernels import Kernel, get_kernel

LossFunction = Callable[[NDArray[np.floating], NDArray[np.floating]], NDArray[np.floating]]


def squared_error_loss(
    y: ArrayLike, y_pred: ArrayLike
) -> NDArray[np.floating]:
    """Elementwise squared error (y - y_pred)^2."""
    y, y_pred = check_pair(y, y_pred)
    return (y - y_pred) ** 2


def absolute_error_loss(
    y: ArrayLike, y_pred: ArrayLike
) -> NDArray[np.floating]:
    """Elementwise absolute error |y - y_pred|."""
    y, y_pred = check_pair(y, y_pred)
    return np.abs(y - y_pred)


def mean_error(
    y: ArrayLike,
    y_pred: ArrayLike,
    loss: LossFunction = squared_error_loss,
) -> float:
    """
    Average loss over all observations.

    Args:
        y: Observed values of shape (n_samples,).
        y_pred: Predicted values of shape (n_samples,).
        loss: Elementwise loss, squared error by default.

    Returns:
        Mean of loss(y, y_pred).
    """
    y, y_pred = check_pair(y, y_pred)
    return float(np.mean(loss(y, y_pred)))


def _check_df(df: float) -> float:
    df = float(df)
    if not np.isfinite(df) or df < 0:
        raise InvalidInputError(f"df must be finite and non-negative, got {df}")
    return df


def aic(y: ArrayLike, y_pred: ArrayLike, df: float) -> float:
    """
    Akaike-style criterion: mean squared error + (2 / n) * df.

    Equals the mean error when df is zero and grows linearly in df.
    """
    y, y_pred = check_pair(y, y_pred)
    n = y.shape[0]
    return mean_error(y, y_pred) + (2.0 / n) * _check_df(df)


def bic(y: ArrayLike, y_pred: ArrayLike, df: float) -> float:
    """
    Bayesian-style criterion: mean squared error + (ln(n) / n) * df.

    Penalizes complexity more than AIC once n > e^2 (about 7.4).
    """
    y, y_pred = check_pair(y, y_pred)
    n = y.shape[0]
    return mean_error(y, y_pred) + (np.log(n) / n) * _check_df(df)


def leverage(y: ArrayLike, X: ArrayLike, kernel: str | Kernel) -> NDArray[np.floating]:
    """
    Compute leverage values (diagonal of the in-sample smoother matrix).

    The leverage K_ii measures the influence of observation i on its
    own fitted value. For Nadaraya-Watson, 0 <= K_ii <= 1 and the sum of
    leverages is the effective degrees of freedom.

    Args:
        y: Training targets of shape (n_samples,).
        X: Training inputs of shape (n_samples, n_features).
        kernel: Kernel instance or registered kernel name.

    Returns:
        Leverage values of shape (n_samples,).
    """
    y, X = check_xy(y, X)
    return np.diag(nadaraya_watson(y, X, X, kernel).weights).copy()


def effective_df(y: ArrayLike, X: ArrayLike, kernel: str | Kernel) -> float:
    """
    Effective degrees of freedom of the smoother.

    Trace of the smoother matrix K obtained by predicting at the training
    inputs, so that y_hat = K y. A 1-nearest-neighbor smoother on distinct
    inputs reproduces y exactly and has df = n; a flat smoother has df = 1.

    Args:
        y: Training targets of shape (n_samples,).
        X: Training inputs of shape (n_samples, n_features).
        kernel: Kernel instance or registered kernel name.

    Returns:
        Trace of the in-sample smoother matrix.
    """
    return float(np.sum(leverage(y, X, kernel)))


@dataclass
class GoodnessOfFit:
    """
    In-sample fit summary for one kernel and hyperparameter.

    Attributes:
        kernel: Registry name of the kernel.
        param: Bandwidth or number of neighbors.
        n_samples: Number of observations.
        mse: Mean squared error at the training inputs.
        r_squared: Coefficient of determination.
        effective_df: Trace of the smoother matrix.
        aic: mse + (2 / n) * effective_df.
        bic: mse + (ln(n) / n) * effective_df.
    """

    kernel: str
    param: float
    n_samples: int
    mse: float
    r_squared: float
    effective_df: float
    aic: float
    bic: float

    @classmethod
    def from_fit(
        cls, y: ArrayLike, X: ArrayLike, kernel: str | Kernel
    ) -> "GoodnessOfFit":
        """Fit the smoother in-sample and collect its diagnostics."""
        y, X = check_xy(y, X)
        kernel = get_kernel(kernel)
        y_pred, K = nadaraya_watson(y, X, X, kernel)

        df = float(np.trace(K))
        mse = mean_error(y, y_pred)
        ss_tot = float(np.sum((y - np.mean(y)) ** 2))
        ss_res = float(np.sum((y - y_pred) ** 2))
        r_squared = 1 - ss_res / ss_tot if ss_tot > 0 else 0.0

        return cls(
            kernel=kernel.name,
            param=kernel.param,
            n_samples=y.shape[0],
            mse=mse,
            r_squared=r_squared,
            effective_df=df,
            aic=aic(y, y_pred, df),
            bic=bic(y, y_pred, df),
        )

    def summary(self) -> str:
        """Generate summary report."""
        lines = [
            "=" * 50,
            "Kernel Smoother Fit Summary",
            "=" * 50,
            f"Kernel:             {self.kernel} ({self.param:g})",
            f"Observations:       {self.n_samples}",
            f"MSE:                {self.mse:.6f}",
            f"R²:                 {self.r_squared:.6f}",
            f"Effective DF:       {self.effective_df:.2f}",
            f"AIC:                {self.aic:.6f}",
            f"BIC:                {self.bic:.6f}",
            "=" * 50,
        ]
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()
