"""
Kernel Smoother Package

Nadaraya-Watson local averaging with Epanechnikov and k-nearest-neighbor
weights, model-selection diagnostics, and k-fold cross-validation for
bandwidth / neighborhood-size selection.

Features:
- Nadaraya-Watson predictions with the full smoother (hat) matrix
- Epanechnikov and k-nearest-neighbor kernels
- Effective degrees of freedom (trace of the smoother matrix)
- Squared/absolute error, AIC and BIC
- Seeded k-fold cross-validation with min and one-standard-error rules
- sklearn-compatible NadarayaWatson estimator
"""

from kernel_smoother.config import Settings, settings
from kernel_smoother.logging_config import setup_logging
from kernel_smoother.bandwidth import (
    CrossValidatedBandwidth,
    CrossValidationResult,
    bandwidth_grid,
    cross_validate,
    kfold_indices,
    neighbor_grid,
    silverman_bandwidth,
)
from kernel_smoother.diagnostics import (
    GoodnessOfFit,
    absolute_error_loss,
    aic,
    bic,
    effective_df,
    leverage,
    mean_error,
    squared_error_loss,
)
from kernel_smoother.estimators import (
    NadarayaWatson,
    SmootherResult,
    nadaraya_watson,
)
from kernel_smoother.exceptions import (
    DegenerateWeightsError,
    InvalidConfigurationError,
    InvalidInputError,
    InvalidParameterError,
    KernelSmootherError,
)
from kernel_smoother.kernels import (
    EpanechnikovKernel,
    Kernel,
    KNearestNeighborKernel,
    epanechnikov_kernel,
    get_kernel,
    kernel_weight_matrix,
)

__version__ = "0.1.0"

__all__ = [
    # Estimators
    "NadarayaWatson",
    "SmootherResult",
    "nadaraya_watson",
    # Kernels
    "Kernel",
    "EpanechnikovKernel",
    "KNearestNeighborKernel",
    "epanechnikov_kernel",
    "get_kernel",
    "kernel_weight_matrix",
    # Diagnostics
    "GoodnessOfFit",
    "effective_df",
    "leverage",
    "squared_error_loss",
    "absolute_error_loss",
    "mean_error",
    "aic",
    "bic",
    # Cross-validation
    "CrossValidatedBandwidth",
    "CrossValidationResult",
    "cross_validate",
    "kfold_indices",
    "bandwidth_grid",
    "neighbor_grid",
    "silverman_bandwidth",
    # Errors
    "KernelSmootherError",
    "InvalidParameterError",
    "InvalidInputError",
    "InvalidConfigurationError",
    "DegenerateWeightsError",
    # Configuration
    "Settings",
    "settings",
    "setup_logging",
]
