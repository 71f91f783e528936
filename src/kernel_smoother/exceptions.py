"""
Typed errors raised by the smoother, diagnostics and cross-validation code.

All errors derive from ValueError so callers written against the
scikit-learn convention of catching ValueError keep working.
"""

from collections.abc import Sequence


class KernelSmootherError(ValueError):
    """Base class for all kernel_smoother errors."""


class InvalidParameterError(KernelSmootherError):
    """A kernel hyperparameter is outside its domain."""


class InvalidInputError(KernelSmootherError):
    """Empty, non-finite or shape-mismatched data."""


class InvalidConfigurationError(KernelSmootherError):
    """Cross-validation settings that cannot produce a valid run."""


class DegenerateWeightsError(KernelSmootherError):
    """
    One or more query points received zero total kernel weight.

    Attributes:
        rows: Indices of the query rows without kernel support.
    """

    def __init__(self, rows: Sequence[int], message: str | None = None):
        self.rows = [int(r) for r in rows]
        if message is None:
            shown = ", ".join(str(r) for r in self.rows[:10])
            if len(self.rows) > 10:
                shown += ", ..."
            message = (
                f"Kernel weights sum to zero for {len(self.rows)} query "
                f"point(s) (rows: {shown}). Widen the kernel support or "
                f"substitute a fallback prediction."
            )
        super().__init__(message)
