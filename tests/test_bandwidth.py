"""Tests for cross-validated hyperparameter selection."""

import numpy as np
import pytest

from kernel_smoother.bandwidth import (
    CrossValidatedBandwidth,
    CrossValidationResult,
    bandwidth_grid,
    cross_validate,
    kfold_indices,
    neighbor_grid,
    silverman_bandwidth,
)
from kernel_smoother.config import settings
from kernel_smoother.diagnostics import absolute_error_loss, mean_error
from kernel_smoother.estimators import nadaraya_watson
from kernel_smoother.exceptions import (
    DegenerateWeightsError,
    InvalidConfigurationError,
    InvalidInputError,
    InvalidParameterError,
)
from kernel_smoother.kernels import EpanechnikovKernel, KNearestNeighborKernel


class TestSilvermanBandwidth:
    """Tests for Silverman's rule of thumb."""

    def test_returns_correct_shape(self):
        """Returns bandwidth for each feature."""
        X = np.random.randn(100, 3)
        assert silverman_bandwidth(X).shape == (3,)

    def test_factor_scaling(self):
        """Factor scales bandwidth linearly."""
        X = np.random.randn(100, 2)
        h1 = silverman_bandwidth(X, factor=1.0)
        h2 = silverman_bandwidth(X, factor=2.0)
        np.testing.assert_array_almost_equal(h2, 2 * h1)

    def test_handles_constant_feature(self):
        """Handles features with zero variance."""
        X = np.column_stack([np.random.randn(50), np.ones(50)])
        assert np.all(silverman_bandwidth(X) > 0)


class TestGrids:
    """Tests for default hyperparameter grids."""

    def test_bandwidth_grid_spans_factor_range(self, simple_1d_data):
        """Grid runs from low to high multiples of the Silverman bandwidth."""
        X, _ = simple_1d_data
        h_rot = silverman_bandwidth(X)[0]
        grid = bandwidth_grid(X, n_values=10, factor_range=(0.5, 4.0))
        assert grid.shape == (10,)
        assert np.all(np.diff(grid) > 0)
        assert grid[0] == pytest.approx(0.5 * h_rot)
        assert grid[-1] == pytest.approx(4.0 * h_rot)

    def test_neighbor_grid(self):
        """Neighbor grid is sorted, distinct and covers 1..n_train."""
        ks = neighbor_grid(80, n_values=20)
        assert ks[0] == 1
        assert ks[-1] == 80
        assert np.all(np.diff(ks) > 0)

    def test_neighbor_grid_small_n(self):
        """Duplicates collapse when n_train is small."""
        np.testing.assert_array_equal(neighbor_grid(3, n_values=20), [1, 2, 3])

    def test_invalid_sizes(self):
        """Empty grids are rejected."""
        with pytest.raises(InvalidConfigurationError):
            neighbor_grid(0)
        with pytest.raises(InvalidConfigurationError):
            bandwidth_grid(np.arange(10.0), n_values=0)


class TestKFoldIndices:
    """Tests for the random fold partition."""

    def test_partition(self):
        """Folds are disjoint and cover every index exactly once."""
        folds = kfold_indices(133, 5, seed=3)
        assert len(folds) == 5
        combined = np.concatenate(folds)
        np.testing.assert_array_equal(np.sort(combined), np.arange(133))

    def test_balanced_sizes(self):
        """133 observations in 5 folds give sizes of 26 and 27."""
        sizes = sorted(len(f) for f in kfold_indices(133, 5, seed=0))
        assert sizes == [26, 26, 27, 27, 27]

    def test_deterministic(self):
        """The same seed gives the same folds."""
        a = kfold_indices(50, 4, seed=11)
        b = kfold_indices(50, 4, seed=11)
        for fa, fb in zip(a, b):
            np.testing.assert_array_equal(fa, fb)

    def test_seed_changes_partition(self):
        """Different seeds give different folds."""
        a = kfold_indices(50, 4, seed=1)
        b = kfold_indices(50, 4, seed=2)
        assert any(not np.array_equal(fa, fb) for fa, fb in zip(a, b))

    def test_default_seed(self):
        """No seed falls back to the configured default."""
        a = kfold_indices(30, 3)
        b = kfold_indices(30, 3, seed=settings.random_seed)
        for fa, fb in zip(a, b):
            np.testing.assert_array_equal(fa, fb)

    def test_leave_one_out(self):
        """k = n gives singleton folds."""
        folds = kfold_indices(6, 6, seed=0)
        assert all(len(f) == 1 for f in folds)

    @pytest.mark.parametrize("n_folds", [0, 1, 7, 2.5])
    def test_invalid_n_folds(self, n_folds):
        """k outside 2..n is rejected."""
        with pytest.raises(InvalidConfigurationError):
            kfold_indices(6, n_folds)


class TestCrossValidate:
    """Tests for the grid sweep."""

    def test_error_matrix_shape(self, motorcycle_data):
        """Errors have one row per fold and one column per grid value."""
        X, y = motorcycle_data
        grid = [1, 3, 5, 10, 20, 40]
        result = cross_validate(y, X, grid, "knn", n_folds=5, seed=0)
        assert result.errors.shape == (5, 6)
        assert result.n_folds == 5
        assert np.all(np.isfinite(result.errors))
        assert np.all(result.errors >= 0)
        np.testing.assert_array_equal(result.grid, grid)

    def test_cell_matches_manual_fit(self, motorcycle_data):
        """Each cell is the held-out mean error of a fit on the other folds."""
        X, y = motorcycle_data
        result = cross_validate(y, X, [8.0, 10.0], EpanechnikovKernel(), n_folds=5, seed=4)
        folds = kfold_indices(len(y), 5, seed=4)
        test_idx = folds[2]
        train_idx = np.setdiff1d(np.arange(len(y)), test_idx)
        y_hat, _ = nadaraya_watson(y[train_idx], X[train_idx], X[test_idx], EpanechnikovKernel(10.0))
        assert result.errors[2, 1] == pytest.approx(mean_error(y[test_idx], y_hat))

    def test_deterministic(self, simple_1d_data):
        """The same seed reproduces the same errors."""
        X, y = simple_1d_data
        a = cross_validate(y, X, [2, 5, 10], "knn", seed=7)
        b = cross_validate(y, X, [2, 5, 10], "knn", seed=7)
        np.testing.assert_array_equal(a.errors, b.errors)

    def test_parallel_matches_sequential(self, simple_1d_data):
        """Parallel evaluation gives the same matrix as a sequential run."""
        X, y = simple_1d_data
        grid = [1.0, 2.0, 3.0]
        sequential = cross_validate(y, X, grid, "epanechnikov", seed=1)
        parallel = cross_validate(y, X, grid, "epanechnikov", seed=1, n_jobs=2)
        np.testing.assert_allclose(parallel.errors, sequential.errors)

    def test_custom_loss(self, simple_1d_data):
        """The loss function is applied per fold."""
        X, y = simple_1d_data
        squared = cross_validate(y, X, [5], "knn", seed=0)
        absolute = cross_validate(y, X, [5], "knn", seed=0, loss=absolute_error_loss)
        assert not np.allclose(squared.errors, absolute.errors)

    def test_n_folds_too_large(self, line_data):
        """More folds than observations is a configuration error."""
        X, y = line_data
        with pytest.raises(InvalidConfigurationError):
            cross_validate(y, X, [1], "knn", n_folds=6)

    def test_n_folds_too_small(self, line_data):
        """Fewer than two folds is a configuration error."""
        X, y = line_data
        with pytest.raises(InvalidConfigurationError):
            cross_validate(y, X, [1], "knn", n_folds=1)

    def test_empty_grid(self, line_data):
        """An empty grid is rejected."""
        X, y = line_data
        with pytest.raises(InvalidConfigurationError):
            cross_validate(y, X, [], "epanechnikov")

    def test_invalid_grid_value(self, line_data):
        """Grid values outside the kernel domain are rejected."""
        X, y = line_data
        with pytest.raises(InvalidParameterError):
            cross_validate(y, X, [1.0, -1.0], "epanechnikov")

    def test_neighbors_exceed_training_fold(self, line_data):
        """k larger than a training fold fails before any fitting."""
        X, y = line_data
        with pytest.raises(InvalidParameterError):
            cross_validate(y, X, [1, 5], "knn", n_folds=5)

    def test_mismatched_data(self, line_data):
        """y and X must have the same length."""
        X, y = line_data
        with pytest.raises(InvalidInputError):
            cross_validate(y[:3], X, [1], "knn", n_folds=2)

    def test_invalid_degenerate_policy(self, line_data):
        """Only raise and skip are accepted."""
        X, y = line_data
        with pytest.raises(InvalidConfigurationError):
            cross_validate(y, X, [1], "knn", on_degenerate="mean")

    def test_degenerate_raises(self, line_data):
        """A held-out point without support raises by default."""
        X, y = line_data
        with pytest.raises(DegenerateWeightsError):
            cross_validate(y, X, [0.5, 10.0], "epanechnikov", n_folds=5)

    def test_degenerate_skip(self, line_data):
        """Skipped cells are NaN and excluded from selection."""
        X, y = line_data
        result = cross_validate(
            y, X, [0.5, 10.0], "epanechnikov", n_folds=5, on_degenerate="skip"
        )
        assert np.all(np.isnan(result.errors[:, 0]))
        np.testing.assert_array_equal(result.valid, [False, True])
        assert result.best_param("min") == 10.0
        assert result.best_param("one_se") == 10.0

    def test_all_skipped(self, line_data):
        """Selection fails when no grid value was scored on every fold."""
        X, y = line_data
        result = cross_validate(y, X, [0.5], "epanechnikov", n_folds=5, on_degenerate="skip")
        with pytest.raises(InvalidConfigurationError):
            result.best_param()
        assert "cross-validation" in result.summary()


class TestSelectionRules:
    """Tests for the min and one-standard-error rules."""

    grid = np.array([0.5, 1.0, 2.0, 4.0])
    errors = np.array(
        [
            [2.0, 0.7, 1.1, 3.0],
            [2.0, 1.0, 1.1, 3.0],
            [2.0, 1.3, 1.1, 3.0],
        ]
    )

    def make_result(self, simpler_is_larger=True):
        folds = [np.array([0]), np.array([1]), np.array([2])]
        return CrossValidationResult(
            self.grid, self.errors, folds, simpler_is_larger=simpler_is_larger
        )

    def test_summary_statistics(self):
        """Mean and sample standard deviation per hyperparameter."""
        result = self.make_result()
        np.testing.assert_allclose(result.mean_error, [2.0, 1.0, 1.1, 3.0])
        assert result.std_error[1] == pytest.approx(0.3)
        assert result.standard_error[1] == pytest.approx(0.3 / np.sqrt(3))

    def test_min_rule(self):
        """The min rule picks the smallest mean error."""
        assert self.make_result().best_param("min") == 1.0

    def test_one_se_rule(self):
        """The one-SE rule picks the widest bandwidth within one SE."""
        assert self.make_result().best_param("one_se") == 2.0

    def test_one_se_smaller_is_simpler(self):
        """When smaller values are simpler the smallest candidate wins."""
        assert self.make_result(simpler_is_larger=False).best_param("one_se") == 1.0

    def test_min_ties_prefer_smaller_value(self):
        """Equal mean errors resolve to the smaller grid value."""
        result = CrossValidationResult(
            np.array([3.0, 1.0, 2.0]), np.ones((2, 3)), [np.array([0]), np.array([1])]
        )
        assert result.best_param("min") == 1.0

    def test_unknown_rule(self):
        """Unknown selection rules raise."""
        with pytest.raises(InvalidConfigurationError):
            self.make_result().best_index("median")

    def test_summary_marks_selection(self):
        """The summary marks both selected values."""
        text = str(self.make_result())
        assert "*min" in text
        assert "*1se" in text

    def test_one_se_not_more_complex_than_min(self, motorcycle_data):
        """On real sweeps the one-SE choice is at least as smooth."""
        X, y = motorcycle_data
        result = cross_validate(y, X, np.arange(1, 41), "knn", seed=0)
        assert result.best_param("one_se") >= result.best_param("min")


class TestCrossValidatedBandwidth:
    """Tests for the CV selector."""

    def test_epanechnikov_default_grid(self, simple_1d_data):
        """Selects a positive bandwidth from the default grid."""
        X, y = simple_1d_data
        selector = CrossValidatedBandwidth(n_folds=5, seed=0, n_values=15)
        h = selector(X, y)
        assert isinstance(h, float)
        assert h in selector.cv_results_.grid
        assert selector.cv_results_.errors.shape == (5, 15)

    def test_knn_default_grid(self, simple_1d_data):
        """Neighbor grid stays within the smallest training fold."""
        X, y = simple_1d_data
        selector = CrossValidatedBandwidth(kernel="knn", n_folds=5, seed=0)
        k = selector(X, y)
        assert isinstance(k, int)
        assert selector.cv_results_.grid.max() <= 80

    def test_explicit_grid_and_rule(self, motorcycle_data):
        """An explicit grid and the one-SE rule are honoured."""
        X, y = motorcycle_data
        grid = [4.0, 6.0, 8.0, 12.0]
        h_min = CrossValidatedBandwidth(grid=grid, seed=0)(X, y)
        h_se = CrossValidatedBandwidth(grid=grid, seed=0, rule="one_se")(X, y)
        assert h_min in grid
        assert h_se >= h_min

    def test_invalid_rule(self, simple_1d_data):
        """Unknown selection rules raise before fitting."""
        X, y = simple_1d_data
        with pytest.raises(InvalidConfigurationError):
            CrossValidatedBandwidth(rule="best")(X, y)

    def test_kernel_instance(self, simple_1d_data):
        """A kernel instance is swept over the grid."""
        X, y = simple_1d_data
        k = CrossValidatedBandwidth(kernel=KNearestNeighborKernel(1), grid=[1, 4, 9], seed=0)(X, y)
        assert k in (1, 4, 9)
