"""Tests for bounds, unit-cube mapping and the observation set."""

import pytest
import torch

from gpbo.core import Bounds, ObservationSet, check_bounds, grid_points, uniform_points
from gpbo.core.utils import closest_pair
from gpbo.exceptions import ConfigurationError


class TestBounds:

    def test_named(self):
        bounds = Bounds({'lr': (1e-4, 1e-1), 'depth': (1, 8)})
        assert bounds.names == ('lr', 'depth')
        assert bounds.dim == 2
        assert bounds.named
        assert bounds.pairs == ((1e-4, 1e-1), (1.0, 8.0))

    def test_unnamed(self):
        bounds = Bounds([(0, 1), (-2, 2)])
        assert bounds.names == ('x0', 'x1')
        assert not bounds.named

    @pytest.mark.parametrize('pairs', [
        {},
        [],
        {'x': (1.0, 0.0)},
        {'x': (0.0, float('inf'))},
        {'x': (float('nan'), 1.0)},
        {'x': (0.0,)},
        {'x': 'ab'},
    ])
    def test_invalid(self, pairs):
        with pytest.raises(ConfigurationError):
            Bounds(pairs)

    def test_zero_width_dimension_is_allowed(self):
        bounds = Bounds({'x': (0.0, 1.0), 'fixed': (2.0, 2.0)})
        u = bounds.to_unit(torch.tensor([0.5, 2.0], dtype=torch.float64))
        torch.testing.assert_close(u, torch.tensor([0.5, 0.0], dtype=torch.float64))
        torch.testing.assert_close(bounds.from_unit(u), torch.tensor([0.5, 2.0], dtype=torch.float64))

    def test_unit_round_trip(self, generator):
        bounds = Bounds({'a': (-5.0, 10.0), 'b': (0.0, 15.0)})
        X = bounds.from_unit(uniform_points(20, 2, generator))
        assert bounds.contains(X)
        U = bounds.to_unit(X)
        assert ((U >= -1e-12) & (U <= 1 + 1e-12)).all()
        torch.testing.assert_close(bounds.from_unit(U), X)

    def test_corners_map_to_cube_corners(self):
        bounds = Bounds({'a': (-5.0, 10.0), 'b': (0.0, 15.0)})
        torch.testing.assert_close(
            bounds.to_unit(torch.tensor([[-5.0, 15.0]], dtype=torch.float64)),
            torch.tensor([[0.0, 1.0]], dtype=torch.float64),
        )

    def test_contains(self, unit_square):
        assert unit_square.contains([0.0, 1.0])
        assert unit_square.contains([1.0 + 1e-12, 0.5])
        assert not unit_square.contains([1.1, 0.5])
        assert not unit_square.contains([[0.5, 0.5], [0.5, -0.1]])
        assert not unit_square.contains([0.5])

    def test_params_round_trip(self, unit_square):
        x = unit_square.from_params({'b': 0.25, 'a': 0.75})
        torch.testing.assert_close(x, torch.tensor([0.75, 0.25], dtype=torch.float64))
        assert unit_square.to_params(x) == {'a': 0.75, 'b': 0.25}

    def test_from_params_missing_or_wrong_length(self, unit_square):
        with pytest.raises(ConfigurationError):
            unit_square.from_params({'a': 0.5})
        with pytest.raises(ConfigurationError):
            unit_square.from_params([0.1, 0.2, 0.3])

    def test_equality(self):
        assert Bounds({'x': (0, 1)}) == Bounds({'x': (0.0, 1.0)})
        assert Bounds({'x': (0, 1)}) != Bounds({'y': (0, 1)})
        assert hash(Bounds({'x': (0, 1)})) == hash(Bounds(Bounds({'x': (0, 1)})))

    def test_fixed_mask(self):
        bounds = Bounds({'a': (0.0, 1.0), 'b': (0.5, 0.5), 'c': (-1.0, 1.0)})
        assert bounds.fixed.tolist() == [False, True, False]

    def test_lower_upper_are_copies(self, unit_square):
        unit_square.lower[0] = 5.0
        assert unit_square.lower[0].item() == 0.0


class TestObservationSet:

    def test_append_and_read(self, unit_square):
        obs = ObservationSet(unit_square)
        obs.append([0.1, 0.2], 1.5)
        obs.append(torch.tensor([0.3, 0.4]), -2)

        assert len(obs) == 2
        assert obs.X.shape == (2, 2)
        assert obs.X.dtype == torch.float64
        torch.testing.assert_close(obs.y, torch.tensor([1.5, -2.0], dtype=torch.float64))

    def test_empty(self, unit_square):
        obs = ObservationSet(unit_square)
        assert obs.X.shape == (0, 2)
        assert len(obs.y) == 0
        with pytest.raises(IndexError):
            obs.best_index()

    def test_rejects_bad_observations(self, unit_square):
        obs = ObservationSet(unit_square)
        with pytest.raises(ConfigurationError):
            obs.append([0.5], 1.0)
        with pytest.raises(ConfigurationError):
            obs.append([0.5, 2.0], 1.0)
        with pytest.raises(ConfigurationError):
            obs.append([0.5, 0.5], float('nan'))
        assert len(obs) == 0

    def test_append_copies_input(self, unit_square):
        obs = ObservationSet(unit_square)
        x = torch.tensor([0.1, 0.2], dtype=torch.float64)
        obs.append(x, 0.0)
        x[0] = 0.9
        assert obs.X[0, 0].item() == pytest.approx(0.1)

    def test_best_ties_go_to_earliest(self, unit_square):
        obs = ObservationSet(unit_square)
        for x, y in [([0.1, 0.1], 3.0), ([0.2, 0.2], 1.0), ([0.3, 0.3], 3.0), ([0.4, 0.4], 1.0)]:
            obs.append(x, y)

        assert obs.best_index(maximize=True) == 0
        assert obs.best_index(maximize=False) == 1
        x, y = obs.best()
        torch.testing.assert_close(x, torch.tensor([0.1, 0.1], dtype=torch.float64))
        assert y == 3.0


class TestUtils:

    def test_grid_points_order(self):
        grid = grid_points(2, 3)
        assert grid.shape == (9, 2)
        torch.testing.assert_close(grid[1], torch.tensor([0.0, 0.5], dtype=torch.float64))
        torch.testing.assert_close(grid[3], torch.tensor([0.5, 0.0], dtype=torch.float64))
        assert grid.min() == 0.0 and grid.max() == 1.0

    def test_grid_points_three_dimensions(self):
        grid = grid_points(3, 2)
        assert grid.shape == (8, 3)
        assert grid.dtype == torch.float64
        torch.testing.assert_close(grid[1], torch.tensor([0.0, 0.0, 1.0], dtype=torch.float64))
        torch.testing.assert_close(grid[4], torch.tensor([1.0, 0.0, 0.0], dtype=torch.float64))

    def test_grid_points_one_dimension(self):
        grid = grid_points(1, 5)
        assert grid.shape == (5, 1)
        torch.testing.assert_close(grid[:, 0], torch.linspace(0, 1, 5, dtype=torch.float64))

    def test_uniform_points_reproducible(self):
        a = uniform_points(5, 3, torch.Generator().manual_seed(3))
        b = uniform_points(5, 3, torch.Generator().manual_seed(3))
        torch.testing.assert_close(a, b)

    def test_check_bounds_filters(self):
        points = torch.tensor([[0.5, 0.5], [1.5, 0.5], [0.0, 1.0]])
        valid = check_bounds(points, [(0, 1), (0, 1)])
        assert valid.shape == (2, 2)

    def test_closest_pair(self):
        X = torch.tensor([[0.0], [0.5], [0.52], [1.0]], dtype=torch.float64)
        i, j, dist = closest_pair(X)
        assert (i, j) == (1, 2)
        assert dist == pytest.approx(0.02)
