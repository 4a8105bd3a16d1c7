"""Tests for acquisition functions and candidate selection."""

import math

import pytest
import torch
from scipy.stats import norm

from gpbo.core.acquisition import (
    AcquisitionMode, expected_improvement, score, score_candidates,
    select_candidate, upper_confidence_bound,
)
from gpbo.exceptions import ConfigurationError


class TestExpectedImprovement:

    def test_zero_where_stddev_is_zero(self):
        mu = torch.tensor([5.0, 0.0, -3.0], dtype=torch.float64)
        sigma = torch.zeros(3, dtype=torch.float64)
        ei = expected_improvement(mu, sigma, f_best=1.0)
        torch.testing.assert_close(ei, torch.zeros(3, dtype=torch.float64))

    def test_matches_closed_form(self):
        mu, sigma, f_best, xi = 1.3, 0.4, 1.0, 0.01
        z = (mu - f_best - xi) / sigma
        expected = (mu - f_best - xi) * norm.cdf(z) + sigma * norm.pdf(z)

        mu_t = torch.tensor([mu], dtype=torch.float64)
        sigma_t = torch.tensor([sigma], dtype=torch.float64)
        ei = expected_improvement(mu_t, sigma_t, f_best, xi)
        assert ei.item() == pytest.approx(expected, rel=1e-10)

    def test_nonnegative(self):
        mu = torch.linspace(-3, 3, 25, dtype=torch.float64)
        sigma = torch.linspace(0.0, 2.0, 25, dtype=torch.float64)
        assert (expected_improvement(mu, sigma, 0.5) >= 0).all()

    def test_non_increasing_in_xi(self):
        mu = torch.tensor([0.2, 1.0, 2.0], dtype=torch.float64)
        sigma = torch.tensor([0.5, 0.1, 1.0], dtype=torch.float64)
        values = [expected_improvement(mu, sigma, 1.0, xi) for xi in (0.0, 0.01, 0.1, 1.0)]
        for lower_xi, higher_xi in zip(values, values[1:]):
            assert (higher_xi <= lower_xi + 1e-12).all()

    def test_gradient_is_finite(self):
        mu = torch.tensor([0.3, 1.5], dtype=torch.float64, requires_grad=True)
        sigma = torch.tensor([0.2, 0.7], dtype=torch.float64, requires_grad=True)
        expected_improvement(mu, sigma, 1.0).sum().backward()
        assert torch.isfinite(mu.grad).all()
        assert torch.isfinite(sigma.grad).all()


class TestUpperConfidenceBound:

    def test_formula(self):
        ucb = upper_confidence_bound(torch.tensor([1.0]), torch.tensor([0.5]), kappa=2.0)
        assert ucb.item() == pytest.approx(2.0)

    def test_monotone_in_kappa(self):
        mu = torch.tensor([0.0, 1.0], dtype=torch.float64)
        sigma = torch.tensor([0.3, 0.0], dtype=torch.float64)
        low = upper_confidence_bound(mu, sigma, kappa=1.0)
        high = upper_confidence_bound(mu, sigma, kappa=3.0)
        assert (high >= low).all()
        assert high[1].item() == low[1].item()


class TestScore:

    def test_scalar_ei_agrees_with_batched(self):
        batched = expected_improvement(
            torch.tensor([0.7], dtype=torch.float64), torch.tensor([0.3], dtype=torch.float64), 0.5, 0.01)
        assert score(0.7, 0.3, 0.5, 'ei') == pytest.approx(batched.item(), rel=1e-10)

    def test_scalar_ei_zero_stddev(self):
        assert score(10.0, 0.0, 0.0, 'expected_improvement') == 0.0

    def test_scalar_ucb(self):
        assert score(1.0, 2.0, 100.0, 'ucb', param=0.5) == pytest.approx(2.0)

    def test_default_params(self):
        assert score(1.0, 1.0, 0.0, 'ucb') == pytest.approx(1.0 + 2.576)
        z = (1.0 - 0.0 - 0.01) / 1.0
        expected = 0.99 * norm.cdf(z) + norm.pdf(z)
        assert score(1.0, 1.0, 0.0, 'ei') == pytest.approx(expected)

    def test_score_candidates(self):
        mean = torch.tensor([0.0, 1.0], dtype=torch.float64)
        std = torch.tensor([1.0, 1.0], dtype=torch.float64)
        scores = score_candidates(mean, std, 0.0, AcquisitionMode.UPPER_CONFIDENCE_BOUND, 1.0)
        torch.testing.assert_close(scores, torch.tensor([1.0, 2.0], dtype=torch.float64))


class TestAcquisitionMode:

    @pytest.mark.parametrize('name, expected', [
        ('ei', AcquisitionMode.EXPECTED_IMPROVEMENT),
        ('EI', AcquisitionMode.EXPECTED_IMPROVEMENT),
        ('expected_improvement', AcquisitionMode.EXPECTED_IMPROVEMENT),
        ('ucb', AcquisitionMode.UPPER_CONFIDENCE_BOUND),
        (' Upper_Confidence_Bound ', AcquisitionMode.UPPER_CONFIDENCE_BOUND),
    ])
    def test_parse(self, name, expected):
        assert AcquisitionMode.parse(name) is expected

    @pytest.mark.parametrize('name', ['pi', 'thompson', ''])
    def test_unknown_mode(self, name):
        with pytest.raises(ConfigurationError):
            AcquisitionMode.parse(name)
        with pytest.raises(ConfigurationError):
            score(0.0, 1.0, 0.0, name)

    def test_callable(self):
        mu = torch.tensor([1.0], dtype=torch.float64)
        sigma = torch.tensor([0.0], dtype=torch.float64)
        assert AcquisitionMode.EXPECTED_IMPROVEMENT(mu, sigma, 0.0).item() == 0.0
        assert AcquisitionMode.UPPER_CONFIDENCE_BOUND(mu, sigma, 0.0).item() == 1.0


class TestSelectCandidate:

    def test_picks_maximum(self):
        assert select_candidate(torch.tensor([0.1, 0.9, 0.3])) == (1, pytest.approx(0.9))

    def test_ties_go_to_first_index(self):
        idx, value = select_candidate(torch.tensor([0.2, 0.5, 0.5, 0.1, 0.5]))
        assert idx == 1
        assert value == 0.5

    def test_all_zero_picks_first(self):
        idx, value = select_candidate(torch.zeros(10))
        assert idx == 0
        assert value == 0.0

    def test_nan_never_wins(self):
        idx, _ = select_candidate(torch.tensor([float('nan'), 0.1, float('nan')]))
        assert idx == 1

    def test_empty(self):
        with pytest.raises(ValueError):
            select_candidate(torch.tensor([]))

    def test_accepts_lists(self):
        idx, value = select_candidate([3.0, -1.0, 3.0])
        assert idx == 0
        assert math.isclose(value, 3.0)
