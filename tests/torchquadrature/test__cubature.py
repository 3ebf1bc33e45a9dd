import math

import numpy as np
import pytest
import scipy.integrate
import torch

from torchquadrature import QuadratureWarning, cubature, cubature_info


class TestCubature:
    def test_sum_of_squares(self):
        """Integrate x^2 + y^2 over the unit square = 2/3"""
        result = cubature(lambda x, y: x**2 + y**2, [0, 0], [1, 1])

        assert result.item() == pytest.approx(2 / 3, rel=1e-12)

    def test_abserr_non_increasing_as_epsrel_tightens(self):
        errors = []
        for epsrel in [1e-2, 1e-4, 1e-6, 1e-8]:
            info = cubature_info(
                lambda x, y: x**2 + y**2, [0, 0], [1, 1], epsrel=epsrel
            )
            assert info.converged
            assert info.estimate.item() == pytest.approx(2 / 3, rel=epsrel)
            errors.append(info.abserr.item())

        assert all(b <= a for a, b in zip(errors, errors[1:]))

    def test_gaussian(self):
        result = cubature(
            lambda x, y: torch.exp(-(x**2 + y**2)),
            [-1, -1],
            [1, 1],
            epsrel=1e-10,
            maxeval=200000,
        )
        expected = (math.sqrt(math.pi) * math.erf(1)) ** 2

        assert result.item() == pytest.approx(expected, rel=1e-9)

    def test_matches_scipy(self):
        """Compare with scipy.integrate.dblquad"""
        info = cubature_info(
            lambda x, y: torch.exp(x * y) * torch.cos(3 * y),
            [0, 0],
            [1, 2],
            epsrel=1e-8,
            epsabs=0,
            maxeval=200000,
        )
        expected, _ = scipy.integrate.dblquad(
            lambda y, x: np.exp(x * y) * np.cos(3 * y),
            0,
            1,
            0,
            2,
            epsabs=1e-13,
            epsrel=1e-13,
        )

        assert info.converged
        assert info.nregions > 1
        assert info.estimate.item() == pytest.approx(expected, rel=1e-8)

    def test_three_dimensional_positional(self):
        result = cubature(lambda x, y, z: x * y * z, [0, 0, 0], [1, 1, 1])

        assert result.item() == pytest.approx(1 / 8, rel=1e-12)

    def test_seven_dimensional_buffer(self):
        shapes = []

        def f(x):
            shapes.append(tuple(x.shape[1:]))
            return (x**2).sum(dim=-1)

        result = cubature(f, [0] * 7, [1] * 7)

        assert set(shapes) == {(7,)}
        assert result.item() == pytest.approx(7 / 3, rel=1e-12)

    def test_one_dimensional(self):
        info = cubature_info(lambda x: x**2, [0], [3])

        assert info.neval == 15
        assert info.estimate.item() == pytest.approx(9.0, rel=1e-13)

    def test_tensor_bounds(self):
        a = torch.tensor([0.0, 0.0], dtype=torch.float64)
        b = torch.tensor([torch.pi, torch.pi / 2], dtype=torch.float64)
        result = cubature(
            lambda x, y: torch.sin(x) * torch.cos(y), a, b, epsrel=1e-8
        )

        assert result.item() == pytest.approx(2.0, rel=1e-8)


class TestCubatureInfo:
    def test_neval_counts_rule_applications(self):
        info = cubature_info(
            lambda x, y: torch.sqrt(x + y), [0, 0], [1, 1], epsrel=1e-6
        )
        npoints = 4 + 8 + 4 + 1

        assert info.neval == npoints * (2 * (info.nregions - 1) + 1)

    def test_budget_exhausted(self):
        info = cubature_info(
            lambda x, y: 1 / torch.sqrt(x * y),
            [0, 0],
            [1, 1],
            epsrel=1e-15,
            epsabs=0,
            maxeval=17 * 5,
        )

        assert not info.converged
        assert info.neval <= 17 * 5
        assert info.abserr.item() > 1e-15 * abs(info.estimate.item())

    def test_deterministic(self):
        f = lambda x, y: torch.abs(x - y)
        first = cubature_info(f, [0, 0], [1, 1], epsrel=1e-6)
        second = cubature_info(f, [0, 0], [1, 1], epsrel=1e-6)

        assert torch.equal(first.estimate, second.estimate)
        assert first.neval == second.neval

    def test_pointwise_positional(self):
        calls = []

        def f(x, y):
            calls.append((x, y))
            return math.sin(x) * math.cos(y)

        info = cubature_info(
            f, [0, 0], [math.pi, math.pi / 2], epsrel=1e-8, vectorized=False
        )

        assert all(isinstance(x, float) for x, _ in calls)
        assert len(calls) == info.neval
        assert info.estimate.item() == pytest.approx(2.0, rel=1e-7)

    def test_pointwise_buffer(self):
        calls = []

        def f(x):
            calls.append(tuple(x.shape))
            return float(x.sum())

        info = cubature_info(f, [0] * 7, [1] * 7, vectorized=False)

        assert set(calls) == {(7,)}
        assert info.neval == 241
        assert info.estimate.item() == pytest.approx(3.5, rel=1e-12)


class TestCubatureWarnings:
    def test_warns_when_budget_exhausted(self):
        with pytest.warns(QuadratureWarning, match="did not converge"):
            cubature(
                lambda x, y: torch.sin(50 * x * y),
                [0, 0],
                [1, 1],
                epsrel=1e-14,
                epsabs=0,
                maxeval=17 * 3,
            )


class TestCubaturePreconditions:
    def test_reversed_bounds_raise(self):
        with pytest.raises(ValueError, match="less than"):
            cubature(lambda x, y: x, [0, 1], [1, 0])

    def test_mismatched_shapes_raise(self):
        with pytest.raises(ValueError, match="same non-zero length"):
            cubature(lambda x, y: x, [0, 0], [1, 1, 1])

    def test_empty_bounds_raise(self):
        with pytest.raises(ValueError, match="same non-zero length"):
            cubature(lambda: 1.0, [], [])

    def test_infinite_bounds_raise(self):
        with pytest.raises(ValueError, match="finite"):
            cubature(lambda x, y: x, [0, 0], [1, math.inf])

    def test_maxeval_below_one_rule_raises(self):
        with pytest.raises(ValueError, match="maxeval"):
            cubature(lambda x, y: x, [0, 0], [1, 1], maxeval=10)


class TestCubatureGradients:
    def test_gradient_closure(self):
        theta = torch.tensor(2.0, requires_grad=True, dtype=torch.float64)
        result = cubature(lambda x, y: theta * x * y, [0, 0], [1, 1])
        result.backward()

        assert torch.allclose(
            theta.grad, torch.tensor(0.25, dtype=torch.float64), rtol=1e-12
        )
