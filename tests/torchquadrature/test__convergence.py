import pytest
import torch

from torchquadrature import default_limit, default_tolerances
from torchquadrature._convergence import is_converged, resolve_tolerances


class TestDefaultTolerances:
    def test_float64(self):
        assert default_tolerances(torch.float64) == {
            "epsrel": 1e-5,
            "epsabs": 1e-10,
        }

    def test_float32_looser(self):
        tol32 = default_tolerances(torch.float32)
        tol64 = default_tolerances(torch.float64)

        assert tol32["epsrel"] > tol64["epsrel"]
        assert tol32["epsabs"] > tol64["epsabs"]

    @pytest.mark.parametrize("dtype", [torch.float16, torch.bfloat16])
    def test_half_precision(self, dtype):
        tol = default_tolerances(dtype)

        assert tol["epsrel"] >= 1e-3
        assert tol["epsabs"] >= 1e-4


class TestDefaultLimit:
    @pytest.mark.parametrize(
        "epsrel, expected",
        [(0.5, 51), (1e-3, 151), (1e-5, 251), (1e-10, 501), (0.0, 801)],
    )
    def test_scales_with_digits(self, epsrel, expected):
        assert default_limit(epsrel) == expected


class TestResolveTolerances:
    def test_fills_defaults(self):
        assert resolve_tolerances(None, None, torch.float64) == (1e-5, 1e-10)

    def test_keeps_explicit_values(self):
        assert resolve_tolerances(1e-3, 0.0, torch.float64) == (1e-3, 0.0)

    def test_negative_raises(self):
        with pytest.raises(ValueError, match="non-negative"):
            resolve_tolerances(None, -1e-3, torch.float64)


class TestIsConverged:
    def test_absolute_only(self):
        assert is_converged(100.0, 1e-9, epsrel=1e-15, epsabs=1e-8)

    def test_relative_only(self):
        assert is_converged(100.0, 1e-4, epsrel=1e-5, epsabs=0.0)

    def test_neither(self):
        assert not is_converged(1.0, 1e-3, epsrel=1e-5, epsabs=1e-10)

    def test_nan_never_converges(self):
        assert not is_converged(float("nan"), float("nan"), 1e-5, 1e-10)
