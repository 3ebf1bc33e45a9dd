import pytest
import torch

from torchquadrature import (
    ExpSubstitution,
    InverseSubstitution,
    NoSubstitution,
    Substitution,
    substitute,
)

SUBSTITUTIONS = [NoSubstitution(), ExpSubstitution(), InverseSubstitution()]


class TestSubstitutions:
    @pytest.mark.parametrize("substitution", SUBSTITUTIONS, ids=repr)
    def test_round_trip(self, substitution):
        x = torch.tensor([0.25, 1.0, 3.0, 40.0], dtype=torch.float64)

        assert torch.allclose(substitution.x(substitution.u(x)), x)

    @pytest.mark.parametrize("substitution", SUBSTITUTIONS, ids=repr)
    def test_jacobian_matches_autograd(self, substitution):
        u = torch.tensor(
            [0.3, 0.7, 1.5, 2.0], dtype=torch.float64, requires_grad=True
        )
        (expected,) = torch.autograd.grad(substitution.x(u).sum(), u)

        assert torch.allclose(substitution.dxdu(u.detach()), expected)

    def test_no_substitution_is_identity(self):
        u = torch.linspace(-1, 1, 5, dtype=torch.float64)
        substitution = NoSubstitution()

        assert torch.equal(substitution.x(u), u)
        assert torch.equal(substitution.dxdu(u), torch.ones_like(u))

    def test_inverse_maps_infinity_to_zero(self):
        x = torch.tensor(float("inf"), dtype=torch.float64)

        assert InverseSubstitution().u(x).item() == 0.0

    def test_base_class_is_abstract(self):
        substitution = Substitution()
        u = torch.tensor(1.0)

        with pytest.raises(NotImplementedError):
            substitution.x(u)
        with pytest.raises(NotImplementedError):
            substitution.u(u)
        with pytest.raises(NotImplementedError):
            substitution.dxdu(u)

    def test_repr(self):
        assert repr(ExpSubstitution()) == "ExpSubstitution()"


class TestSubstitute:
    def test_inverse_square(self):
        """f(x) = 1/x^2 with x = 1/u becomes the constant -1"""
        g = substitute(lambda x: x**-2, InverseSubstitution())
        u = torch.tensor([0.1, 0.5, 0.9], dtype=torch.float64)

        assert torch.allclose(g(u), -torch.ones_like(u))

    def test_exponential(self):
        """f(x) = 1/x with x = exp(u) becomes the constant 1"""
        g = substitute(torch.reciprocal, ExpSubstitution())
        u = torch.tensor([-2.0, 0.0, 3.0], dtype=torch.float64)

        assert torch.allclose(g(u), torch.ones_like(u))

    def test_identity_leaves_integrand_unchanged(self):
        g = substitute(torch.sin, NoSubstitution())
        u = torch.linspace(0, 3, 7, dtype=torch.float64)

        assert torch.equal(g(u), torch.sin(u))
