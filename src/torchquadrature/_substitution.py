"""Change-of-variables substitutions for one-dimensional integrals."""

from typing import Callable

import torch
from torch import Tensor


class Substitution:
    """
    Change of integration variable x -> u.

    Subclasses define three pure functions on tensors:

    - ``x(u)``: the original variable as a function of the new one,
    - ``u(x)``: the inverse map,
    - ``dxdu(u)``: the Jacobian of ``x``.

    ``x(u(x)) == x`` must hold and ``dxdu`` must be the exact derivative of
    ``x``; a mismatch silently produces a wrong integral.

    The integral of f from a to b is computed as the integral of
    ``f(x(u)) * dxdu(u)`` from ``u(a)`` to ``u(b)``.
    """

    def x(self, u: Tensor) -> Tensor:
        raise NotImplementedError

    def u(self, x: Tensor) -> Tensor:
        raise NotImplementedError

    def dxdu(self, u: Tensor) -> Tensor:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NoSubstitution(Substitution):
    """Identity map, x = u."""

    def x(self, u: Tensor) -> Tensor:
        return u

    def u(self, x: Tensor) -> Tensor:
        return x

    def dxdu(self, u: Tensor) -> Tensor:
        return torch.ones_like(u)


class ExpSubstitution(Substitution):
    """
    Exponential map, x = exp(u).

    Integrates in ``log(x)``, which suits integrands spread over many decades
    of a positive variable. Bounds must be positive.
    """

    def x(self, u: Tensor) -> Tensor:
        return torch.exp(u)

    def u(self, x: Tensor) -> Tensor:
        return torch.log(x)

    def dxdu(self, u: Tensor) -> Tensor:
        return torch.exp(u)


class InverseSubstitution(Substitution):
    """
    Reciprocal map, x = 1/u.

    Maps the tail [a, inf) with a > 0 onto the finite interval (0, 1/a].
    """

    def x(self, u: Tensor) -> Tensor:
        return torch.reciprocal(u)

    def u(self, x: Tensor) -> Tensor:
        return torch.reciprocal(x)

    def dxdu(self, u: Tensor) -> Tensor:
        return -torch.reciprocal(u * u)


def substitute(
    f: Callable[[Tensor], Tensor],
    substitution: Substitution,
) -> Callable[[Tensor], Tensor]:
    """
    Wrap ``f`` so that it can be integrated in the substituted variable.

    Parameters
    ----------
    f : callable
        Vectorized integrand in the original variable x.
    substitution : Substitution
        The change of variables.

    Returns
    -------
    callable
        ``g(u) = f(x(u)) * dxdu(u)``.

    Examples
    --------
    >>> g = substitute(lambda x: x**-2, InverseSubstitution())
    >>> g(torch.tensor([0.5]))  # -1
    """

    def g(u: Tensor) -> Tensor:
        return f(substitution.x(u)) * substitution.dxdu(u)

    return g
