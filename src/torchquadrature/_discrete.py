"""Fixed-node integration of uniformly sampled data."""

import torch
from torch import Tensor


def discrete_integrate(
    y: Tensor,
    *,
    dx: float = 1.0,
    dim: int = -1,
) -> Tensor:
    """
    Integrate uniformly spaced samples with a closed fixed-node formula.

    Parameters
    ----------
    y : Tensor
        Function values at ``n`` equally spaced points along ``dim``.
    dx : float
        Sample spacing.
    dim : int
        Dimension along which to integrate.

    Returns
    -------
    Tensor
        Definite integral approximation, with ``dim`` removed.

    Raises
    ------
    ValueError
        If fewer than 2 samples are given along ``dim``.

    Notes
    -----
    For odd ``n`` composite Simpson's rule is used. For even ``n`` the
    Hollingsworth-Hunter third-order formula is used, with end weights
    ``9/24, 28/24, 23/24`` and unit weights in between; ``n == 4`` falls back
    to Simpson's 3/8 rule and ``n == 2`` to the trapezoid rule.

    All weights sum to ``n - 1``, so a constant ``c`` integrates to
    ``c * dx * (n - 1)``. There is no error estimate.

    Examples
    --------
    >>> y = torch.sin(torch.linspace(0, torch.pi, 101, dtype=torch.float64))
    >>> discrete_integrate(y, dx=torch.pi / 100)  # approximately 2.0
    """
    y = torch.as_tensor(y)
    if not y.dtype.is_floating_point and not y.dtype.is_complex:
        y = y.to(torch.float64)

    # Move target dim to end
    y = torch.movedim(y, dim, -1)
    n = y.shape[-1]

    if n < 2:
        raise ValueError(
            f"discrete_integrate requires at least 2 points, got {n}"
        )

    weights = _weights(n, y.dtype, y.device)

    return dx * (y * weights).sum(dim=-1)


def _weights(n: int, dtype: torch.dtype, device: torch.device) -> Tensor:
    if n % 2 == 1:
        # Simpson: 1, 4, 2, 4, ..., 2, 4, 1 over 3
        weights = torch.full((n,), 2.0, dtype=dtype, device=device)
        weights[1::2] = 4.0
        weights[0] = 1.0
        weights[-1] = 1.0
        return weights / 3

    if n == 2:
        return torch.tensor([0.5, 0.5], dtype=dtype, device=device)

    if n == 4:
        return torch.tensor([3, 9, 9, 3], dtype=dtype, device=device) / 8

    weights = torch.full((n,), 24.0, dtype=dtype, device=device)
    ends = torch.tensor([9.0, 28.0, 23.0], dtype=dtype, device=device)
    weights[:3] = ends
    weights[-3:] = ends.flip(0)
    return weights / 24
