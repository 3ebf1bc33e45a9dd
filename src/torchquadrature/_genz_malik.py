"""Genz-Malik degree 7/5 cubature rule for hyper-rectangles."""

import itertools
import math
from typing import Callable, NamedTuple, Optional, Tuple

import torch
from torch import Tensor

from torchquadrature._integrand import evaluate_points
from torchquadrature._nodes import gauss_kronrod_nodes_weights
from torchquadrature._rules import rescale_error

# Generator radii (Genz & Malik 1980). The rule uses lambda_3 == lambda_4.
_LAMBDA2 = math.sqrt(9 / 70)
_LAMBDA4 = math.sqrt(9 / 10)
_LAMBDA5 = math.sqrt(9 / 19)

# Ratio used by the fourth-difference roughness test
_DIFF_RATIO = _LAMBDA2**2 / _LAMBDA4**2

# Fourth differences within this relative distance of the maximum are ties
_DIFF_TIE = 1e-5


class RegionEstimate(NamedTuple):
    """Estimates produced by one application of a cubature rule.

    Parameters
    ----------
    result : Tensor
        High-order estimate of the integral over the region.
    error : Tensor
        Local absolute error estimate, detached from the autograd graph.
    split_axis : int
        Axis along which the region should be bisected.
    """

    result: Tensor
    error: Tensor
    split_axis: int


def genz_malik_points_weights(
    ndim: int,
    dtype: torch.dtype = torch.float64,
    device: Optional[torch.device] = None,
) -> Tuple[Tensor, Tensor, Tensor]:
    """
    Return the Genz-Malik stencil on [-1, 1]^ndim.

    Parameters
    ----------
    ndim : int
        Dimension, at least 2.
    dtype : torch.dtype
        Data type for output tensors.
    device : torch.device, optional
        Device for output tensors.

    Returns
    -------
    points : Tensor
        Shape (2**ndim + 2*ndim**2 + 2*ndim + 1, ndim). Row 0 is the center;
        rows ``1 + 4*i`` to ``4 + 4*i`` are ``-lambda2, +lambda2, -lambda4,
        +lambda4`` along axis ``i``; then the axis pairs, then the corners.
    weights7 : Tensor
        Degree 7 weights, normalised to sum to 1.
    weights5 : Tensor
        Embedded degree 5 weights, normalised to sum to 1.

    References
    ----------
    Genz, A. C., & Malik, A. A. (1980). An adaptive algorithm for numerical
    integration over an n-dimensional rectangular region. Journal of
    Computational and Applied Mathematics, 6(4), 295-302.
    """
    if ndim < 2:
        raise ValueError(f"ndim must be at least 2, got {ndim}")

    n = ndim
    w1 = (12824 - 9120 * n + 400 * n**2) / 19683
    w2 = 980 / 6561
    w3 = (1820 - 400 * n) / 19683
    w4 = 200 / 19683
    w5 = 6859 / 19683 / 2**n

    e1 = (729 - 950 * n + 50 * n**2) / 729
    e2 = 245 / 486
    e3 = (265 - 100 * n) / 1458
    e4 = 25 / 729

    points = [[0.0] * n]
    weights7 = [w1]
    weights5 = [e1]

    for i in range(n):
        for radius, w, e in (
            (-_LAMBDA2, w2, e2),
            (_LAMBDA2, w2, e2),
            (-_LAMBDA4, w3, e3),
            (_LAMBDA4, w3, e3),
        ):
            point = [0.0] * n
            point[i] = radius
            points.append(point)
            weights7.append(w)
            weights5.append(e)

    for i, j in itertools.combinations(range(n), 2):
        for si, sj in itertools.product((-1.0, 1.0), repeat=2):
            point = [0.0] * n
            point[i] = si * _LAMBDA4
            point[j] = sj * _LAMBDA4
            points.append(point)
            weights7.append(w4)
            weights5.append(e4)

    for signs in itertools.product((-1.0, 1.0), repeat=n):
        points.append([s * _LAMBDA5 for s in signs])
        weights7.append(w5)
        weights5.append(0.0)

    return (
        torch.tensor(points, dtype=dtype, device=device),
        torch.tensor(weights7, dtype=dtype, device=device),
        torch.tensor(weights5, dtype=dtype, device=device),
    )


def select_split_axis(differences: Tensor, halfwidth: Tensor) -> int:
    """
    Pick the axis with the largest fourth difference.

    Axes whose difference is within a relative 1e-5 of the maximum are
    treated as tied; among those the widest axis wins, then the lowest index.
    """
    differences = differences.tolist()
    widths = halfwidth.tolist()

    maxdiff = max(differences)
    if not maxdiff > 0:
        # Flat (or non-finite) region: split the widest axis
        candidates = range(len(widths))
    else:
        candidates = [
            i
            for i, diff in enumerate(differences)
            if diff >= maxdiff * (1 - _DIFF_TIE)
        ]

    best = None
    for i in candidates:
        if best is None or widths[i] > widths[best]:
            best = i
    return best


class GenzMalik:
    """
    Genz-Malik embedded cubature rule.

    Degree 7 rule with an embedded degree 5 rule for error estimation,
    ``2**ndim + 2*ndim**2 + 2*ndim + 1`` evaluations per application.
    The stencil also yields a fourth-difference roughness indicator per
    axis, used to choose the axis along which a region is bisected.

    Parameters
    ----------
    ndim : int
        Dimension, at least 2.

    Examples
    --------
    >>> rule = GenzMalik(2)
    >>> center = torch.tensor([0.5, 0.5], dtype=torch.float64)
    >>> halfwidth = torch.tensor([0.5, 0.5], dtype=torch.float64)
    >>> rule.integrate_with_error(lambda x, y: x * y, center, halfwidth)

    Attributes
    ----------
    ndim : int
        Dimension.
    npoints : int
        Integrand evaluations per application.
    """

    def __init__(self, ndim: int):
        if ndim < 2:
            raise ValueError(f"ndim must be at least 2, got {ndim}")
        self.ndim = ndim
        self.npoints = 2**ndim + 2 * ndim**2 + 2 * ndim + 1
        self._cache: dict = {}

    def _get_points_weights(
        self,
        dtype: torch.dtype,
        device: torch.device,
    ) -> Tuple[Tensor, Tensor, Tensor]:
        """Get cached stencil and weights."""
        key = (str(dtype), str(device))
        if key not in self._cache:
            self._cache[key] = genz_malik_points_weights(
                self.ndim, dtype=dtype, device=device
            )
        return self._cache[key]

    def integrate_with_error(
        self,
        f: Callable[..., Tensor],
        center: Tensor,
        halfwidth: Tensor,
        *,
        vectorized: bool = True,
    ) -> RegionEstimate:
        """
        Integrate f over the box ``center +- halfwidth``.

        Parameters
        ----------
        f : callable
            Integrand, see :func:`evaluate_points` for the calling
            convention.
        center, halfwidth : Tensor
            Shape (ndim,).
        vectorized : bool
            If True, ``f`` is evaluated at all stencil points at once.

        Returns
        -------
        RegionEstimate
            Degree 7 estimate, error estimate and split axis.
        """
        unit_points, weights7, weights5 = self._get_points_weights(
            center.dtype, center.device
        )

        values = evaluate_points(
            f, center + unit_points * halfwidth, vectorized=vectorized
        )
        volume = torch.prod(2 * halfwidth)

        result = volume * (values * weights7).sum()

        with torch.no_grad():
            detached = values.detach()
            result5 = volume * (detached * weights5).sum()
            error = torch.abs(result.detach() - result5)

            # Rows 1 + 4*i .. 4 + 4*i hold -l2, +l2, -l4, +l4 along axis i
            axis_values = detached[1 : 1 + 4 * self.ndim].reshape(
                self.ndim, 4
            )
            twice_center = 2 * detached[0]
            inner = axis_values[:, 0] + axis_values[:, 1] - twice_center
            outer = axis_values[:, 2] + axis_values[:, 3] - twice_center
            differences = torch.abs(inner - _DIFF_RATIO * outer)

        split_axis = select_split_axis(differences, halfwidth)

        return RegionEstimate(result, error, split_axis)


class GaussKronrodRegion:
    """
    G7-K15 rule exposed through the region interface, for ``ndim == 1``.

    The Genz-Malik construction needs at least two dimensions.
    """

    ndim = 1

    def __init__(self):
        self.npoints = 15
        self._cache: dict = {}

    def integrate_with_error(
        self,
        f: Callable[..., Tensor],
        center: Tensor,
        halfwidth: Tensor,
        *,
        vectorized: bool = True,
    ) -> RegionEstimate:
        key = (str(center.dtype), str(center.device))
        if key not in self._cache:
            self._cache[key] = gauss_kronrod_nodes_weights(
                15, dtype=center.dtype, device=center.device
            )
        nodes, k_weights, g_weights, g_indices = self._cache[key]

        values = evaluate_points(
            f,
            (center + nodes.unsqueeze(-1) * halfwidth),
            vectorized=vectorized,
        )
        scale = halfwidth[0]

        result = scale * (values * k_weights).sum()

        with torch.no_grad():
            detached = values.detach()
            resk = (detached * k_weights).sum()
            resg = (detached[g_indices] * g_weights).sum()
            resabs = (torch.abs(detached) * k_weights).sum()
            resasc = (torch.abs(detached - resk / 2) * k_weights).sum()
            error = rescale_error(
                torch.abs(resk - resg) * scale,
                resabs * scale,
                resasc * scale,
            )

        return RegionEstimate(result, error, 0)
