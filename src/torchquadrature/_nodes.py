"""Node and weight tables for the Gauss-Kronrod rule."""

from typing import Optional, Tuple

import torch
from torch import Tensor

# G7-K15 pair on [-1, 1], QUADPACK (Piessens et al., 1983).
#
# Only the non-negative half is stored; the rule is symmetric about 0.
# Kronrod nodes with odd index (1, 3, 5, 7 counted from the outermost node)
# coincide with the 7-point Gauss nodes.

_XGK = (
    0.991455371120812639206854697526329,
    0.949107912342758524526189684047851,
    0.864864423359769072789712788640926,
    0.741531185599394439863864773280788,
    0.586087235467691130294144838258730,
    0.405845151377397166906606412076961,
    0.207784955007898467600689403773245,
    0.000000000000000000000000000000000,
)

_WGK = (
    0.022935322010529224963732008058970,
    0.063092092629978553290700663189204,
    0.104790010322250183839876322541518,
    0.140653259715525918745189590510238,
    0.169004726639267902826583426598550,
    0.190350578064785409913256402421014,
    0.204432940075298892414161999234649,
    0.209482141084727828012999174891714,
)

# Weights of the embedded Gauss rule at _XGK[1], _XGK[3], _XGK[5], _XGK[7].
_WG = (
    0.129484966168869693270611432679082,
    0.279705391489276667901467771423780,
    0.381830050505118944950369775488975,
    0.417959183673469387755102040816327,
)


def gauss_kronrod_nodes_weights(
    order: int = 15,
    dtype: torch.dtype = torch.float64,
    device: Optional[torch.device] = None,
) -> Tuple[Tensor, Tensor, Tensor, Tensor]:
    """
    Return Gauss-Kronrod nodes and weights on [-1, 1].

    Parameters
    ----------
    order : int
        Kronrod order. Only 15 (G7-K15) is tabulated.
    dtype : torch.dtype
        Data type for output tensors.
    device : torch.device, optional
        Device for output tensors.

    Returns
    -------
    nodes : Tensor
        Kronrod nodes, shape (15,), sorted ascending.
    kronrod_weights : Tensor
        Kronrod weights, shape (15,).
    gauss_weights : Tensor
        Weights of the embedded Gauss rule, shape (7,).
    gauss_indices : Tensor
        Indices into ``nodes`` of the Gauss nodes, shape (7,), ascending.

    Raises
    ------
    ValueError
        If ``order`` is not 15.

    References
    ----------
    Piessens, R., et al. (1983). QUADPACK: A subroutine package for automatic
    integration.
    """
    if order != 15:
        raise ValueError(f"order must be 15, got {order}")

    half = len(_XGK) - 1  # index of the zero node in the full array

    nodes = [-x for x in _XGK[:-1]] + [x for x in reversed(_XGK)]
    k_weights = list(_WGK[:-1]) + list(reversed(_WGK))

    # Gauss nodes sit at odd positions of the half table, i.e. 1, 3, 5, 7.
    g_indices = [1, 3, 5, half, 2 * half - 5, 2 * half - 3, 2 * half - 1]
    g_weights = list(_WG) + list(reversed(_WG[:-1]))

    return (
        torch.tensor(nodes, dtype=dtype, device=device),
        torch.tensor(k_weights, dtype=dtype, device=device),
        torch.tensor(g_weights, dtype=dtype, device=device),
        torch.tensor(g_indices, dtype=torch.long, device=device),
    )
