from typing import NamedTuple

from torch import Tensor

from torchquadrature._exceptions import IntegrationError


class QuadratureResult(NamedTuple):
    """Result of an adaptive integration routine.

    Parameters
    ----------
    estimate : Tensor
        Integral approximation. Autograd gradients flow through this field.
    abserr : Tensor
        Estimated absolute error of ``estimate``.
    neval : int
        Number of integrand evaluations.
    converged : bool
        Whether the requested tolerance was achieved. ``False`` means the
        subdivision budget ran out and ``estimate`` is a best effort.
    nregions : int
        Number of sub-intervals (or sub-regions) at termination.
    """

    estimate: Tensor
    abserr: Tensor
    neval: int
    converged: bool
    nregions: int

    def raise_for_status(self) -> "QuadratureResult":
        """Raise :class:`IntegrationError` unless the result converged."""
        if not self.converged:
            raise IntegrationError(
                f"Integration failed to converge after {self.nregions} "
                f"subregions and {self.neval} evaluations. "
                f"Error estimate: {self.abserr.item():.2e}"
            )
        return self
