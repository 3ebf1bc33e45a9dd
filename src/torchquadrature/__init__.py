"""
torchquadrature: adaptive numerical integration for PyTorch.

Function-based integration (evaluates callable):
    quad, quad_info, cubature, cubature_info

Batched front ends (independent integrals on a thread pool):
    quad_batched, cubature_batched

Sample-based integration (operates on pre-computed values):
    discrete_integrate

Change of variables:
    Substitution, NoSubstitution, ExpSubstitution, InverseSubstitution,
    substitute

Rule classes:
    GaussKronrod, GenzMalik

Results, configuration and exceptions:
    QuadratureResult, default_tolerances, default_limit,
    QuadratureWarning, IntegrationError
"""

from torchquadrature._batched import cubature_batched, quad_batched
from torchquadrature._convergence import default_limit, default_tolerances
from torchquadrature._cubature import cubature, cubature_info
from torchquadrature._discrete import discrete_integrate
from torchquadrature._exceptions import (
    IntegrationError,
    QuadratureWarning,
)
from torchquadrature._genz_malik import GenzMalik
from torchquadrature._nodes import gauss_kronrod_nodes_weights
from torchquadrature._quad import quad, quad_info
from torchquadrature._result import QuadratureResult
from torchquadrature._rules import GaussKronrod
from torchquadrature._substitution import (
    ExpSubstitution,
    InverseSubstitution,
    NoSubstitution,
    Substitution,
    substitute,
)

__all__ = [
    # Function-based
    "quad",
    "quad_info",
    "cubature",
    "cubature_info",
    # Batched
    "quad_batched",
    "cubature_batched",
    # Sample-based
    "discrete_integrate",
    # Substitutions
    "Substitution",
    "NoSubstitution",
    "ExpSubstitution",
    "InverseSubstitution",
    "substitute",
    # Rule classes
    "GaussKronrod",
    "GenzMalik",
    "gauss_kronrod_nodes_weights",
    # Results and configuration
    "QuadratureResult",
    "default_tolerances",
    "default_limit",
    # Exceptions
    "QuadratureWarning",
    "IntegrationError",
]

__version__ = "0.1.0"
