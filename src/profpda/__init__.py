"""
profpda: Profiled Principal Differential Analysis

Estimate the coefficient functions of a linear differential operator
    D^m x + sum_j b_j(t) D^j x + sum_k a_k(t) u_k(t) = 0
from noisy samples of x(t) by profiled parameter cascading.
"""

__version__ = "0.1.0"

from .basis import Basis, BSplineBasis, ConstantBasis, MonomialBasis, FourierBasis
from .fd import FunctionalData, WeightFunction, constant_weight, weight_from_basis
from .params import ParameterLayout, ParameterBlock
from .penalty import PenaltyTerms, eval_penalty
from .objective import smoothing_matrices, profiled_sse, profiled_sse_gradient
from .results import ProfiledFit, OperatorEstimate, Diagnostics
from .solver import ProfiledPDA

__all__ = [
    "__version__",
    "Basis",
    "BSplineBasis",
    "ConstantBasis",
    "MonomialBasis",
    "FourierBasis",
    "FunctionalData",
    "WeightFunction",
    "constant_weight",
    "weight_from_basis",
    "ParameterLayout",
    "ParameterBlock",
    "PenaltyTerms",
    "eval_penalty",
    "smoothing_matrices",
    "profiled_sse",
    "profiled_sse_gradient",
    "ProfiledFit",
    "OperatorEstimate",
    "Diagnostics",
    "ProfiledPDA",
]
