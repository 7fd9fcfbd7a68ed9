"""
Functional data objects and operator weight functions.
"""

import numpy as np
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .basis import Basis, ConstantBasis


class FunctionalData:
    """
    Function(s) represented as a basis expansion.

    Parameters
    ----------
    coef : ndarray of shape (nbasis,) or (nbasis, ncurves)
        Basis coefficients. One column per curve.
    basis : Basis
        Basis system.
    """

    def __init__(self, coef: np.ndarray, basis: Basis):
        if not isinstance(basis, Basis):
            raise TypeError(f"basis must be a Basis, got {type(basis).__name__}")
        coef = np.asarray(coef, dtype=float)
        if coef.ndim not in (1, 2) or coef.shape[0] != basis.nbasis:
            raise ValueError(
                f"coef must have {basis.nbasis} rows, got shape {coef.shape}"
            )
        self.coef = coef
        self.basis = basis

    @property
    def ncurves(self) -> int:
        return 1 if self.coef.ndim == 1 else self.coef.shape[1]

    def evaluate(self, t: np.ndarray, deriv: int = 0) -> np.ndarray:
        """
        Evaluate the function(s) at given points.

        Returns
        -------
        values : ndarray of shape (n,) or (n, ncurves)
        """
        return self.basis.evaluate(t, deriv) @ self.coef

    def __repr__(self):
        return f"FunctionalData(basis={self.basis!r}, ncurves={self.ncurves})"


@dataclass(frozen=True)
class WeightFunction:
    """
    Coefficient function of a differential operator term.

    Attributes
    ----------
    fd : FunctionalData
        Single-curve expansion of the weight.
    estimate : bool
        If True, the coefficients are free parameters of the fit.
    lam : float
        Roughness penalty on the weight itself. Zero disables it.
    penalty_order : int
        Derivative order penalized by ``lam``.
    """
    fd: FunctionalData
    estimate: bool = True
    lam: float = 0.0
    penalty_order: int = 2

    def __post_init__(self):
        if not isinstance(self.fd, FunctionalData):
            raise TypeError(
                f"fd must be a FunctionalData, got {type(self.fd).__name__}"
            )
        if self.fd.coef.ndim != 1:
            raise ValueError("A weight function must hold a single curve")
        if self.lam < 0:
            raise ValueError(f"Weight lam must be non-negative, got {self.lam}")

    @property
    def coef(self) -> np.ndarray:
        return self.fd.coef

    @property
    def basis(self) -> Basis:
        return self.fd.basis

    @property
    def nbasis(self) -> int:
        return self.fd.basis.nbasis

    def evaluate(self, t: np.ndarray) -> np.ndarray:
        return self.fd.evaluate(t)

    def with_coef(self, coef: np.ndarray) -> "WeightFunction":
        """Copy of this weight with new coefficients."""
        return replace(self, fd=FunctionalData(np.array(coef, dtype=float), self.basis))

    def penalty_matrix(self) -> np.ndarray:
        return self.basis.penalty_matrix(self.penalty_order)


def constant_weight(
    value: float,
    rangeval: Tuple[float, float] = (0.0, 1.0),
    estimate: bool = True,
    lam: float = 0.0
) -> WeightFunction:
    """Weight function that is constant over ``rangeval``."""
    return WeightFunction(
        FunctionalData(np.array([float(value)]), ConstantBasis(rangeval)),
        estimate=estimate,
        lam=lam,
        penalty_order=0
    )


def weight_from_basis(
    basis: Basis,
    coef: Optional[np.ndarray] = None,
    estimate: bool = True,
    lam: float = 0.0,
    penalty_order: int = 2
) -> WeightFunction:
    """Weight function on ``basis``, zero-initialized unless ``coef`` is given."""
    if coef is None:
        coef = np.zeros(basis.nbasis)
    return WeightFunction(
        FunctionalData(coef, basis),
        estimate=estimate,
        lam=lam,
        penalty_order=penalty_order
    )
