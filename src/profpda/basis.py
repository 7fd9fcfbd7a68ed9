"""
Basis systems for functional data.

Each basis maps a coefficient vector to a function on a closed interval:
    f(t) = Phi(t) @ c

and knows how to evaluate its derivatives, integrate over its range with a
composite Simpson rule, and build roughness penalty matrices.
"""

import numpy as np
from math import factorial
from scipy.interpolate import BSpline
from typing import Optional, Sequence, Tuple


def simpson_rule(a: float, b: float, npts: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Composite Simpson quadrature on [a, b].

    Parameters
    ----------
    a, b : float
        Interval end points.
    npts : int
        Number of points. Rounded up to the next odd number.

    Returns
    -------
    points : ndarray of shape (npts,)
    weights : ndarray of shape (npts,)
    """
    npts = max(int(npts), 3)
    if npts % 2 == 0:
        npts += 1
    points = np.linspace(a, b, npts)
    weights = np.ones(npts)
    weights[1:-1:2] = 4.0
    weights[2:-1:2] = 2.0
    weights *= (b - a) / (3.0 * (npts - 1))
    return points, weights


class Basis:
    """
    Base class for basis systems on a closed interval.

    Subclasses implement ``_evaluate(t, deriv)`` and set ``nbasis``;
    the quadrature rule is built once on first use and cached.

    Parameters
    ----------
    rangeval : tuple of float
        Interval (lower, upper) on which the basis is defined.
    nbasis : int
        Number of basis functions.
    """

    def __init__(self, rangeval: Tuple[float, float], nbasis: int):
        lo, hi = float(rangeval[0]), float(rangeval[1])
        if not hi > lo:
            raise ValueError(f"rangeval must be increasing, got {rangeval}")
        if nbasis < 1:
            raise ValueError(f"nbasis must be positive, got {nbasis}")
        self.rangeval = (lo, hi)
        self.nbasis = int(nbasis)
        self._quadrature = None

    def evaluate(self, t: np.ndarray, deriv: int = 0) -> np.ndarray:
        """
        Evaluate basis functions (or a derivative of them) at given points.

        Parameters
        ----------
        t : ndarray of shape (n,)
            Evaluation points.
        deriv : int, default=0
            Order of derivative.

        Returns
        -------
        Phi : ndarray of shape (n, nbasis)
            Basis matrix.
        """
        if deriv < 0:
            raise ValueError(f"deriv must be non-negative, got {deriv}")
        t = np.asarray(t, dtype=float).ravel()
        return self._evaluate(t, int(deriv))

    def _evaluate(self, t: np.ndarray, deriv: int) -> np.ndarray:
        raise NotImplementedError

    def _quadrature_rule(self) -> Tuple[np.ndarray, np.ndarray]:
        return simpson_rule(self.rangeval[0], self.rangeval[1], 201)

    def quadrature(self) -> Tuple[np.ndarray, np.ndarray]:
        """Quadrature points and weights covering ``rangeval``."""
        if self._quadrature is None:
            self._quadrature = self._quadrature_rule()
        return self._quadrature

    def penalty_matrix(self, order: int = 2) -> np.ndarray:
        """
        Roughness penalty matrix for derivative ``order``.

        For f(t) = Phi(t) @ c:
            ∫(D^order f(t))^2 dt ≈ c^T @ P @ c

        Returns
        -------
        P : ndarray of shape (nbasis, nbasis)
            Symmetric positive semi-definite penalty matrix.
        """
        points, weights = self.quadrature()
        Phi_r = self.evaluate(points, order)
        P = Phi_r.T @ (weights[:, None] * Phi_r)
        return 0.5 * (P + P.T)

    def __repr__(self):
        return f"{type(self).__name__}(rangeval={self.rangeval}, nbasis={self.nbasis})"


class BSplineBasis(Basis):
    """
    B-spline basis with clamped knots.

    Parameters
    ----------
    rangeval : tuple of float, default=(0.0, 1.0)
        Interval of definition.
    nbasis : int, optional
        Number of basis functions. Breaks are placed uniformly.
        Ignored if ``breaks`` is given.
    norder : int, default=4
        Spline order (degree + 1). 4 gives cubic splines.
    breaks : sequence of float, optional
        Break points including both end points of ``rangeval``.
    nquad : int, default=7
        Simpson points per break interval.

    Notes
    -----
    Values and derivatives come from ``scipy.interpolate.BSpline`` with an
    identity coefficient matrix, so each column of the result is one basis
    function.
    """

    def __init__(
        self,
        rangeval: Tuple[float, float] = (0.0, 1.0),
        nbasis: Optional[int] = None,
        norder: int = 4,
        breaks: Optional[Sequence[float]] = None,
        nquad: int = 7
    ):
        if norder < 1:
            raise ValueError(f"norder must be positive, got {norder}")
        lo, hi = float(rangeval[0]), float(rangeval[1])

        if breaks is None:
            if nbasis is None:
                raise ValueError("Either nbasis or breaks must be given")
            if nbasis < norder:
                raise ValueError(
                    f"nbasis ({nbasis}) must be at least norder ({norder})"
                )
            breaks = np.linspace(lo, hi, nbasis - norder + 2)
        else:
            breaks = np.asarray(breaks, dtype=float)
            if breaks[0] != lo or breaks[-1] != hi:
                raise ValueError("breaks must start and end at rangeval")
            if np.any(np.diff(breaks) <= 0):
                raise ValueError("breaks must be strictly increasing")
            nbasis = len(breaks) + norder - 2

        super().__init__((lo, hi), nbasis)
        self.norder = int(norder)
        self.breaks = breaks
        self.nquad = nquad
        self.knots = np.concatenate([
            np.repeat(lo, norder - 1),
            breaks,
            np.repeat(hi, norder - 1)
        ])
        self._spline = BSpline(self.knots, np.eye(self.nbasis), self.norder - 1)

    def _evaluate(self, t, deriv):
        if deriv >= self.norder:
            return np.zeros((t.size, self.nbasis))
        return self._spline(t, nu=deriv, extrapolate=True)

    def _quadrature_rule(self):
        points, weights = [], []
        for a, b in zip(self.breaks[:-1], self.breaks[1:]):
            p, w = simpson_rule(a, b, self.nquad)
            points.append(p)
            weights.append(w)
        return np.concatenate(points), np.concatenate(weights)


class ConstantBasis(Basis):
    """Single constant basis function."""

    def __init__(self, rangeval: Tuple[float, float] = (0.0, 1.0)):
        super().__init__(rangeval, 1)

    def _evaluate(self, t, deriv):
        if deriv == 0:
            return np.ones((t.size, 1))
        return np.zeros((t.size, 1))

    def _quadrature_rule(self):
        return simpson_rule(self.rangeval[0], self.rangeval[1], 3)


class MonomialBasis(Basis):
    """
    Monomial basis 1, t, t^2, ..., t^(nbasis-1).

    Parameters
    ----------
    rangeval : tuple of float, default=(0.0, 1.0)
    nbasis : int, default=2
    """

    def __init__(self, rangeval: Tuple[float, float] = (0.0, 1.0), nbasis: int = 2):
        super().__init__(rangeval, nbasis)

    def _evaluate(self, t, deriv):
        Phi = np.zeros((t.size, self.nbasis))
        for p in range(deriv, self.nbasis):
            scale = factorial(p) / factorial(p - deriv)
            Phi[:, p] = scale * t ** (p - deriv)
        return Phi


class FourierBasis(Basis):
    """
    Fourier basis 1, sin(wt), cos(wt), sin(2wt), cos(2wt), ...

    Parameters
    ----------
    rangeval : tuple of float, default=(0.0, 1.0)
    nbasis : int, default=3
        Number of basis functions. Odd values give complete sin/cos pairs.
    period : float, optional
        Period of the basis. Defaults to the width of ``rangeval``.
    """

    def __init__(
        self,
        rangeval: Tuple[float, float] = (0.0, 1.0),
        nbasis: int = 3,
        period: Optional[float] = None
    ):
        super().__init__(rangeval, nbasis)
        if period is None:
            period = self.rangeval[1] - self.rangeval[0]
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        self.period = float(period)
        self.omega = 2.0 * np.pi / self.period

    def _evaluate(self, t, deriv):
        Phi = np.zeros((t.size, self.nbasis))
        if deriv == 0:
            Phi[:, 0] = 1.0
        # D^d sin(x) = sin(x + d*pi/2), likewise for cos
        shift = deriv * np.pi / 2.0
        for j in range(1, self.nbasis):
            k = (j + 1) // 2
            freq = k * self.omega
            arg = freq * t + shift
            Phi[:, j] = freq ** deriv * (np.sin(arg) if j % 2 == 1 else np.cos(arg))
        return Phi
