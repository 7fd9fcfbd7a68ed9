"""
Profiled error sum of squares for operator weight estimation.

For a fixed operator estimate the curve coefficients solve the penalized
normal equations
    (Bmat + lam * R) @ coef = Dmat + lam * s

and the quality of the operator is measured by how well the resulting smooth
fits the data. The fit and its gradient with respect to the free weight
coefficients are what an outer quasi-Newton optimizer consumes.
"""

import warnings

import numpy as np
from typing import Optional, Sequence, Tuple

from .basis import Basis
from .fd import FunctionalData, WeightFunction
from .params import HOMOGENEOUS, ParameterLayout, check_weight_cells
from .penalty import (
    check_forcing_cells,
    eval_penalty,
    weight_roughness,
    weight_roughness_gradient,
)
from .results import ProfiledFit

MAX_CONDITION = 1e12


def smoothing_matrices(
    argvals: np.ndarray,
    y: np.ndarray,
    basis: Basis,
    weights: Optional[np.ndarray] = None
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Precompute the data-dependent matrices of the smoothing problem.

    Parameters
    ----------
    argvals : ndarray of shape (n,)
        Sample times shared by all curves.
    y : ndarray of shape (n,) or (n, ncurves)
        Observed values, one column per curve.
    basis : Basis
        Basis of the fitted curves.
    weights : ndarray of shape (n,), optional
        Observation weights. Defaults to ones.

    Returns
    -------
    basismat : ndarray of shape (n, nbasis)
        Basis evaluated at ``argvals``.
    Bmat : ndarray of shape (nbasis, nbasis)
        basismat^T @ W @ basismat
    Dmat : ndarray of shape (nbasis, ncurves)
        basismat^T @ W @ y
    """
    if not isinstance(basis, Basis):
        raise TypeError(f"basis must be a Basis, got {type(basis).__name__}")
    argvals = np.asarray(argvals, dtype=float).ravel()
    y = _as_columns(y)
    if y.shape[0] != argvals.size:
        raise ValueError(
            f"y has {y.shape[0]} rows but there are {argvals.size} sample times"
        )

    basismat = basis.evaluate(argvals)
    if weights is None:
        weights = np.ones(argvals.size)
    else:
        weights = np.asarray(weights, dtype=float).ravel()
        if weights.size != argvals.size:
            raise ValueError("weights must have one entry per sample time")
        if np.any(weights < 0):
            raise ValueError("weights must be non-negative")

    WPhi = weights[:, None] * basismat
    Bmat = basismat.T @ WPhi
    Dmat = WPhi.T @ y
    return basismat, Bmat, Dmat


def check_conditioning(lam: float, penmat: np.ndarray, Bmat: np.ndarray) -> float:
    """
    Limit ``lam`` so that the penalized system stays well conditioned.

    Uses condno = ||penmat||_F / ||Bmat||_F. If lam * condno exceeds 1e12,
    lam is replaced by 1e12 / condno and a warning is issued.

    Returns
    -------
    lam : float
        Smoothing parameter to use.
    """
    condno = np.linalg.norm(penmat) / np.linalg.norm(Bmat)
    if lam * condno > MAX_CONDITION:
        new_lam = MAX_CONDITION / condno
        warnings.warn(
            f"lam reduced from {lam:.3g} to {new_lam:.3g} to keep the "
            "penalized system well conditioned"
        )
        return new_lam
    return lam


def invert_system_matrix(Mmat: np.ndarray) -> np.ndarray:
    """Inverse of ``Mmat``, taken elementwise when it is diagonal."""
    diag = np.diag(Mmat)
    if np.count_nonzero(Mmat - np.diag(diag)) == 0:
        if np.any(diag == 0):
            raise np.linalg.LinAlgError("Singular matrix")
        return np.diag(1.0 / diag)
    return np.linalg.inv(Mmat)


def _as_columns(a: np.ndarray) -> np.ndarray:
    a = np.asarray(a, dtype=float)
    if a.ndim == 1:
        return a[:, None]
    if a.ndim != 2:
        raise ValueError(f"Expected a 1-D or 2-D array, got shape {a.shape}")
    return a


def _profile(
    bvec, y, basismat, Bmat, Dmat, bwt, awt, ufd, basis, lam, with_gradient
) -> ProfiledFit:
    if not isinstance(basis, Basis):
        raise TypeError(f"basis must be a Basis, got {type(basis).__name__}")
    bwt = check_weight_cells(bwt, "bwt")
    awt, ufd = check_forcing_cells(awt, ufd)

    y = _as_columns(y)
    Dmat = _as_columns(Dmat)
    basismat = np.asarray(basismat, dtype=float)
    Bmat = np.asarray(Bmat, dtype=float)
    nbasis = basis.nbasis
    if basismat.shape != (y.shape[0], nbasis):
        raise ValueError(
            f"basismat must have shape {(y.shape[0], nbasis)}, got {basismat.shape}"
        )
    if Bmat.shape != (nbasis, nbasis):
        raise ValueError(f"Bmat must have shape {(nbasis, nbasis)}, got {Bmat.shape}")
    if Dmat.shape != (nbasis, y.shape[1]):
        raise ValueError(
            f"Dmat must have shape {(nbasis, y.shape[1])}, got {Dmat.shape}"
        )

    if lam < 0:
        warnings.warn(f"Negative lam ({lam}) replaced by 0")
        lam = 0.0

    layout = ParameterLayout.from_weights(bwt, awt)
    bwt, awt = layout.unpack(bvec, bwt, awt)

    terms = eval_penalty(
        bwt, awt, ufd, basis, derivatives=with_gradient, layout=layout
    )
    penmat = terms.penmat

    lam = check_conditioning(lam, penmat, Bmat)

    Mmat = Bmat + lam * penmat
    if terms.has_forcing:
        Dmat = Dmat + lam * terms.penvec[:, None]

    Mmatinv = invert_system_matrix(Mmat)
    df = float(np.trace(Mmatinv @ Bmat))

    coef = Mmatinv @ Dmat
    yhat = basismat @ coef
    res = y - yhat
    sse = float(np.sum(res ** 2))
    pensse = sse + lam * float(np.trace(coef.T @ penmat @ coef))

    # Weight roughness goes into sse only; pensse keeps the curve roughness.
    sse += weight_roughness(bwt, awt, layout)

    gradient = None
    if with_gradient:
        gradient = np.zeros(layout.size)
        PhiMmatinv = basismat @ Mmatinv
        for block in layout.blocks:
            for p in range(block.offset, block.stop):
                if block.kind == HOMOGENEOUS:
                    rhs = terms.dpenmat[:, :, p] @ coef
                    if terms.has_forcing:
                        rhs = rhs - terms.dpenvec[:, p][:, None]
                    gradient[p] = 2 * lam * np.sum(res * (PhiMmatinv @ rhs))
                else:
                    dyhat = PhiMmatinv @ terms.dpenvec[:, p]
                    gradient[p] = -2 * lam * np.sum(res * dyhat[:, None])
        gradient += weight_roughness_gradient(bwt, awt, layout)

    n = y.shape[0]
    if df < n:
        gcv = (sse / n) / ((n - df) / n) ** 2
    else:
        gcv = np.nan

    return ProfiledFit(
        sse=sse,
        pensse=pensse,
        fd=FunctionalData(coef, basis),
        df=df,
        gcv=gcv,
        lam=lam,
        gradient=gradient
    )


def profiled_sse(
    bvec: np.ndarray,
    y: np.ndarray,
    basismat: np.ndarray,
    Bmat: np.ndarray,
    Dmat: np.ndarray,
    bwt: Sequence[WeightFunction],
    awt: Sequence[WeightFunction],
    ufd: Sequence[FunctionalData],
    basis: Basis,
    lam: float
) -> ProfiledFit:
    """
    Penalized smooth of the data for the operator encoded by ``bvec``.

    Parameters
    ----------
    bvec : ndarray of shape (n_params,)
        Free weight coefficients, packed as b_0, ..., b_{m-1}, a_1, ...
        over weights with ``estimate=True``.
    y : ndarray of shape (n,) or (n, ncurves)
        Observed curves.
    basismat, Bmat, Dmat : ndarray
        Output of ``smoothing_matrices`` for ``y``.
    bwt : sequence of WeightFunction
        Homogeneous weights. Coefficients of estimated entries are
        replaced by ``bvec``; the others are used as given.
    awt : sequence of WeightFunction
        Forcing weights.
    ufd : sequence of FunctionalData
        Forcing functions.
    basis : Basis
        Basis of the fitted curves.
    lam : float
        Smoothing parameter for the operator penalty. Negative values are
        replaced by 0 with a warning.

    Returns
    -------
    fit : ProfiledFit
        With ``gradient=None``.
    """
    return _profile(
        bvec, y, basismat, Bmat, Dmat, bwt, awt, ufd, basis, lam,
        with_gradient=False
    )


def profiled_sse_gradient(
    bvec: np.ndarray,
    y: np.ndarray,
    basismat: np.ndarray,
    Bmat: np.ndarray,
    Dmat: np.ndarray,
    bwt: Sequence[WeightFunction],
    awt: Sequence[WeightFunction],
    ufd: Sequence[FunctionalData],
    basis: Basis,
    lam: float
) -> ProfiledFit:
    """
    Same as ``profiled_sse`` but also returns dSSE/dbvec in ``fit.gradient``.

    The gradient is exact as long as the conditioning guard does not
    rescale ``lam``.
    """
    return _profile(
        bvec, y, basismat, Bmat, Dmat, bwt, awt, ufd, basis, lam,
        with_gradient=True
    )
