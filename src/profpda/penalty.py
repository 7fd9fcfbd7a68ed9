"""
Roughness penalty induced by a linear differential operator.

For a curve x(t) = Phi(t) @ c and the operator
    Lx = D^m x + sum_j b_j D^j x + sum_k a_k u_k

the penalty ∫(Lx)^2 dt equals, up to a constant,
    c^T @ R @ c - 2 c^T @ s

with R = ∫(L Phi)^T (L Phi) dt and s = -∫(L Phi)^T (sum_k a_k u_k) dt.
Both are evaluated on the quadrature rule of the curve basis.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .basis import Basis
from .fd import FunctionalData, WeightFunction
from .params import FORCING, HOMOGENEOUS, ParameterLayout, check_weight_cells


@dataclass
class PenaltyTerms:
    """
    Penalty matrix and vector with optional parameter derivatives.

    Attributes
    ----------
    penmat : ndarray of shape (nbasis, nbasis)
        Penalty matrix R.
    penvec : ndarray of shape (nbasis,), optional
        Penalty vector s. None without forcing terms.
    dpenmat : ndarray of shape (nbasis, nbasis, n_params), optional
        dR/dbvec. None unless derivatives were requested.
    dpenvec : ndarray of shape (nbasis, n_params), optional
        ds/dbvec. None unless derivatives were requested and forcing is present.
    layout : ParameterLayout
        Parameter layout indexing the last axis of the derivative arrays.
    """
    penmat: np.ndarray
    penvec: Optional[np.ndarray]
    dpenmat: Optional[np.ndarray]
    dpenvec: Optional[np.ndarray]
    layout: ParameterLayout

    @property
    def has_forcing(self) -> bool:
        return self.penvec is not None


def check_forcing_cells(
    awt: Sequence[WeightFunction],
    ufd: Sequence[FunctionalData]
) -> Tuple[List[WeightFunction], List[FunctionalData]]:
    """Validate forcing weights and forcing functions as a pair."""
    awt = check_weight_cells(awt, "awt")
    ufd = list(ufd)
    if len(awt) != len(ufd):
        raise ValueError(
            f"awt and ufd must have equal length, got {len(awt)} and {len(ufd)}"
        )
    for k, u in enumerate(ufd):
        if isinstance(u, (list, tuple)):
            raise ValueError(
                f"ufd[{k}] is a nested sequence; only single-input "
                "systems are supported"
            )
        if not isinstance(u, FunctionalData):
            raise TypeError(
                f"ufd[{k}] must be a FunctionalData, got {type(u).__name__}"
            )
        if u.ncurves != 1:
            raise ValueError(f"ufd[{k}] must hold a single curve")
    return awt, ufd


def eval_penalty(
    bwt: Sequence[WeightFunction],
    awt: Sequence[WeightFunction],
    ufd: Sequence[FunctionalData],
    basis: Basis,
    derivatives: bool = False,
    layout: Optional[ParameterLayout] = None
) -> PenaltyTerms:
    """
    Assemble the operator penalty and, optionally, its derivatives.

    Parameters
    ----------
    bwt : sequence of WeightFunction
        Homogeneous weights b_0, ..., b_{m-1}. The order m of the operator
        is ``len(bwt)``; the coefficient of D^m is fixed at 1.
    awt : sequence of WeightFunction
        Forcing weights a_1, a_2, ...
    ufd : sequence of FunctionalData
        Forcing functions u_1, u_2, ..., same length as ``awt``.
    basis : Basis
        Basis of the fitted curves.
    derivatives : bool, default=False
        If True, also compute derivatives with respect to every free
        coefficient in ``layout`` order.
    layout : ParameterLayout, optional
        Parameter layout. Built from ``bwt`` and ``awt`` if not given.

    Returns
    -------
    terms : PenaltyTerms
    """
    if not isinstance(basis, Basis):
        raise TypeError(f"basis must be a Basis, got {type(basis).__name__}")
    bwt = check_weight_cells(bwt, "bwt")
    awt, ufd = check_forcing_cells(awt, ufd)
    if layout is None:
        layout = ParameterLayout.from_weights(bwt, awt)

    points, weights = basis.quadrature()
    nbasis = basis.nbasis
    m = len(bwt)

    # D^j Phi at the quadrature points, j = 0..m
    Phi = [basis.evaluate(points, j) for j in range(m + 1)]

    LPhi = Phi[m].copy()
    for j, w in enumerate(bwt):
        LPhi += w.evaluate(points)[:, None] * Phi[j]

    WLPhi = weights[:, None] * LPhi
    penmat = LPhi.T @ WLPhi
    penmat = 0.5 * (penmat + penmat.T)

    forcing = None
    penvec = None
    if awt:
        forcing = np.zeros(points.size)
        for a, u in zip(awt, ufd):
            forcing += a.evaluate(points) * u.evaluate(points).ravel()
        penvec = -(LPhi.T @ (weights * forcing))

    if not derivatives:
        return PenaltyTerms(penmat, penvec, None, None, layout)

    dpenmat = np.zeros((nbasis, nbasis, layout.size))
    dpenvec = np.zeros((nbasis, layout.size)) if penvec is not None else None

    for block in layout.blocks:
        w = layout.weight(block, bwt, awt)
        theta = w.basis.evaluate(points)

        if block.kind == HOMOGENEOUS:
            Phi_j = Phi[block.index]
            for i in range(block.length):
                dLPhi = theta[:, i, None] * Phi_j
                cross = dLPhi.T @ WLPhi
                dpenmat[:, :, block.offset + i] = cross + cross.T
                if dpenvec is not None:
                    dpenvec[:, block.offset + i] = -(dLPhi.T @ (weights * forcing))

        elif block.kind == FORCING:
            u_vals = ufd[block.index].evaluate(points).ravel()
            for i in range(block.length):
                dforcing = theta[:, i] * u_vals
                dpenvec[:, block.offset + i] = -(LPhi.T @ (weights * dforcing))

    return PenaltyTerms(penmat, penvec, dpenmat, dpenvec, layout)


def weight_roughness(
    bwt: Sequence[WeightFunction],
    awt: Sequence[WeightFunction],
    layout: ParameterLayout
) -> float:
    """
    Roughness penalty on the free weight functions themselves.

    Returns
    -------
    penalty : float
        sum over free weights with lam_j > 0 of lam_j * c_j^T @ P_j @ c_j
    """
    total = 0.0
    for block in layout.blocks:
        w = layout.weight(block, bwt, awt)
        if w.lam > 0:
            total += w.lam * (w.coef @ w.penalty_matrix() @ w.coef)
    return total


def weight_roughness_gradient(
    bwt: Sequence[WeightFunction],
    awt: Sequence[WeightFunction],
    layout: ParameterLayout
) -> np.ndarray:
    """
    Gradient of ``weight_roughness`` with respect to ``bvec``.

    d/dc [c^T P c] = 2 P c for symmetric P.
    """
    grad = np.zeros(layout.size)
    for block in layout.blocks:
        w = layout.weight(block, bwt, awt)
        if w.lam > 0:
            grad[block.slice] = 2 * w.lam * (w.penalty_matrix() @ w.coef)
    return grad
