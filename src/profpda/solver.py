"""
Main ProfiledPDA class for estimating differential operators from curves.

Integrates basis smoothing, the operator penalty, the profiled objective and
optimization to estimate the weight functions of
    D^m x + sum_j b_j D^j x + sum_k a_k u_k = 0
from noisy samples of x.
"""

import numpy as np
from typing import Optional, Sequence

from .basis import Basis
from .fd import FunctionalData, WeightFunction
from .params import ParameterLayout
from .objective import smoothing_matrices, profiled_sse, profiled_sse_gradient
from .optimize import multi_start_optimize, select_lam_gcv
from .results import ProfiledFit, OperatorEstimate, Diagnostics


class ProfiledPDA:
    """
    Profiled principal differential analysis for a single-input system.

    Parameters
    ----------
    basis : Basis
        Basis used to smooth the observed curves.
    lam : float, default=1.0
        Weight of the operator penalty in the smoothing criterion.
    maxiter : int, default=500
        Maximum optimizer iterations per start.

    Attributes
    ----------
    layout : ParameterLayout
        Parameter layout of the last fit.
    """

    def __init__(self, basis: Basis, lam: float = 1.0, maxiter: int = 500):
        if not isinstance(basis, Basis):
            raise TypeError(f"basis must be a Basis, got {type(basis).__name__}")
        self.basis = basis
        self.lam = lam
        self.maxiter = maxiter

        self.layout: Optional[ParameterLayout] = None

    def objective(
        self,
        argvals: np.ndarray,
        y: np.ndarray,
        bwt: Sequence[WeightFunction],
        awt: Sequence[WeightFunction] = (),
        ufd: Sequence[FunctionalData] = (),
        lam: Optional[float] = None,
        weights: Optional[np.ndarray] = None
    ):
        """
        Build the objective bvec -> (sse, gradient) for an optimizer.

        The smoothing matrices are computed here once and shared by every
        evaluation.
        """
        if lam is None:
            lam = self.lam
        basismat, Bmat, Dmat = smoothing_matrices(argvals, y, self.basis, weights)
        bwt = list(bwt)
        awt = list(awt)
        ufd = list(ufd)

        def objective(bvec: np.ndarray):
            fit = profiled_sse_gradient(
                bvec, y, basismat, Bmat, Dmat, bwt, awt, ufd, self.basis, lam
            )
            return fit.objective()

        return objective

    def evaluate(
        self,
        bvec: np.ndarray,
        argvals: np.ndarray,
        y: np.ndarray,
        bwt: Sequence[WeightFunction],
        awt: Sequence[WeightFunction] = (),
        ufd: Sequence[FunctionalData] = (),
        lam: Optional[float] = None,
        weights: Optional[np.ndarray] = None
    ) -> ProfiledFit:
        """Profiled fit for a given parameter vector, without gradient."""
        if lam is None:
            lam = self.lam
        basismat, Bmat, Dmat = smoothing_matrices(argvals, y, self.basis, weights)
        return profiled_sse(
            bvec, y, basismat, Bmat, Dmat, bwt, awt, ufd, self.basis, lam
        )

    def fit(
        self,
        argvals: np.ndarray,
        y: np.ndarray,
        bwt: Sequence[WeightFunction],
        awt: Sequence[WeightFunction] = (),
        ufd: Sequence[FunctionalData] = (),
        weights: Optional[np.ndarray] = None,
        gcv_lam: bool = False,
        lam_grid: Optional[np.ndarray] = None,
        n_starts: int = 1,
        random_state: int = 0,
        verbose: bool = False
    ) -> OperatorEstimate:
        """
        Estimate the free weight functions.

        Parameters
        ----------
        argvals : ndarray of shape (n,)
            Sample times.
        y : ndarray of shape (n,) or (n, ncurves)
            Observed curves.
        bwt : sequence of WeightFunction
            Homogeneous weights. Coefficients of estimated weights are
            starting values.
        awt : sequence of WeightFunction, default=()
            Forcing weights.
        ufd : sequence of FunctionalData, default=()
            Forcing functions.
        weights : ndarray of shape (n,), optional
            Observation weights.
        gcv_lam : bool, default=False
            If True, choose lam from ``lam_grid`` by GCV of the fit at the
            starting weights, then estimate with that lam.
        lam_grid : ndarray, optional
            Candidates for ``gcv_lam``. Default: logspace(-6, 2, 9).
        n_starts : int, default=1
            Number of optimizer starts.
        random_state : int, default=0
            Random seed for the extra starts.
        verbose : bool, default=False
            Print progress information.

        Returns
        -------
        result : OperatorEstimate
        """
        bwt = list(bwt)
        awt = list(awt)
        ufd = list(ufd)
        self.layout = ParameterLayout.from_weights(bwt, awt)
        x0 = self.layout.pack(bwt, awt)

        if verbose:
            print(f"Fitting order-{len(bwt)} operator with {len(awt)} forcing "
                  f"terms, {self.layout.size} parameters")

        lam = self.lam
        if gcv_lam:
            if lam_grid is None:
                lam_grid = np.logspace(-6, 2, 9)
            if verbose:
                print("Selecting lam by GCV...")

            def fit_at(lam_val):
                return self.evaluate(
                    x0, argvals, y, bwt, awt, ufd, lam=lam_val, weights=weights
                )

            lam, _ = select_lam_gcv(fit_at, lam_grid, verbose=verbose)

        if self.layout.size > 0:
            objective = self.objective(argvals, y, bwt, awt, ufd, lam, weights)
            if verbose:
                print(f"Optimizing with {n_starts} starts...")
            bvec, _, opt_info = multi_start_optimize(
                objective, x0, n_starts=n_starts, jac=True,
                maxiter=self.maxiter, random_state=random_state,
                verbose=verbose
            )
        else:
            bvec = x0
            opt_info = {'n_iterations': 0, 'success': True,
                        'message': 'No free parameters'}

        final = self.evaluate(bvec, argvals, y, bwt, awt, ufd, lam=lam, weights=weights)
        fitted_bwt, fitted_awt = self.layout.unpack(bvec, bwt, awt)

        diagnostics = Diagnostics(
            sse=final.sse,
            pensse=final.pensse,
            df=final.df,
            gcv=final.gcv,
            n_iterations=opt_info['n_iterations'],
            success=opt_info['success'],
            message=str(opt_info.get('message', ''))
        )

        return OperatorEstimate(
            bvec=bvec,
            bwt=fitted_bwt,
            awt=fitted_awt,
            fd=final.fd,
            lam=final.lam,
            diagnostics=diagnostics,
            config={
                'lam': lam,
                'gcv_lam': gcv_lam,
                'n_starts': n_starts,
                'maxiter': self.maxiter,
                'order': len(bwt),
                'n_forcing': len(awt),
                'n_params': self.layout.size,
                'nbasis': self.basis.nbasis,
            }
        )
