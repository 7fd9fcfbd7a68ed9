"""
Result containers and diagnostic information.

Provides structured output from the profiled objective and from model
fitting, with save/load functionality for fitted operators.
"""

import numpy as np
import json
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Tuple
from pathlib import Path

from .basis import Basis
from .fd import FunctionalData, WeightFunction


@dataclass
class ProfiledFit:
    """
    Output of one evaluation of the profiled objective.

    Attributes
    ----------
    sse : float
        Residual sum of squares plus roughness of free weight functions.
    pensse : float
        Residual sum of squares plus lam times the operator penalty on the
        fitted curves. Does not include weight roughness.
    fd : FunctionalData
        Fitted curves.
    df : float
        Effective degrees of freedom, trace of the smoother.
    gcv : float
        Generalized cross-validation score. NaN when df >= n.
    lam : float
        Smoothing parameter actually used after clamping and rescaling.
    gradient : ndarray, optional
        dSSE/dbvec. None unless requested.
    """
    sse: float
    pensse: float
    fd: FunctionalData
    df: float
    gcv: float
    lam: float
    gradient: Optional[np.ndarray] = None

    @property
    def coef(self) -> np.ndarray:
        return self.fd.coef

    def objective(self) -> Tuple[float, np.ndarray]:
        """(sse, gradient) pair for optimizers called with ``jac=True``."""
        if self.gradient is None:
            raise ValueError("This fit was computed without a gradient")
        return self.sse, self.gradient


@dataclass
class Diagnostics:
    """
    Fitting diagnostics.

    Attributes
    ----------
    sse : float
        Final profiled SSE (objective value).
    pensse : float
        Final penalized SSE.
    df : float
        Effective degrees of freedom of the final smooth.
    gcv : float
        GCV score of the final smooth.
    n_iterations : int
        Number of optimizer iterations.
    success : bool
        Whether optimization converged.
    message : str
        Optimizer message.
    """
    sse: float
    pensse: float
    df: float
    gcv: float
    n_iterations: int = 0
    success: bool = False
    message: str = ""


@dataclass
class OperatorEstimate:
    """
    Fitted differential operator and the smooth it induces.

    Attributes
    ----------
    bvec : ndarray
        Fitted free parameter vector.
    bwt : list of WeightFunction
        Homogeneous weights with fitted coefficients.
    awt : list of WeightFunction
        Forcing weights with fitted coefficients.
    fd : FunctionalData
        Smoothed curves under the fitted operator.
    lam : float
        Smoothing parameter used.
    diagnostics : Diagnostics
        Fitting diagnostics.
    config : dict
        Configuration used for fitting.
    """
    bvec: np.ndarray
    bwt: List[WeightFunction]
    awt: List[WeightFunction]
    fd: FunctionalData
    lam: float
    diagnostics: Diagnostics
    config: Dict[str, Any] = field(default_factory=dict)

    def weight_values(self, t: np.ndarray) -> Dict[str, np.ndarray]:
        """
        Evaluate all weight functions.

        Parameters
        ----------
        t : ndarray
            Evaluation points.

        Returns
        -------
        dict with keys 'b0', 'b1', ..., 'a1', 'a2', ... and 't'
        """
        t = np.asarray(t, dtype=float)
        values = {'t': t}
        for j, w in enumerate(self.bwt):
            values[f'b{j}'] = w.evaluate(t)
        for k, w in enumerate(self.awt):
            values[f'a{k + 1}'] = w.evaluate(t)
        return values

    def save(self, path: str):
        """
        Save coefficients and diagnostics to file.

        Parameters
        ----------
        path : str
            Output file path. Uses .npz format.

        Notes
        -----
        Bases are not serialized. ``load`` needs the same bases and weight
        templates the fit was made with.
        """
        path = Path(path)

        diag_dict = {
            'diag_sse': self.diagnostics.sse,
            'diag_pensse': self.diagnostics.pensse,
            'diag_df': self.diagnostics.df,
            'diag_gcv': self.diagnostics.gcv,
            'diag_n_iterations': self.diagnostics.n_iterations,
            'diag_success': self.diagnostics.success,
            'diag_message': self.diagnostics.message,
        }

        np.savez(
            path,
            bvec=self.bvec,
            fd_coef=self.fd.coef,
            bwt_coefs=np.array([w.coef for w in self.bwt], dtype=object),
            awt_coefs=np.array([w.coef for w in self.awt], dtype=object),
            lam=self.lam,
            config=json.dumps(self.config),
            **diag_dict
        )

    @classmethod
    def load(
        cls,
        path: str,
        basis: Basis,
        bwt: List[WeightFunction],
        awt: Optional[List[WeightFunction]] = None
    ) -> "OperatorEstimate":
        """
        Load results from file.

        Parameters
        ----------
        path : str
            Input file path (.npz format).
        basis : Basis
            Basis of the fitted curves.
        bwt, awt : list of WeightFunction
            Weight templates with the bases used for the fit.

        Returns
        -------
        result : OperatorEstimate
        """
        awt = [] if awt is None else list(awt)
        data = np.load(path, allow_pickle=True)

        bwt_coefs = list(data['bwt_coefs'])
        awt_coefs = list(data['awt_coefs'])
        if len(bwt_coefs) != len(bwt) or len(awt_coefs) != len(awt):
            raise ValueError("Saved weights do not match the given templates")

        diagnostics = Diagnostics(
            sse=float(data['diag_sse']),
            pensse=float(data['diag_pensse']),
            df=float(data['diag_df']),
            gcv=float(data['diag_gcv']),
            n_iterations=int(data['diag_n_iterations']),
            success=bool(data['diag_success']),
            message=str(data['diag_message'])
        )

        return cls(
            bvec=data['bvec'],
            bwt=[w.with_coef(c) for w, c in zip(bwt, bwt_coefs)],
            awt=[w.with_coef(c) for w, c in zip(awt, awt_coefs)],
            fd=FunctionalData(data['fd_coef'], basis),
            lam=float(data['lam']),
            diagnostics=diagnostics,
            config=json.loads(str(data['config']))
        )
