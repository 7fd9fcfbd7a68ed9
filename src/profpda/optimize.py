"""
Optimization routines for operator estimation.

Implements multi-start L-BFGS-B optimization with analytic gradients and
GCV-based selection of the smoothing parameter.
"""

import numpy as np
from scipy.optimize import minimize
from typing import Callable, Optional, Tuple, List, Dict, Any
import warnings


def multi_start_optimize(
    objective_fn: Callable[[np.ndarray], Tuple[float, np.ndarray]],
    x0: np.ndarray,
    n_starts: int = 1,
    jac: bool = True,
    bounds: Optional[List[Tuple[float, float]]] = None,
    scale: float = 1.0,
    random_state: int = 0,
    maxiter: int = 500,
    verbose: bool = False
) -> Tuple[np.ndarray, float, Dict[str, Any]]:
    """
    Multi-start L-BFGS-B optimization.

    Parameters
    ----------
    objective_fn : callable
        If ``jac`` is True, f(x) -> (value, gradient); otherwise f(x) -> value.
    x0 : ndarray
        Initial point. Later starts add Gaussian perturbations to it.
    n_starts : int, default=1
        Number of starting points.
    jac : bool, default=True
        Whether ``objective_fn`` returns its gradient.
    bounds : list of tuples, optional
        Parameter bounds. Unbounded if None.
    scale : float, default=1.0
        Standard deviation of the start perturbations.
    random_state : int, default=0
        Random seed.
    maxiter : int, default=500
        Maximum iterations per start.
    verbose : bool, default=False
        Print progress.

    Returns
    -------
    x_best : ndarray
        Best parameter vector found.
    f_best : float
        Best objective value.
    info : dict
        Optimization info with keys 'n_iterations', 'success', 'message', 'all_results'.
    """
    rng = np.random.default_rng(random_state)
    x0 = np.asarray(x0, dtype=float).ravel()
    n_params = x0.size

    best_result = None
    best_f = np.inf
    all_results = []

    for i in range(n_starts):
        # Generate starting point
        if i == 0:
            x_start = x0.copy()
        else:
            x_start = x0 + rng.normal(0, scale, n_params)
            if bounds is not None:
                for j, (lb, ub) in enumerate(bounds):
                    x_start[j] = np.clip(x_start[j], lb, ub)

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                result = minimize(
                    objective_fn,
                    x_start,
                    method='L-BFGS-B',
                    jac=jac,
                    bounds=bounds,
                    options={'maxiter': maxiter}
                )

            all_results.append({
                'x': result.x,
                'fun': float(result.fun),
                'success': result.success,
                'nit': result.nit
            })

            if result.fun < best_f:
                best_f = float(result.fun)
                best_result = result

            if verbose:
                print(f"  Start {i+1}/{n_starts}: f = {float(result.fun):.6g}, success = {result.success}")

        except (ValueError, np.linalg.LinAlgError) as e:
            if verbose:
                print(f"  Start {i+1}/{n_starts}: failed with {e}")
            all_results.append({
                'x': x_start,
                'fun': np.inf,
                'success': False,
                'nit': 0,
                'error': str(e)
            })

    if best_result is None:
        raise RuntimeError("All optimization starts failed")

    info = {
        'n_iterations': best_result.nit,
        'success': best_result.success,
        'message': str(best_result.message),
        'all_results': all_results
    }

    return best_result.x, best_f, info


def select_lam_gcv(
    fit_fn: Callable[[float], Any],
    lam_grid: np.ndarray,
    verbose: bool = False
) -> Tuple[float, Dict[str, Any]]:
    """
    Choose the smoothing parameter with the lowest GCV score.

    Parameters
    ----------
    fit_fn : callable
        Function(lam) -> fit, where ``fit.gcv`` is the GCV score of the
        fit made with that lam.
    lam_grid : ndarray
        Candidate values.
    verbose : bool, default=False
        Print progress.

    Returns
    -------
    best_lam : float
        Candidate with the lowest finite GCV.
    gcv_info : dict
        Keys 'lam_grid', 'gcv_scores', 'best_lam'.

    Raises
    ------
    RuntimeError
        If no candidate yields a finite GCV score.
    """
    lam_grid = np.asarray(lam_grid, dtype=float)
    gcv_scores = np.full(lam_grid.size, np.nan)

    for i, lam in enumerate(lam_grid):
        try:
            gcv_scores[i] = fit_fn(lam).gcv
        except (RuntimeError, np.linalg.LinAlgError) as e:
            if verbose:
                print(f"  lam={lam:.2e} failed: {e}")
            continue
        if verbose:
            print(f"  lam={lam:.2e}: gcv = {gcv_scores[i]:.6g}")

    finite = np.isfinite(gcv_scores)
    if not np.any(finite):
        raise RuntimeError("No smoothing parameter gave a finite GCV score")

    best_idx = int(np.nanargmin(np.where(finite, gcv_scores, np.nan)))
    best_lam = float(lam_grid[best_idx])

    gcv_info = {
        'lam_grid': lam_grid,
        'gcv_scores': gcv_scores,
        'best_lam': best_lam
    }

    if verbose:
        print(f"Best lam: {best_lam:.2e} (gcv: {gcv_scores[best_idx]:.6g})")

    return best_lam, gcv_info
