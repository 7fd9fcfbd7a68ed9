"""
Synthetic data generation for testing and demonstration.

Forward-simulates a linear differential equation
    D^m x + sum_j b_j(t) D^j x + sum_k a_k(t) u_k(t) = 0

from random initial states and adds Gaussian noise to produce curve samples.
"""

import numpy as np
from typing import Callable, Dict, Optional, Sequence, Tuple, Union
from scipy.integrate import solve_ivp

Coefficient = Union[float, Callable[[float], float]]


def _as_function(value: Coefficient) -> Callable[[float], float]:
    if callable(value):
        return value
    constant = float(value)
    return lambda t: constant


def simulate_operator(
    bfuns: Sequence[Coefficient],
    t_eval: np.ndarray,
    x0: np.ndarray,
    afuns: Sequence[Coefficient] = (),
    ufuns: Sequence[Callable[[float], float]] = ()
) -> np.ndarray:
    """
    Solve the differential equation for one initial state.

    Parameters
    ----------
    bfuns : sequence of float or callable
        Homogeneous weights b_0, ..., b_{m-1}.
    t_eval : ndarray of shape (n,)
        Output times. The integration starts at ``t_eval[0]``.
    x0 : ndarray of shape (m,)
        Initial values of x, Dx, ..., D^{m-1}x.
    afuns : sequence of float or callable
        Forcing weights.
    ufuns : sequence of callable
        Forcing functions, same length as ``afuns``.

    Returns
    -------
    x : ndarray of shape (n, m)
        x and its first m-1 derivatives at ``t_eval``.
    """
    bfuns = [_as_function(b) for b in bfuns]
    afuns = [_as_function(a) for a in afuns]
    ufuns = list(ufuns)
    if len(afuns) != len(ufuns):
        raise ValueError("afuns and ufuns must have equal length")
    m = len(bfuns)
    x0 = np.asarray(x0, dtype=float).ravel()
    if x0.size != m:
        raise ValueError(f"x0 must have {m} entries, got {x0.size}")

    def rhs(t, state):
        dstate = np.empty(m)
        dstate[:-1] = state[1:]
        top = -sum(b(t) * state[j] for j, b in enumerate(bfuns))
        top -= sum(a(t) * u(t) for a, u in zip(afuns, ufuns))
        dstate[-1] = top
        return dstate

    t_eval = np.asarray(t_eval, dtype=float)
    sol = solve_ivp(
        rhs, (t_eval[0], t_eval[-1]), x0,
        method='RK45',
        t_eval=t_eval,
        rtol=1e-8,
        atol=1e-10
    )
    if not sol.success:
        raise RuntimeError(f"ODE integration failed: {sol.message}")

    return sol.y.T


def generate_synthetic_dataset(
    n_curves: int = 5,
    n_points: int = 101,
    rangeval: Tuple[float, float] = (0.0, 1.0),
    bfuns: Sequence[Coefficient] = (40.0, 0.5),
    afuns: Sequence[Coefficient] = (),
    ufuns: Sequence[Callable[[float], float]] = (),
    noise_sd: float = 0.01,
    x0_scale: Optional[Sequence[float]] = None,
    random_state: int = 0
) -> Dict[str, np.ndarray]:
    """
    Generate noisy curves that satisfy a known differential equation.

    Parameters
    ----------
    n_curves : int, default=5
        Number of curves.
    n_points : int, default=101
        Number of equally spaced sample times.
    rangeval : tuple of float, default=(0.0, 1.0)
        Time interval.
    bfuns : sequence of float or callable, default=(40.0, 0.5)
        Homogeneous weights. The default is a lightly damped oscillator
        with about one cycle per unit time.
    afuns, ufuns : sequences
        Forcing weights and functions.
    noise_sd : float, default=0.01
        Standard deviation of the Gaussian measurement noise.
    x0_scale : sequence of float, optional
        Standard deviation of each initial state component.
        Defaults to 1 for x and sqrt(b_0) for higher derivatives.
    random_state : int, default=0
        Random seed.

    Returns
    -------
    dict with keys:
        - 'argvals': sample times, shape (n_points,)
        - 'y': noisy observations, shape (n_points, n_curves)
        - 'x_true': noise-free curves, shape (n_points, n_curves)
        - 'x0': initial states, shape (n_curves, m)
    """
    rng = np.random.default_rng(random_state)
    m = len(bfuns)
    argvals = np.linspace(rangeval[0], rangeval[1], n_points)

    if x0_scale is None:
        b0 = _as_function(bfuns[0])(rangeval[0]) if m > 0 else 1.0
        x0_scale = [1.0] + [np.sqrt(abs(b0)) or 1.0] * (m - 1)
    x0_scale = np.asarray(x0_scale, dtype=float)

    x0 = rng.normal(0.0, 1.0, (n_curves, m)) * x0_scale
    x_true = np.zeros((n_points, n_curves))
    for i in range(n_curves):
        x_true[:, i] = simulate_operator(bfuns, argvals, x0[i], afuns, ufuns)[:, 0]

    y = x_true + rng.normal(0.0, noise_sd, x_true.shape)

    return {
        'argvals': argvals,
        'y': y,
        'x_true': x_true,
        'x0': x0,
    }
