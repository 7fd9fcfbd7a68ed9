"""
Visualization tools for fitted operators.

Provides functions for plotting smoothed curves against data and the
estimated weight functions.
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from typing import Optional, Dict, Callable, Tuple

from .results import OperatorEstimate


def plot_fit(
    result: OperatorEstimate,
    argvals: np.ndarray,
    y: np.ndarray,
    n_eval: int = 201,
    max_curves: int = 6,
    ax: Optional[plt.Axes] = None,
    title: str = "Smoothed curves"
) -> plt.Axes:
    """
    Plot observed samples and the smooth induced by the fitted operator.

    Parameters
    ----------
    result : OperatorEstimate
        Fitted results.
    argvals : ndarray of shape (n,)
        Sample times.
    y : ndarray of shape (n,) or (n, ncurves)
        Observed curves.
    n_eval : int, default=201
        Number of points for drawing the smooth.
    max_curves : int, default=6
        Only the first ``max_curves`` curves are drawn.
    ax : Axes, optional
        Matplotlib axes. If None, creates new figure.
    title : str
        Plot title.

    Returns
    -------
    ax : Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 5))

    y = np.asarray(y)
    if y.ndim == 1:
        y = y[:, None]
    lo, hi = result.fd.basis.rangeval
    t_fine = np.linspace(lo, hi, n_eval)
    xhat = result.fd.evaluate(t_fine)
    if xhat.ndim == 1:
        xhat = xhat[:, None]

    n_show = min(max_curves, y.shape[1])
    colors = plt.cm.tab10(np.arange(n_show) % 10)
    for i in range(n_show):
        ax.plot(argvals, y[:, i], 'o', ms=3, alpha=0.5, color=colors[i])
        ax.plot(t_fine, xhat[:, i], '-', lw=1.5, color=colors[i])

    ax.set_xlabel('t')
    ax.set_ylabel('x(t)')
    ax.set_title(title)

    return ax


def plot_weight_functions(
    result: OperatorEstimate,
    true_weights: Optional[Dict[str, Callable[[np.ndarray], np.ndarray]]] = None,
    n_eval: int = 201,
    figsize: Optional[Tuple[float, float]] = None
) -> Figure:
    """
    Plot fitted weight functions b_j(t) and a_k(t).

    Parameters
    ----------
    result : OperatorEstimate
        Fitted results.
    true_weights : dict, optional
        Ground truth keyed like ``result.weight_values`` ('b0', 'a1', ...),
        each a function of t.
    n_eval : int, default=201
        Number of evaluation points.
    figsize : tuple, optional
        Figure size.

    Returns
    -------
    fig : Figure
    """
    lo, hi = result.fd.basis.rangeval
    t = np.linspace(lo, hi, n_eval)
    values = result.weight_values(t)
    names = [k for k in values if k != 't']

    n_panels = max(len(names), 1)
    if figsize is None:
        figsize = (4 * n_panels, 3.5)
    fig, axes = plt.subplots(1, n_panels, figsize=figsize)
    axes = np.atleast_1d(axes)

    for ax, name in zip(axes, names):
        ax.plot(t, values[name], 'b-', lw=2, label='Fitted')
        if true_weights is not None and name in true_weights:
            truth = np.broadcast_to(true_weights[name](t), t.shape)
            ax.plot(t, truth, 'r--', lw=1.5, label='True')
        ax.axhline(0, color='gray', lw=0.5)
        ax.set_xlabel('t')
        ax.set_ylabel(f'{name}(t)')
        ax.set_title(name)
        ax.legend()

    fig.tight_layout()
    return fig
