"""
Smoke tests for plotting helpers.
"""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

from profpda.basis import BSplineBasis
from profpda.fd import constant_weight
from profpda.plotting import plot_fit, plot_weight_functions
from profpda.solver import ProfiledPDA
from profpda.synthetic import generate_synthetic_dataset


class TestPlotting:

    def setup_method(self):
        self.data = generate_synthetic_dataset(n_curves=2, n_points=41, random_state=0)
        bwt = [constant_weight(40.0, estimate=False), constant_weight(0.5, estimate=False)]
        self.result = ProfiledPDA(BSplineBasis(nbasis=12), lam=1e-2).fit(
            self.data['argvals'], self.data['y'], bwt
        )

    def teardown_method(self):
        plt.close("all")

    def test_plot_fit(self):
        ax = plot_fit(self.result, self.data['argvals'], self.data['y'])
        # two curves, each drawn as samples plus smooth
        assert len(ax.lines) == 4

    def test_plot_weight_functions(self):
        truth = {'b0': lambda t: 40.0, 'b1': lambda t: 0.5 * np.ones_like(t)}
        fig = plot_weight_functions(self.result, true_weights=truth)

        assert len(fig.axes) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
