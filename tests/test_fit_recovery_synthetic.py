"""
Test operator estimation on synthetic data.
"""

import numpy as np
import pytest

from profpda.basis import BSplineBasis, ConstantBasis
from profpda.fd import FunctionalData, constant_weight
from profpda.optimize import select_lam_gcv
from profpda.results import OperatorEstimate
from profpda.solver import ProfiledPDA
from profpda.synthetic import generate_synthetic_dataset, simulate_operator


class TestSimulation:
    """Test forward simulation of the differential equation."""

    def test_harmonic_oscillator(self):
        """x'' + w^2 x = 0 with x(0) = 1, x'(0) = 0 gives cos(wt)."""
        w = 2 * np.pi
        t = np.linspace(0, 1, 51)
        x = simulate_operator([w ** 2, 0.0], t, np.array([1.0, 0.0]))

        assert x.shape == (51, 2)
        assert np.allclose(x[:, 0], np.cos(w * t), atol=1e-6)
        assert np.allclose(x[:, 1], -w * np.sin(w * t), atol=1e-5)

    def test_forced_first_order(self):
        """x' + x + (-1) * 1 = 0 relaxes to 1."""
        t = np.linspace(0, 2, 21)
        x = simulate_operator([1.0], t, np.array([0.0]), [-1.0], [lambda s: 1.0])

        assert np.allclose(x[:, 0], 1 - np.exp(-t), atol=1e-6)

    def test_dataset_shapes(self):
        data = generate_synthetic_dataset(n_curves=3, n_points=31, random_state=5)

        assert data['argvals'].shape == (31,)
        assert data['y'].shape == (31, 3)
        assert data['x_true'].shape == (31, 3)
        assert data['x0'].shape == (3, 2)

    def test_mismatched_forcing(self):
        with pytest.raises(ValueError):
            simulate_operator([1.0], np.linspace(0, 1, 5), np.zeros(1), [1.0], [])


class TestFitRecovery:
    """Test basic fitting on synthetic data."""

    def setup_method(self):
        self.data = generate_synthetic_dataset(
            n_curves=4, n_points=101, bfuns=(40.0, 0.5),
            noise_sd=0.01, random_state=42
        )
        self.basis = BSplineBasis(nbasis=25, norder=6)

    def test_recovers_constant_coefficients(self):
        """Constant b0, b1 of a damped oscillator are recovered."""
        bwt = [constant_weight(30.0), constant_weight(0.0)]
        model = ProfiledPDA(self.basis, lam=1.0)
        result = model.fit(self.data['argvals'], self.data['y'], bwt)

        b0, b1 = result.bvec
        assert abs(b0 - 40.0) < 4.0, f"b0 = {b0}"
        assert abs(b1 - 0.5) < 1.0, f"b1 = {b1}"
        assert np.isfinite(result.diagnostics.sse)
        assert result.config['n_params'] == 2

    def test_fit_improves_objective(self):
        bwt = [constant_weight(30.0), constant_weight(0.0)]
        model = ProfiledPDA(self.basis, lam=1.0)
        start = model.evaluate(np.array([30.0, 0.0]), self.data['argvals'],
                               self.data['y'], bwt)
        result = model.fit(self.data['argvals'], self.data['y'], bwt)

        assert result.diagnostics.sse <= start.sse

    def test_fixed_weights_skip_optimization(self):
        bwt = [constant_weight(40.0, estimate=False), constant_weight(0.5, estimate=False)]
        model = ProfiledPDA(self.basis, lam=1.0)
        result = model.fit(self.data['argvals'], self.data['y'], bwt)

        assert result.bvec.shape == (0,)
        assert result.diagnostics.n_iterations == 0
        assert result.diagnostics.success
        assert np.allclose(result.bwt[0].coef, [40.0])

    def test_fixed_b1_free_b0(self):
        bwt = [constant_weight(30.0), constant_weight(0.5, estimate=False)]
        model = ProfiledPDA(self.basis, lam=1.0)
        result = model.fit(self.data['argvals'], self.data['y'], bwt)

        assert result.bvec.shape == (1,)
        assert abs(result.bwt[0].coef[0] - 40.0) < 4.0

    def test_forcing_weight_estimated(self):
        """x' + 2x - a*u = 0 with u = 1; estimate a."""
        data = generate_synthetic_dataset(
            n_curves=3, n_points=81, bfuns=(2.0,), afuns=(-3.0,),
            ufuns=(lambda t: 1.0,), noise_sd=0.005, random_state=3
        )
        basis = BSplineBasis(nbasis=15)
        bwt = [constant_weight(2.0, estimate=False)]
        awt = [constant_weight(0.0)]
        ufd = [FunctionalData(np.array([1.0]), ConstantBasis())]
        result = ProfiledPDA(basis, lam=1.0).fit(data['argvals'], data['y'], bwt, awt, ufd)

        assert abs(result.awt[0].coef[0] + 3.0) < 0.5, f"a = {result.awt[0].coef[0]}"

    def test_gcv_lam_selection(self):
        bwt = [constant_weight(40.0, estimate=False), constant_weight(0.5, estimate=False)]
        model = ProfiledPDA(self.basis)
        result = model.fit(
            self.data['argvals'], self.data['y'], bwt,
            gcv_lam=True, lam_grid=np.logspace(-6, 0, 4)
        )

        assert result.config['gcv_lam']
        assert result.lam in np.logspace(-6, 0, 4)

    def test_result_save_load(self, tmp_path):
        """Results should save and load correctly."""
        bwt = [constant_weight(30.0), constant_weight(0.0)]
        result = ProfiledPDA(self.basis, lam=1.0).fit(
            self.data['argvals'], self.data['y'], bwt
        )

        path = tmp_path / "estimate.npz"
        result.save(path)
        loaded = OperatorEstimate.load(path, self.basis, bwt)

        assert np.allclose(loaded.bvec, result.bvec)
        assert np.allclose(loaded.fd.coef, result.fd.coef)
        assert np.allclose(loaded.bwt[0].coef, result.bwt[0].coef)
        assert loaded.diagnostics.sse == result.diagnostics.sse
        assert loaded.config == result.config

    def test_weight_values(self):
        bwt = [constant_weight(30.0), constant_weight(0.0)]
        result = ProfiledPDA(self.basis, lam=1.0).fit(
            self.data['argvals'], self.data['y'], bwt
        )
        values = result.weight_values(np.linspace(0, 1, 5))

        assert set(values) == {'t', 'b0', 'b1'}
        assert np.allclose(values['b0'], result.bvec[0])


class TestGcvSelection:

    def test_picks_minimum(self):
        class Fit:
            def __init__(self, gcv):
                self.gcv = gcv

        scores = {1.0: 3.0, 2.0: 1.0, 3.0: np.nan}
        best, info = select_lam_gcv(lambda lam: Fit(scores[lam]), [1.0, 2.0, 3.0])

        assert best == 2.0
        assert np.isnan(info['gcv_scores'][2])

    def test_all_nan_raises(self):
        class Fit:
            gcv = np.nan

        with pytest.raises(RuntimeError):
            select_lam_gcv(lambda lam: Fit(), [1.0, 2.0])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
