"""
Test basis systems and functional data objects.
"""

import numpy as np
import pytest

from profpda.basis import (
    BSplineBasis, ConstantBasis, MonomialBasis, FourierBasis, simpson_rule
)
from profpda.fd import FunctionalData, WeightFunction, constant_weight


class TestBSplineBasis:
    """Test BSplineBasis class."""

    def test_basis_shape(self):
        """Basis matrix should have one column per basis function."""
        basis = BSplineBasis(nbasis=8)
        t = np.linspace(0, 1, 100)
        Phi = basis.evaluate(t)

        assert Phi.shape == (100, 8), f"Expected shape (100, 8), got {Phi.shape}"

    def test_partition_of_unity(self):
        """B-splines sum to one, so the derivative of the sum is zero."""
        basis = BSplineBasis(rangeval=(0, 2), nbasis=10)
        t = np.linspace(0, 2, 57)

        assert np.allclose(basis.evaluate(t).sum(axis=1), 1.0)
        assert np.allclose(basis.evaluate(t, 1).sum(axis=1), 0.0, atol=1e-9)

    def test_breaks_determine_nbasis(self):
        """nbasis = number of breaks + norder - 2."""
        basis = BSplineBasis(breaks=[0.0, 0.2, 0.5, 1.0], norder=4)
        assert basis.nbasis == 6
        assert basis.evaluate(np.array([0.3])).shape == (1, 6)

    def test_derivative_above_degree_is_zero(self):
        basis = BSplineBasis(nbasis=6, norder=3)
        assert np.allclose(basis.evaluate(np.linspace(0, 1, 9), 3), 0.0)

    def test_quadrature_integrates_polynomials(self):
        """Simpson panels per knot interval are exact for cubics."""
        basis = BSplineBasis(rangeval=(0, 2), nbasis=7)
        points, weights = basis.quadrature()

        assert np.isclose(weights.sum(), 2.0)
        assert np.isclose(np.sum(weights * points ** 3), 4.0)

    def test_penalty_matrix_symmetric_psd(self):
        basis = BSplineBasis(nbasis=9)
        P = basis.penalty_matrix(2)

        assert P.shape == (9, 9)
        assert np.allclose(P, P.T)
        assert np.min(np.linalg.eigvalsh(P)) > -1e-8

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            BSplineBasis(nbasis=3, norder=4)
        with pytest.raises(ValueError):
            BSplineBasis()
        with pytest.raises(ValueError):
            BSplineBasis(rangeval=(0, 1), breaks=[0.0, 0.5, 0.9])


class TestOtherBases:
    """Test constant, monomial and Fourier bases."""

    def test_constant_basis(self):
        basis = ConstantBasis((0, 3))
        t = np.linspace(0, 3, 11)

        assert np.allclose(basis.evaluate(t), 1.0)
        assert np.allclose(basis.evaluate(t, 1), 0.0)
        assert np.isclose(basis.penalty_matrix(0)[0, 0], 3.0)

    def test_monomial_derivatives(self):
        basis = MonomialBasis(nbasis=4)
        t = np.array([0.5, 2.0])
        d1 = basis.evaluate(t, 1)

        assert np.allclose(d1[:, 0], 0.0)
        assert np.allclose(d1[:, 1], 1.0)
        assert np.allclose(d1[:, 2], 2 * t)
        assert np.allclose(d1[:, 3], 3 * t ** 2)

    def test_monomial_penalty(self):
        """∫(D^2 t^2)^2 dt over [0, 1] is 4."""
        P = MonomialBasis(nbasis=3).penalty_matrix(2)
        assert np.isclose(P[2, 2], 4.0)
        assert np.allclose(P[:2, :], 0.0)

    def test_fourier_derivative_matches_finite_difference(self):
        basis = FourierBasis(rangeval=(0, 1), nbasis=5)
        t = np.linspace(0.1, 0.9, 7)
        h = 1e-6
        fd_deriv = (basis.evaluate(t + h) - basis.evaluate(t - h)) / (2 * h)

        assert np.allclose(basis.evaluate(t, 1), fd_deriv, atol=1e-5)

    def test_fourier_columns(self):
        basis = FourierBasis(rangeval=(0, 2), nbasis=3)
        t = np.array([0.25])
        Phi = basis.evaluate(t)

        assert np.allclose(Phi, [[1.0, np.sin(np.pi * 0.25), np.cos(np.pi * 0.25)]])


class TestSimpsonRule:

    def test_even_count_rounded_up(self):
        points, weights = simpson_rule(0.0, 1.0, 4)
        assert points.size == 5
        assert np.isclose(weights.sum(), 1.0)


class TestFunctionalData:
    """Test FunctionalData and WeightFunction."""

    def test_evaluate_curves(self):
        basis = MonomialBasis(nbasis=2)
        fd = FunctionalData(np.array([[1.0, 0.0], [0.0, 2.0]]), basis)
        values = fd.evaluate(np.array([0.0, 1.0]))

        assert fd.ncurves == 2
        assert np.allclose(values, [[1.0, 0.0], [1.0, 2.0]])

    def test_coef_rows_must_match_basis(self):
        with pytest.raises(ValueError):
            FunctionalData(np.zeros(3), MonomialBasis(nbasis=2))

    def test_basis_must_be_basis(self):
        with pytest.raises(TypeError):
            FunctionalData(np.zeros(3), "bspline")

    def test_with_coef_copies(self):
        w = constant_weight(2.0)
        new = w.with_coef([5.0])

        assert np.allclose(w.coef, [2.0])
        assert np.allclose(new.coef, [5.0])
        assert new.estimate == w.estimate

    def test_weight_rejects_multiple_curves(self):
        basis = MonomialBasis(nbasis=2)
        with pytest.raises(ValueError):
            WeightFunction(FunctionalData(np.zeros((2, 2)), basis))

    def test_weight_rejects_negative_lam(self):
        basis = MonomialBasis(nbasis=2)
        with pytest.raises(ValueError):
            WeightFunction(FunctionalData(np.zeros(2), basis), lam=-1.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
