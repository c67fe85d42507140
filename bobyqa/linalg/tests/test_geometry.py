import numpy as np
import pytest
from numpy.testing import assert_, assert_raises

from bobyqa.linalg import bvcs, bvlag
from bobyqa.tests import assert_within_bounds


class TestBVCS:

    @staticmethod
    def curv(x, Hq):
        return np.inner(x, np.dot(Hq, x))

    @pytest.mark.parametrize('n', [1, 5, 10, 100])
    def test_simple(self, n):
        rng = np.random.default_rng(n)
        kopt = rng.integers(2 * n + 1)
        gq = rng.standard_normal(n)
        Hq = rng.standard_normal((n, n))
        Hq = 0.5 * (Hq + Hq.T)
        xl = rng.standard_normal(n)
        xu = rng.standard_normal(n)
        xl, xu = np.minimum(xl, xu), np.maximum(xl, xu)
        xpt = rng.uniform(xl, xu, (2 * n + 1, n))
        delta = rng.uniform(0.1, 1.0)
        xalt, cauchy = bvcs(xpt, kopt, gq, self.curv, xl, xu, delta, Hq)
        assert_within_bounds(xalt, xl, xu)
        assert_(xalt.size == n)
        assert_(cauchy >= 0.0)

        # Ensure the feasibility of the output.
        tol = 10.0 * np.finfo(float).eps * n
        step = xalt - xpt[kopt, :]
        assert_(np.linalg.norm(step) - delta <= tol)

        # The returned value is the square of the Lagrange polynomial.
        lag = np.inner(gq, step) + 0.5 * self.curv(step, Hq)
        assert cauchy == pytest.approx(lag ** 2.0, rel=1e-8, abs=1e-12)

    def test_restricted(self):
        # Every component of the gradient is restricted by the bounds.
        xpt = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.5, 0.5]])
        xl = np.zeros(2)
        xu = np.ones(2)
        xalt, cauchy = bvcs(xpt, 0, [1.0, 1.0], self.curv, xl, xu, 0.5, np.eye(2))
        np.testing.assert_array_equal(xalt, xpt[0, :])
        assert cauchy == 0.0

        # The gradient points inside the feasible set, but its opposite is
        # restricted by the bounds. The Cauchy point is then not selected.
        xalt, cauchy = bvcs(xpt, 0, [-1.0, -1.0], self.curv, xl, xu, 0.5, np.eye(2))
        assert np.linalg.norm(xalt) == pytest.approx(0.5)
        assert np.all(xalt > 0.0)
        assert cauchy == 0.0

        # Both the gradient and its opposite have free components.
        xpt = xpt + 0.5
        xl = np.zeros(2)
        xu = np.full(2, 2.0)
        xalt, cauchy = bvcs(xpt, 0, [-1.0, -1.0], self.curv, xl, xu, 0.5, np.eye(2))
        assert np.linalg.norm(xalt - xpt[0, :]) == pytest.approx(0.5)
        assert cauchy > 0.0

    def test_exceptions(self):
        xpt = np.ones((11, 5), dtype=float)
        kopt = 1
        gq = np.ones(5, dtype=float)
        Hq = np.ones((5, 5), dtype=float)
        xl = np.zeros(5, dtype=float)
        xu = 2.0 * np.ones(5, dtype=float)
        delta = 1.0
        with assert_raises(AssertionError):
            bvcs(xpt, kopt, gq, self.curv, xl, xu, -1.0, Hq, debug=True)
        xpt[kopt, 2] = 2.1
        with assert_raises(AssertionError):
            bvcs(xpt, kopt, gq, self.curv, xl, xu, delta, Hq, debug=True)
        xpt[kopt, 2], xl[2], xu[2] = 1.0, 1.1, 0.9
        with assert_raises(AssertionError):
            bvcs(xpt, kopt, gq, self.curv, xl, xu, delta, Hq, debug=True)


class TestBVLAG:

    @pytest.mark.parametrize('n', [1, 5, 10, 100])
    def test_simple(self, n):
        rng = np.random.default_rng(n)
        kopt, klag = rng.choice(2 * n + 1, 2, replace=False)
        gq = rng.standard_normal(n)
        xl = rng.standard_normal(n)
        xu = rng.standard_normal(n)
        xl, xu = np.minimum(xl, xu), np.maximum(xl, xu)
        xpt = rng.uniform(xl, xu, (2 * n + 1, n))
        delta = rng.uniform(0.1, 1.0)
        alpha = rng.uniform(0.1, 1.0)
        xnew = bvlag(xpt, kopt, klag, gq, xl, xu, delta, alpha)
        assert_within_bounds(xnew, xl, xu)
        assert_(xnew.size == n)

        # Ensure the feasibility of the output.
        tol = 10.0 * np.finfo(float).eps * n
        assert_(np.linalg.norm(xnew - xpt[kopt, :]) - delta <= tol)

    def test_line(self):
        # The point lies on a line joining xpt[kopt, :] to another point.
        xpt = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [-1.0, 0.0], [0.0, -1.0]])
        gq = np.array([1.0, 0.0])
        xnew = bvlag(xpt, 0, 1, gq, [-2.0, -2.0], [2.0, 2.0], 0.5, 1.0)
        assert xnew[1] == 0.0
        assert abs(xnew[0]) == pytest.approx(0.5)

    def test_exceptions(self):
        xpt = np.ones((11, 5), dtype=float)
        kopt, klag = 1, 2
        gq = np.ones(5, dtype=float)
        xl = np.zeros(5, dtype=float)
        xu = 2. * np.ones(5, dtype=float)
        delta = 1.0
        alpha = 1.0
        with assert_raises(AssertionError):
            bvlag(xpt, kopt, klag, gq, xl, xu, -1.0, alpha, debug=True)
        xpt[kopt, 2] = 2.1
        with assert_raises(AssertionError):
            bvlag(xpt, kopt, klag, gq, xl, xu, delta, alpha, debug=True)
        xpt[kopt, 2], xl[2], xu[2] = 1.0, 1.1, 0.9
        with assert_raises(AssertionError):
            bvlag(xpt, kopt, klag, gq, xl, xu, delta, alpha, debug=True)
