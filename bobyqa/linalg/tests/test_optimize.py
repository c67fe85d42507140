import numpy as np
import pytest
from numpy.testing import assert_, assert_raises

from bobyqa.linalg import bvtcg
from bobyqa.tests import assert_within_bounds


class TestBVTCG:

    @pytest.mark.parametrize('n', [1, 5, 10, 50])
    def test_simple(self, n):
        rng = np.random.default_rng(n)
        gq = rng.standard_normal(n)
        Hq = rng.standard_normal((n, n))
        Hq = .5 * (Hq + Hq.T)
        xl = rng.standard_normal(n)
        xu = rng.standard_normal(n)
        xl, xu = np.minimum(xl, xu), np.maximum(xl, xu)
        x0 = rng.uniform(xl, xu)
        delta = rng.uniform(0.1, 1.0)
        xnew, gnew, crvmin = bvtcg(x0, gq, np.dot, xl, xu, delta, Hq)
        assert_within_bounds(xnew, xl, xu)
        assert_(xnew.size == n)
        assert_(gnew.size == n)
        assert_(isinstance(crvmin, float))

        # Ensure the feasibility of the output.
        tol = 10.0 * np.finfo(float).eps * n
        step = xnew - x0
        assert_(np.linalg.norm(step) - delta <= tol)

        # Ensure that no increase occurred in the objective function, and that
        # the returned gradient corresponds to the returned point.
        reduct = -np.inner(gq, step) - 0.5 * np.inner(step, np.dot(Hq, step))
        assert_(reduct >= -tol)
        np.testing.assert_allclose(gnew, gq + np.dot(Hq, step), atol=1e-8)

    @pytest.mark.parametrize('n', [2, 5, 10])
    def test_convex(self, n):
        # The unconstrained minimizer of a convex quadratic function is
        # returned when it is feasible.
        rng = np.random.default_rng(n)
        Hq = 2.0 * np.eye(n)
        x0 = np.zeros(n)
        solution = 0.1 * rng.uniform(-1.0, 1.0, n)
        gq = -np.dot(Hq, solution)
        xl = np.full(n, -1.0)
        xu = np.full(n, 1.0)
        xnew, gnew, crvmin = bvtcg(x0, gq, np.dot, xl, xu, 10.0, Hq)
        np.testing.assert_allclose(xnew, solution, atol=1e-10)
        assert_(crvmin > 0.0)

    def test_boundary(self):
        # The step along a direction of negative curvature reaches the
        # trust-region boundary.
        gq = np.array([1.0, 1.0])
        Hq = -np.eye(2)
        x0 = np.zeros(2)
        xnew, _, crvmin = bvtcg(x0, gq, np.dot, [-10.0, -10.0], [10.0, 10.0], 1.0, Hq)
        assert np.linalg.norm(xnew - x0) == pytest.approx(1.0)
        assert crvmin == 0.0

    def test_active_bound(self):
        gq = np.array([1.0, -1.0])
        Hq = np.eye(2)
        x0 = np.array([0.0, 0.5])
        xnew, _, _ = bvtcg(x0, gq, np.dot, [0.0, 0.0], [1.0, 1.0], 1.0, Hq)
        assert xnew[0] == 0.0
        assert 0.5 < xnew[1] <= 1.0

    def test_exceptions(self):
        x0 = np.ones(5, dtype=float)
        gq = np.ones(5, dtype=float)
        Hq = np.ones((5, 5), dtype=float)
        xl = np.zeros(5, dtype=float)
        xu = 2.0 * np.ones(5, dtype=float)
        delta = 1.0
        with assert_raises(AssertionError):
            bvtcg(x0, gq, np.dot, xl, xu, -1.0, Hq, debug=True)
        x0[2] = 2.1
        with assert_raises(AssertionError):
            bvtcg(x0, gq, np.dot, xl, xu, delta, Hq, debug=True)
        x0[2], xl[2], xu[2] = 1.0, 1.1, 0.9
        with assert_raises(AssertionError):
            bvtcg(x0, gq, np.dot, xl, xu, delta, Hq, debug=True)
