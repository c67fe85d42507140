import numpy as np
import pytest
from scipy.optimize import Bounds

from .. import framework
from ..framework import Phase, StepKind, TrustRegion
from ..problem import BoundConstraints, ObjectiveFunction, Problem
from ..utils import TrustRegionStepError


class RecordingTrustRegion(TrustRegion):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.rho_history = [self.rho]
        self.f_opt_history = [self.models.f_opt]

    def _shrink_rho(self):
        phase = super()._shrink_rho()
        self.rho_history.append(self.rho)
        return phase

    def _evaluate_candidate(self):
        phase = super()._evaluate_candidate()
        self.f_opt_history.append(self.models.f_opt)
        assert np.all(np.isfinite(self.models.gq))
        assert np.all(np.isfinite(self.models.hq))
        assert np.all(np.isfinite(self.models.bmat))
        assert np.all(np.isfinite(self.models.zmat))
        return phase


class TestTrustRegion:

    @pytest.mark.filterwarnings('error')
    @pytest.mark.parametrize('fun,solution', [
        (lambda x: (x[0] - 1.0) ** 2.0 + (x[1] - 2.0) ** 2.0, [1.0, 2.0]),
        (lambda x: 100.0 * (x[1] - x[0] ** 2.0) ** 2.0 + (1.0 - x[0]) ** 2.0, [1.0, 1.0]),
    ])
    def test_simple(self, fun, solution):
        problem = get_problem(fun)
        tr = RecordingTrustRegion(problem, debug=True)
        assert tr.rho == problem.radius_init
        assert tr.delta == problem.radius_init
        x, f = tr.run()
        np.testing.assert_allclose(x, solution, atol=1e-4)
        assert f == pytest.approx(fun(x))
        assert tr.n_iter > 0

        # The lower bound on the trust-region radius decreases until it reaches
        # its final value, and the best value never increases.
        rho_history = np.array(tr.rho_history)
        assert np.all(np.diff(rho_history) <= 0.0)
        assert np.all(rho_history >= problem.radius_final)
        assert tr.rho == problem.radius_final
        assert tr.delta >= tr.rho
        assert np.all(np.diff(tr.f_opt_history) <= 0.0)

    def test_degenerate(self):
        problem = get_problem(lambda x: (x[0] - x[1]) ** 2.0, x0=[3.0, -2.0])
        tr = RecordingTrustRegion(problem)
        x, f = tr.run()
        assert np.all(np.isfinite(x))
        assert f < 1e-8
        assert problem.n_eval <= 2000

    def test_best_eval(self):
        problem = get_problem(lambda x: x[0] + x[1])
        tr = TrustRegion(problem)
        x, f = tr.best_eval()
        np.testing.assert_array_equal(x, tr.models.build_x(tr.models.x_opt))
        assert f == np.min(tr.models.fval)
        x, f = tr.run()
        np.testing.assert_allclose(x, [-10.0, -10.0])
        assert f == pytest.approx(-20.0)

    def test_geometry_step(self):
        problem = get_problem(lambda x: (x[0] - 1.0) ** 2.0 + (x[1] - 2.0) ** 2.0)
        tr = TrustRegion(problem)
        models = tr.models
        knew = (models.kopt + 1) % models.npt
        xnew, xalt, alpha, cauchy = tr.get_geometry_step(knew, 1.0)
        for point in (xnew, xalt):
            assert np.all(point >= models.sl)
            assert np.all(point <= models.su)
            assert np.linalg.norm(point - models.x_opt) <= 1.0 + 1e-10
        assert alpha == pytest.approx(models.hdiag[knew])
        assert cauchy >= 0.0

    def test_flat_step(self, monkeypatch):
        # The initial model of (x - y) ** 2 is exact at the origin, so that it
        # is flat along (1, 1) with a vanishing gradient.

        def bvtcg(xopt, gq, hessp, xl, xu, delta, *args, **kwargs):
            step = np.full_like(xopt, delta / np.sqrt(xopt.size))
            return xopt + step, gq + hessp(step), 0.0

        monkeypatch.setattr(framework, 'bvtcg', bvtcg)
        problem = get_problem(lambda x: (x[0] - x[1]) ** 2.0, npt=6)
        tr = TrustRegion(problem)
        n_eval = problem.n_eval
        phase = tr._trust_region_step()
        assert phase in (Phase.SELECT_FARTHEST_POINT, Phase.SHRINK_RHO)
        assert problem.n_eval == n_eval

    def test_step_error(self, monkeypatch):

        def bvtcg(xopt, gq, hessp, xl, xu, delta, *args, **kwargs):
            step = 0.5 * delta * gq / np.linalg.norm(gq)
            return xopt + step, gq, -1.0

        monkeypatch.setattr(framework, 'bvtcg', bvtcg)
        problem = get_problem(lambda x: x[0] + x[1])
        tr = TrustRegion(problem)
        with pytest.raises(TrustRegionStepError):
            tr.run()

    def test_undefined_phase(self, monkeypatch):
        problem = get_problem(lambda x: x[0] + x[1])
        tr = TrustRegion(problem)
        monkeypatch.setattr(tr, '_trust_region_step', lambda: 'UNDEFINED')
        with pytest.raises(RuntimeError):
            tr.run()

    def test_enums(self):
        assert len(Phase) == 8
        assert Phase.TERMINATE in Phase
        assert len(StepKind) == 3


def get_problem(fun, x0=(0.0, 0.0), npt=5, max_eval=2000):
    obj = ObjectiveFunction(fun, 'minimize', max_eval, None, False, False, True)
    bounds = BoundConstraints(Bounds([-10.0, -10.0], [10.0, 10.0]))
    return Problem(obj, x0, bounds, npt, 1.0, 1e-8, True)
