import numpy as np
import pytest
from scipy.optimize import Bounds, rosen

from ..main import BOBYQA, minimize
from ..settings import ExitStatus, GoalType
from ..utils import InvalidConfigurationError, MaxEvalError


class TestMinimize:

    def setup_method(self):
        self.x0 = [0.0, 0.0]
        self.bounds = Bounds([-10.0, -10.0], [10.0, 10.0])
        self.options = {'nb_points': 6, 'debug': True}

    @staticmethod
    def fun(x, c=1.0):
        return (x[0] - c) ** 2.0 + (x[1] - 2.0) ** 2.0

    def test_simple(self):
        res = minimize(self.fun, self.x0, bounds=self.bounds, options=self.options)
        np.testing.assert_allclose(res.x, [1.0, 2.0], atol=1e-6)
        assert res.success, res.message
        assert res.status == ExitStatus.RADIUS_SUCCESS.value, res
        assert res.fun == pytest.approx(0.0, abs=1e-10), res
        assert res.nfev <= 1000, res
        assert res.nit > 0, res

    def test_rosen(self):
        res = minimize(rosen, [-1.2, 1.0], bounds=[[-5.0, 5.0], [-5.0, 5.0]], options=self.options)
        np.testing.assert_allclose(res.x, [1.0, 1.0], atol=1e-5)
        assert res.success, res.message
        assert res.fun < 1e-9, res

    def test_corner(self):
        options = dict(self.options, store_history=True)
        res = minimize(self.fun, [-10.0, -10.0], bounds=self.bounds, options=options)
        np.testing.assert_allclose(res.x, [1.0, 2.0], atol=1e-6)

        # Every evaluated point must satisfy the bound constraints.
        assert res.x_history.shape == (res.nfev, 2)
        assert np.all(res.x_history >= -10.0)
        assert np.all(res.x_history <= 10.0)

    def test_active_bounds(self):
        bounds = Bounds([2.0, -1.0], [5.0, 1.0])
        res = minimize(self.fun, [3.0, 0.0], bounds=bounds, options=self.options)
        np.testing.assert_allclose(res.x, [2.0, 1.0], atol=1e-8)
        assert res.x[0] >= 2.0
        assert res.x[1] <= 1.0
        assert res.fun == pytest.approx(2.0), res

    @pytest.mark.parametrize('npt', [5, 6])
    @pytest.mark.parametrize('x0', [[3.0, -2.0], [0.0, 0.0], [-7.5, 4.0], [9.0, 9.5], [-10.0, 10.0], [1.3, -8.2]])
    def test_degenerate(self, x0, npt):
        # The model becomes flat along (1, 1) once the valley is reached.
        options = dict(self.options, nb_points=npt, store_history=True, maxfev=2000)
        res = minimize(lambda x: (x[0] - x[1]) ** 2.0, x0, bounds=self.bounds, options=options)
        assert res.success, res.message
        assert res.fun < 1e-8, res
        assert res.nfev <= 2000, res
        assert np.all(np.isfinite(res.x_history))
        assert np.all(np.isfinite(res.fun_history))

    @pytest.mark.parametrize('n', [3, 5])
    @pytest.mark.parametrize('npt_type', ['min', 'default', 'max'])
    def test_npt(self, n, npt_type):
        npt = {'min': n + 2, 'default': 2 * n + 1, 'max': ((n + 1) * (n + 2)) // 2}[npt_type]
        options = {'nb_points': npt, 'radius_init': 0.5, 'radius_final': 1e-6, 'maxfev': 5000}
        bounds = Bounds(np.full(n, -2.0), np.full(n, 2.0))
        res = minimize(rosen, np.zeros(n), bounds=bounds, options=options)
        assert res.success, res.message
        assert res.fun < rosen(np.zeros(n)), res
        assert np.all(res.x >= -2.0)
        assert np.all(res.x <= 2.0)

    def test_args(self):
        res = minimize(self.fun, self.x0, 3.0, bounds=self.bounds, options=self.options)
        np.testing.assert_allclose(res.x, [3.0, 2.0], atol=1e-6)
        res_alt = minimize(self.fun, self.x0, (3.0,), bounds=self.bounds, options=self.options)
        np.testing.assert_array_equal(res.x, res_alt.x)
        assert res.nfev == res_alt.nfev, res
        assert res.nit == res_alt.nit, res

    def test_bounds_types(self):
        res = minimize(self.fun, self.x0, bounds=self.bounds, options=self.options)
        res_alt = minimize(self.fun, self.x0, bounds=[[-10.0, 10.0], [-10.0, 10.0]], options=self.options)
        np.testing.assert_array_equal(res.x, res_alt.x)
        assert res.status == res_alt.status, res
        assert res.nfev == res_alt.nfev, res
        assert res.nit == res_alt.nit, res

    def test_maximize(self):

        def fun(x):
            return 3.0 - self.fun(x)

        options = dict(self.options, goal='maximize', store_history=True)
        res = minimize(fun, self.x0, bounds=self.bounds, options=options)
        np.testing.assert_allclose(res.x, [1.0, 2.0], atol=1e-6)
        assert res.fun == pytest.approx(3.0), res
        assert res.fun == np.max(res.fun_history), res

    def test_callback(self):
        class Callback:

            def __init__(self):
                self.n_calls = 0

            def __call__(self, intermediate_result):
                assert intermediate_result.fun == TestMinimize.fun(intermediate_result.x)
                self.n_calls += 1

        callback = Callback()
        res = minimize(self.fun, self.x0, bounds=self.bounds, callback=callback, options=self.options)
        assert callback.n_calls == res.nfev

    def test_callback_stop(self):

        def callback(x):
            if len(points) == 8:
                raise StopIteration
            points.append(x)

        points = []
        res = minimize(self.fun, self.x0, bounds=self.bounds, callback=callback, options=self.options)
        assert res.success, res.message
        assert res.status == ExitStatus.CALLBACK_SUCCESS.value, res
        assert res.nfev == 9, res
        assert res.fun <= min(self.fun(x) for x in points), res

    def test_max_eval(self):
        calls = []

        def fun(x):
            calls.append(x)
            return rosen(x)

        options = dict(self.options, maxfev=10)
        with pytest.raises(MaxEvalError) as exc_info:
            minimize(fun, self.x0, bounds=self.bounds, options=options)
        assert exc_info.value.max_eval == 10
        assert len(calls) == 10

    def test_history(self):
        options = dict(self.options, store_history=True)
        res = minimize(self.fun, self.x0, bounds=self.bounds, options=options)
        assert res.fun_history.shape == (res.nfev,)
        assert res.x_history.shape == (res.nfev, 2)
        assert res.fun == np.min(res.fun_history)
        np.testing.assert_allclose(res.fun_history, [self.fun(x) for x in res.x_history])
        res = minimize(self.fun, self.x0, bounds=self.bounds, options=self.options)
        assert not hasattr(res, 'fun_history')

    def test_verbose(self, capsys):
        options = dict(self.options, disp=True, radius_final=1e-4)
        res = minimize(self.fun, self.x0, bounds=self.bounds, options=options)
        captured = capsys.readouterr()
        assert 'Starting the optimization procedure.' in captured.out
        assert 'New trust-region radius' in captured.out
        assert f'Number of function evaluations: {res.nfev}.' in captured.out
        assert captured.out.count('fun(') == res.nfev

    def test_unknown_option(self):
        options = dict(self.options, unknown_option=True)
        with pytest.warns(RuntimeWarning):
            minimize(self.fun, self.x0, bounds=self.bounds, options=options)

    @pytest.mark.parametrize('x0,bounds,options', [
        ([0.0], [[-1.0, 1.0]], {}),
        ([0.0, 0.0], None, {}),
        ([0.0, 0.0], [[1.0, -1.0], [-1.0, 1.0]], {}),
        ([0.0, 0.0], [[-1.0, 1.0], [-1.0, 1.0], [-1.0, 1.0]], {}),
        ([0.0, 0.0], Bounds([-1.0, -1.0, -1.0], [1.0, 1.0, 1.0]), {}),
        ([0.0, 0.0], [[-1.0, 1.0], [-np.inf, 1.0]], {}),
        ([2.0, 0.0], [[-1.0, 1.0], [-1.0, 1.0]], {}),
        ([0.0, 0.0], [[-1.0, 1.0], [-1.0, 1.0]], {'nb_points': 3}),
        ([0.0, 0.0], [[-1.0, 1.0], [-1.0, 1.0]], {'nb_points': 7}),
        ([0.0, 0.0], [[-1.0, 1.0], [-1.0, 1.0]], {'radius_init': -1.0}),
        ([0.0, 0.0], [[-1.0, 1.0], [-1.0, 1.0]], {'radius_init': 1e-3, 'radius_final': 1e-2}),
        ([0.0, 0.0], [[-1.0, 1.0], [-1.0, 1.0]], {'maxfev': 0}),
        ([0.0, 0.0], [[-1.0, 1.0], [-1.0, 1.0]], {'goal': 'optimize'}),
    ])
    def test_exceptions(self, x0, bounds, options):
        calls = []

        def fun(x):
            calls.append(x)
            return rosen(x)

        with pytest.raises(InvalidConfigurationError):
            minimize(fun, x0, bounds=bounds, options=options)
        assert len(calls) == 0


class TestBOBYQA:

    def test_simple(self):
        optimizer = BOBYQA(6)
        assert optimizer.nb_points == 6
        assert optimizer.radius_init == 10.0
        assert optimizer.radius_final == 1e-8
        res = optimizer.optimize(TestMinimize.fun, [0.0, 0.0], [[-10.0, 10.0], [-10.0, 10.0]], 1000)
        np.testing.assert_allclose(res.x, [1.0, 2.0], atol=1e-6)
        assert res.success, res.message

    def test_reuse(self):
        optimizer = BOBYQA(5, 1.0, 1e-6)
        bounds = Bounds([-5.0, -5.0], [5.0, 5.0])
        res = optimizer.optimize(rosen, [-1.2, 1.0], bounds, 2000)
        res_alt = optimizer.optimize(rosen, [-1.2, 1.0], bounds, 2000)
        np.testing.assert_array_equal(res.x, res_alt.x)
        assert res.nfev == res_alt.nfev, res
        assert res.nit == res_alt.nit, res

    def test_maximize(self):
        optimizer = BOBYQA(5, 1.0, 1e-8)
        res = optimizer.optimize(lambda x: -rosen(x), [-1.2, 1.0], [[-5.0, 5.0], [-5.0, 5.0]], 2000, GoalType.MAXIMIZE)
        np.testing.assert_allclose(res.x, [1.0, 1.0], atol=1e-5)
        assert res.fun > -1e-9, res
