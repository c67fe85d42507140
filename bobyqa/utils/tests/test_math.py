import numpy as np
import pytest

from bobyqa.utils import exact_1d_array, get_arrays_tol


class TestGetArraysTol:

    @pytest.mark.parametrize('n_max', [0, 1, 2, 10, 100])
    @pytest.mark.parametrize('nb_arrays', [1, 2, 10, 100])
    def test_simple(self, n_max, nb_arrays):
        rng = np.random.default_rng(0)
        arrays = (rng.random(rng.integers(n_max + 1)) for _ in range(nb_arrays))
        tol = get_arrays_tol(*arrays)
        assert tol > 0.0
        assert np.isfinite(tol)

    def test_inf(self):
        tol = get_arrays_tol(np.array([1.0, np.inf]), np.array([-2.0, -np.inf]))
        assert tol == pytest.approx(10.0 * np.finfo(float).eps * 2.0 * 2.0)

    def test_empty(self):
        with pytest.raises(ValueError):
            get_arrays_tol()


class TestExact1dArray:

    def test_simple(self):
        x = exact_1d_array([[1.0, 2.0]], 'error')
        assert x.shape == (2,)
        x = exact_1d_array(1, 'error')
        assert x.shape == (1,)
        assert x.dtype == float

    def test_exceptions(self):
        with pytest.raises(ValueError, match='error'):
            exact_1d_array([[1.0, 2.0], [3.0, 4.0]], 'error')
