import operator

import numpy as np
from numpy.testing import assert_, assert_array_compare


def assert_within_bounds(x, xl, xu, err_msg=''):
    """
    Raise an AssertionError if a point is not a floating-point vector lying
    within the given bounds.

    Parameters
    ----------
    x : numpy.ndarray, shape (n,)
        Point to check.
    xl : array_like, shape (n,)
        Lower bounds on `x`.
    xu : array_like, shape (n,)
        Upper bounds on `x`.
    err_msg : str, optional
        Error message to be printed in case of failure.
    """
    assert_(x.dtype == np.dtype(float), f'dtype mismatch: "{x.dtype}" (should be "float64")')
    assert_(x.ndim == 1, f'dimension mismatch: {x.ndim} (should be 1)')
    assert_array_compare(operator.__le__, xl, x, err_msg, header='Lower bounds are violated')
    assert_array_compare(operator.__le__, x, xu, err_msg, header='Upper bounds are violated')
