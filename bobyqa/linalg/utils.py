import numpy as np
from scipy.linalg import get_blas_funcs


def rotg(a, b):
    """
    Construct a Givens plane rotation that annihilates the second component of
    a planar vector.

    Parameters
    ----------
    a : float
        First component of the vector to be rotated.
    b : float
        Second component of the vector to be rotated.

    Returns
    -------
    float
        First component of the vector in the rotated coordinate system. It is
        the (nonnegative) Euclidean norm of the vector.
    float
        Cosine of the angle of rotation.
    float
        Sine of the angle of rotation.
    """
    r = np.hypot(a, b)
    if r == 0.0:
        return 0.0, 1.0, 0.0
    return r, a / r, b / r


def rot(x, y, c, s):
    """
    Apply a Givens plane rotation in place.

    The arrays are modified as ``x <- c * x + s * y`` and
    ``y <- c * y - s * x``.

    Parameters
    ----------
    x : numpy.ndarray, shape (m,)
        The x-coordinates of each planar point to be rotated.
    y : numpy.ndarray, shape (m,)
        The y-coordinates of each planar point to be rotated.
    c : float
        Cosine of the angle of rotation.
    s : float
        Sine of the angle of rotation.
    """
    blas_rot, = get_blas_funcs(('rot',), (x, y))
    xr, yr = blas_rot(x, y, c, s)
    np.copyto(x, xr)
    np.copyto(y, yr)


def get_bdtol(xl, xu, **kwargs):
    """
    Get the tolerance for comparisons on the bound constraints.

    Parameters
    ----------
    xl : array_like, shape (n,)
        Lower-bound constraints on the decision variables.
    xu : array_like, shape (n,)
        Upper-bound constraints on the decision variables.

    Returns
    -------
    float:
        Tolerance for comparisons on the bound constraints.

    Other Parameters
    ----------------
    bdtol : float
        Default value for the tolerance.
    """
    xl = np.asarray(xl)
    xu = np.asarray(xu)

    eps = np.finfo(np.float64).eps
    tol = 10.0 * eps * xl.size
    temp = np.nan_to_num(np.abs(np.r_[xl, xu]), nan=1.0, posinf=1.0)
    bdtol = tol * np.max(temp, initial=1.0)
    return kwargs.get('bdtol', bdtol)
