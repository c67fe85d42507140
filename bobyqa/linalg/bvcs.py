import numpy as np
from numpy.testing import assert_

from .utils import get_bdtol


def bvcs(xpt, kopt, gq, curv, xl, xu, delta, *args, **kwargs):
    """
    Evaluate Cauchy step on the absolute value of a Lagrange polynomial, subject
    to bound constraints on its coordinates and its length.

    Parameters
    ----------
    xpt : numpy.ndarray, shape (npt, n)
        Set of points. Each row of `xpt` stores the coordinates of a point.
    kopt : int
        Index of the point from which the Cauchy step is evaluated.
    gq : array_like, shape (n,)
        Gradient of the Lagrange polynomial of the points in `xpt` (not
        necessarily the `kopt`-th one) at ``xpt[kopt, :]``.
    curv : callable
        Function providing the curvature of the Lagrange polynomial.

            ``curv(x, *args) -> float``

        where ``x`` is an array with shape (n,) and ``args`` is the tuple of
        fixed parameters needed to specify the function.
    xl : array_like, shape (n,)
        Lower-bound constraints on the decision variables.
    xu : array_like, shape (n,)
        Upper-bound constraints on the decision variables.
    delta : float
        Upper bound on the length of the Cauchy step.
    *args : tuple, optional
        Parameters to forward to the curvature function.

    Returns
    -------
    xalt : numpy.ndarray, shape (n,)
        Cauchy point, being ``xpt[kopt, :]`` plus the Cauchy step.
    cauchy : float
        Square of the Lagrange polynomial evaluation at the Cauchy point. It is
        zero if every component of `gq` is restricted by the bounds, in which
        case `xalt` is ``xpt[kopt, :]``. It is also zero if every component of
        ``-gq`` is restricted, in which case `xalt` is the Cauchy point
        obtained along ``-gq``.

    Other Parameters
    ----------------
    bdtol : float, optional
        Tolerance for comparisons on the bound constraints (the default is
        ``10 * eps * n * max(1, max(abs(xl)), max(abs(xu)))``.
    debug : bool, optional
        Whether to make debugging tests during the execution, which is
        not recommended in production (the default is False).

    Raises
    ------
    AssertionError
        The vector ``xpt[kopt, :]`` is not feasible (only in debug mode).

    See Also
    --------
    bvlag : Bounded variable absolute Lagrange polynomial maximization

    Notes
    -----
    The method is adapted from the ALTMOV algorithm [1]_, and the vector
    ``xpt[kopt, :]`` must be feasible.

    References
    ----------
    .. [1] M. J. D. Powell. The BOBYQA algorithm for bound constrained
       optimization without derivatives. Tech. rep. DAMTP 2009/NA06. Cambridge,
       UK: Department of Applied Mathematics and Theoretical Physics, University
       of Cambridge, 2009.
    """
    xpt = np.atleast_2d(xpt)
    if xpt.dtype.kind in np.typecodes['AllInteger']:
        xpt = np.asarray(xpt, dtype=float)
    gq = np.atleast_1d(gq).astype(float)
    xl = np.atleast_1d(xl).astype(float)
    xu = np.atleast_1d(xu).astype(float)
    xopt = np.copy(xpt[kopt, :])

    # Ensure the feasibility of the initial guess.
    if kwargs.get('debug', False):
        bdtol = get_bdtol(xl, xu, **kwargs)
        assert_(np.max(xl - xopt) < bdtol)
        assert_(np.min(xu - xopt) > -bdtol)
        assert_(np.isfinite(delta))
        assert_(delta > 0.0)

    # Shift the bounds to carry out all calculations at xopt.
    dxl = xl - xopt
    dxu = xu - xopt

    # Start the procedure. The step is first calculated along the gradient of
    # the Lagrange polynomial, and then along its opposite.
    bigstp = 2.0 * delta
    xsav = np.copy(xopt)
    csav = 0.0
    xalt = np.copy(xopt)
    cauchy = 0.0
    for isign in range(2):
        # The free components of the Cauchy step are set to bigstp. The
        # computations stop immediately if every free component of the gradient
        # is zero.
        ifree = (np.minimum(-dxl, gq) > 0.0) | (np.maximum(-dxu, gq) < 0.0)
        cc = np.zeros_like(gq)
        cc[ifree] = bigstp
        ggfree = np.inner(gq[ifree], gq[ifree])
        if ggfree == 0.0:
            if isign == 0:
                return xopt, 0.0
            xalt, cauchy = xsav, 0.0
            break

        # Fix the components of the Cauchy step that would exceed the bounds,
        # and rescale the free components to respect the trust-region
        # constraint, until no component is newly fixed.
        wfixsq = 0.0
        stplen = 0.0
        while True:
            temp = delta ** 2.0 - wfixsq
            if temp <= 0.0:
                break
            wsqsav = wfixsq
            stplen = np.sqrt(temp / ggfree)
            ifree = cc == bigstp
            trial = -stplen * gq
            ixl = ifree & (trial <= dxl)
            ixu = ifree & np.logical_not(ixl) & (trial >= dxu)
            cc[ixl] = dxl[ixl]
            cc[ixu] = dxu[ixu]
            wfixsq += np.inner(cc[ixl], cc[ixl]) + np.inner(cc[ixu], cc[ixu])
            ifree &= np.logical_not(ixl | ixu)
            ggfree = np.inner(gq[ifree], gq[ifree])
            if wfixsq <= wsqsav or ggfree <= 0.0:
                break

        # Set the free components of the Cauchy step and all components of the
        # Cauchy point. The Cauchy step may be scaled hereinafter.
        ifree = cc == bigstp
        iopt = np.logical_not(ifree) & (cc == 0.0)
        ifixed = np.logical_not(ifree | iopt)
        cc[ifree] = -stplen * gq[ifree]
        xalt = np.copy(xopt)
        xalt[ifree] = np.maximum(xl[ifree], np.minimum(xu[ifree], xopt[ifree] + cc[ifree]))
        ixl = ifixed & (gq > 0.0)
        ixu = ifixed & np.logical_not(gq > 0.0)
        xalt[ixl] = xl[ixl]
        xalt[ixu] = xu[ixu]
        gqcc = np.inner(gq, cc)

        # Set the curvature of the Lagrange polynomial along the Cauchy step.
        # Scale the Cauchy step by a factor less than one if that can increase
        # the modulus of the Lagrange polynomial.
        crv = curv(cc, *args)
        if isign == 1:
            crv *= -1.0
        if -gqcc < crv < -(1.0 + np.sqrt(2.0)) * gqcc:
            scale = -gqcc / crv
            xalt = np.maximum(xl, np.minimum(xu, xopt + scale * cc))
            cauchy = (0.5 * gqcc * scale) ** 2.0
        else:
            cauchy = (gqcc + 0.5 * crv) ** 2.0

        # If isign is zero, then the step is calculated as before after
        # reversing the sign of the gradient. Thus two step vectors become
        # available. The chosen one gives the largest value of cauchy.
        if isign == 0:
            gq = -gq
            xsav = np.copy(xalt)
            csav = cauchy
        elif csav > cauchy:
            xalt = xsav
            cauchy = csav

    return xalt, cauchy
