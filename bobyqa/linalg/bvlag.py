import numpy as np
from numpy.testing import assert_

from .utils import get_bdtol


def bvlag(xpt, kopt, klag, gq, xl, xu, delta, alpha, **kwargs):
    """
    Estimate a point that maximizes a lower bound on the denominator of the
    updating formula, subject to bound constraints on its coordinates and its
    length.

    The estimated point lies on a line joining ``xpt[kopt, :]`` to another
    interpolation point. On each line, the modulus of the `klag`-th Lagrange
    polynomial is maximized, and the line that maximizes a prediction of the
    denominator of the updating formula is selected.

    Parameters
    ----------
    xpt : numpy.ndarray, shape (npt, n)
        Set of points. Each row of `xpt` stores the coordinates of a point.
    kopt : int
        Index of a point in `xpt`. The estimated point will lie on a line
        joining ``xpt[kopt, :]`` to another point in `xpt`.
    klag : int
        Index of the point in `xpt`.
    gq : array_like, shape (n,)
        Gradient of the `klag`-th Lagrange polynomial at ``xpt[kopt, :]``.
    xl : array_like, shape (n,)
        Lower-bound constraints on the decision variables.
    xu : array_like, shape (n,)
        Upper-bound constraints on the decision variables.
    delta : float
        Upper bound on the length of the step.
    alpha : float
        Real parameter.

    Returns
    -------
    xnew : numpy.ndarray, shape (n,)
        Estimated point. If a bound restricted the line search, the
        corresponding component is set exactly to the value of the bound.

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

    Notes
    -----
    The denominator of the updating formula is given in Equation (3.9) of [1]_,
    and the parameter `alpha` is the referred in Equation (4.12) of [2]_.

    References
    ----------
    .. [1] M. J. D. Powell. The BOBYQA algorithm for bound constrained
       optimization without derivatives. Tech. rep. DAMTP 2009/NA06. Cambridge,
       UK: Department of Applied Mathematics and Theoretical Physics, University
       of Cambridge, 2009.
    .. [2] M. J. D. Powell. "The NEWUOA software for unconstrained optimization
       without derivatives." In: Large-Scale Nonlinear Optimization. Ed. by G.
       Di Pillo and M. Roma. New York, NY, US: Springer, 2006, pp. 255--297.
    """
    xpt = np.atleast_2d(xpt).astype(float)
    gq = np.atleast_1d(gq).astype(float)
    xl = np.atleast_1d(xl).astype(float)
    xu = np.atleast_1d(xu).astype(float)
    xopt = np.copy(xpt[kopt, :])
    npt = xpt.shape[0]

    # Ensure the feasibility of the initial guess.
    if kwargs.get('debug', False):
        bdtol = get_bdtol(xl, xu, **kwargs)
        assert_(np.max(xl - xopt) < bdtol)
        assert_(np.min(xu - xopt) > -bdtol)
        assert_(np.isfinite(delta))
        assert_(delta > 0.0)

    # Shift the points and the bounds to carry out all calculations at xopt.
    dxpt = xpt - xopt[np.newaxis, :]
    dxl = xl - xopt
    dxu = xu - xopt

    # Start the iterative procedure. The method sets the largest value of the
    # predicted denominator so far in presav, the length of the best step so
    # far in stpsav, the index of the simple bound restraining the computations
    # in ibdsav, and index of the interpolation point defining the above line
    # in ksav. The indices of the bounds are one-based and signed, negative
    # values referring to lower bounds.
    presav = 0.0
    stpsav = 0.0
    ibdsav = 0
    ksav = -1
    for k in range(npt):
        if k == kopt:
            continue

        # Search for a point on the line between xopt and xpt[k, :], by
        # considering only the trust-region constraint first.
        dderiv = np.inner(dxpt[k, :], gq)
        distsq = np.inner(dxpt[k, :], dxpt[k, :])
        subd = delta / np.sqrt(distsq) if distsq > 0.0 else 0.0
        slbd = -subd
        ilbd = 0
        iubd = 0
        sumin = min(1.0, subd)

        # Update the lower and upper bounds on the step length to take into
        # account the simple bounds along the current line.
        ipos = dxpt[k, :] > 0.0
        ineg = dxpt[k, :] < 0.0
        ratio = np.full_like(xopt, -np.inf)
        ratio[ipos] = dxl[ipos] / dxpt[k, ipos]
        ratio[ineg] = dxu[ineg] / dxpt[k, ineg]
        i = np.argmax(ratio)
        if ratio[i] > slbd:
            slbd = ratio[i]
            ilbd = -i - 1 if ipos[i] else i + 1
        ratio = np.full_like(xopt, np.inf)
        ratio[ipos] = dxu[ipos] / dxpt[k, ipos]
        ratio[ineg] = dxl[ineg] / dxpt[k, ineg]
        i = np.argmin(ratio)
        if ratio[i] < subd:
            subd = max(sumin, ratio[i])
            iubd = i + 1 if ipos[i] else -i - 1

        # Compute the best point along the line joining xopt and xpt[k, :] that
        # respects the trust-region constraint and the simple bounds.
        if k == klag:
            diff = dderiv - 1.0
            stplen = slbd
            vlag = slbd * (dderiv - slbd * diff)
            isbd = ilbd
            temp = subd * (dderiv - subd * diff)
            if abs(temp) > abs(vlag):
                stplen = subd
                vlag = temp
                isbd = iubd
            tempd = 0.5 * dderiv
            tempa = tempd - diff * slbd
            tempb = tempd - diff * subd
            if tempa * tempb < 0.0:
                temp = tempd ** 2.0 / diff
                if abs(temp) > abs(vlag):
                    stplen = tempd / diff
                    vlag = temp
                    isbd = 0
        else:
            stplen = slbd
            vlag = slbd * (1.0 - slbd)
            isbd = ilbd
            temp = subd * (1.0 - subd)
            if abs(temp) > abs(vlag):
                stplen = subd
                vlag = temp
                isbd = iubd
            if subd > 0.5 and abs(vlag) < 0.25:
                stplen = 0.5
                vlag = 0.25
                isbd = 0
            vlag *= dderiv

        # Calculate the parameter given in Equation (3.9) of Powell (2009) for
        # the current line-search and maintain the optimal values so far.
        temp = stplen * (1.0 - stplen) * distsq
        predsq = vlag ** 2.0 * (vlag ** 2.0 + 0.5 * alpha * temp ** 2.0)
        if predsq > presav:
            presav = predsq
            ksav = k
            stpsav = stplen
            ibdsav = isbd

    # Construct the returned point.
    if ksav < 0:
        return np.copy(xopt)
    xnew = np.maximum(xl, np.minimum(xu, xopt + stpsav * dxpt[ksav, :]))
    if ibdsav < 0:
        xnew[-ibdsav - 1] = xl[-ibdsav - 1]
    elif ibdsav > 0:
        xnew[ibdsav - 1] = xu[ibdsav - 1]
    return xnew
