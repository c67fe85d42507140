import numpy as np
from numpy.testing import assert_

from .utils import get_bdtol


def bvtcg(xopt, gq, hessp, xl, xu, delta, *args, **kwargs):
    r"""
    Minimize approximately a quadratic function subject to bound and
    trust-region constraints using a truncated conjugate gradient.

    The method approximately solves

    .. math::

        \min_{d \in \mathbb{R}^n} \quad g^{\mathsf{T}} d + \frac{1}{2}
        d^{\mathsf{T}} H d \quad \text{s.t.} \quad
        \left\{ \begin{array}{l}
            l \le x_{\text{opt}} + d \le u,\\
            \lVert d \rVert \le \Delta,
        \end{array} \right.

    using an active-set variation of the truncated conjugate gradient method.
    Each variable that reaches a bound is fixed, and the conjugate gradient
    iterations are restarted on the remaining ones. When the trust-region
    boundary is reached, the step may be further improved by moving it around
    the boundary of the trust region, in the two-dimensional subspaces spanned
    by the current step and the projected steepest descent direction.

    Parameters
    ----------
    xopt : array_like, shape (n,)
        Point around which the quadratic function is expanded. It must satisfy
        the bound constraints.
    gq : array_like, shape (n,)
        Gradient of the quadratic function at `xopt`.
    hessp : callable
        Function providing the product of the Hessian matrix of the quadratic
        function with any vector.

            ``hessp(x, *args) -> array_like, shape (n,)``

        where ``x`` is an array with shape (n,) and `args` is a tuple of
        parameters to forward to the objective function.
    xl : array_like, shape (n,)
        Lower-bound constraints on the decision variables.
    xu : array_like, shape (n,)
        Upper-bound constraints on the decision variables.
    delta : float
        Upper bound on the length of the step from `xopt`.
    *args : tuple, optional
        Parameters to forward to the Hessian product function.

    Returns
    -------
    xnew : numpy.ndarray, shape (n,)
        Estimated solution point ``xopt + d``. The components at which a bound
        is active are set exactly to the value of the bound.
    gnew : numpy.ndarray, shape (n,)
        Gradient of the quadratic function at ``xopt + d``.
    crvmin : float
        Least curvature of the quadratic function along the conjugate
        directions that were not restricted by the constraints. It is zero if
        the step reached the trust-region boundary, and negative if no such
        curvature has been computed.

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
        The vector `xopt` is not feasible (only in debug mode).

    See Also
    --------
    bvlag : Bounded variable absolute Lagrange polynomial maximization
    bvcs : Bounded variable Cauchy step

    Notes
    -----
    The method is adapted from the TRSBOX algorithm [1]_.

    References
    ----------
    .. [1] M. J. D. Powell. The BOBYQA algorithm for bound constrained
       optimization without derivatives. Tech. rep. DAMTP 2009/NA06. Cambridge,
       UK: Department of Applied Mathematics and Theoretical Physics, University
       of Cambridge, 2009.
    """
    xopt = np.atleast_1d(xopt).astype(float)
    gq = np.atleast_1d(gq).astype(float)
    xl = np.atleast_1d(xl).astype(float)
    xu = np.atleast_1d(xu).astype(float)
    n = gq.size

    # Ensure the feasibility of the initial guess.
    if kwargs.get('debug', False):
        bdtol = get_bdtol(xl, xu, **kwargs)
        assert_(np.max(xl - xopt) < bdtol)
        assert_(np.min(xu - xopt) > -bdtol)
        assert_(np.isfinite(delta))
        assert_(delta > 0.0)

    # The entries of xbdi are -1 (respectively 1) for the variables fixed at
    # their lower (respectively upper) bounds, and 0 for the free variables.
    # Initially, a variable is fixed if it is on a bound and if the steepest
    # descent direction points outside the feasible set.
    xbdi = np.zeros(n, dtype=int)
    ixl = (xopt <= xl) & (gq >= 0.0)
    ixu = np.logical_not(xopt <= xl) & (xopt >= xu) & (gq <= 0.0)
    xbdi[ixl] = -1
    xbdi[ixu] = 1
    nact = np.count_nonzero(xbdi)

    step = np.zeros(n)
    sd = np.zeros(n)
    gnew = np.copy(gq)
    delsq = delta ** 2.0
    qred = 0.0
    crvmin = -1.0
    iterc = 0
    itermax = 0
    gredsq = 0.0
    ggsav = 0.0

    # Start the truncated conjugate gradient procedure. The variable beta is
    # zero whenever the conjugate gradient iterations are (re)started.
    beta = 0.0
    boundary = False
    while True:
        ifree = xbdi == 0
        sd[np.logical_not(ifree)] = 0.0
        if beta == 0.0:
            sd[ifree] = -gnew[ifree]
        else:
            sd[ifree] = beta * sd[ifree] - gnew[ifree]
        stepsq = np.inner(sd, sd)
        if stepsq == 0.0:
            break
        if beta == 0.0:
            gredsq = stepsq
            itermax = iterc + n - nact
        if gredsq * delsq <= 1e-4 * qred ** 2.0:
            break

        # Compute the step length along the search direction, subject to the
        # trust-region constraint, and reduce it if a bound is hit first.
        hsd = np.asarray(hessp(sd, *args), dtype=float)
        resid = delsq - np.inner(step[ifree], step[ifree])
        ds = np.inner(sd[ifree], step[ifree])
        shs = np.inner(sd[ifree], hsd[ifree])
        if resid <= 0.0:
            boundary = True
            break
        temp = np.sqrt(stepsq * resid + ds ** 2.0)
        if ds < 0.0:
            blen = (temp - ds) / stepsq
        else:
            blen = resid / (temp + ds)
        stplen = blen
        if shs > 0.0:
            stplen = min(blen, gredsq / shs)
        iact = -1
        xsum = xopt + step
        ipos = sd > 0.0
        ineg = sd < 0.0
        if np.any(ipos | ineg):
            tbd = np.full(n, np.inf)
            tbd[ipos] = (xu[ipos] - xsum[ipos]) / sd[ipos]
            tbd[ineg] = (xl[ineg] - xsum[ineg]) / sd[ineg]
            i = np.argmin(tbd)
            if tbd[i] < stplen:
                stplen = tbd[i]
                iact = i

        # Update the step, the gradient, and the reduction in the quadratic
        # function so far.
        sdec = 0.0
        if stplen > 0.0:
            iterc += 1
            temp = shs / stepsq
            if iact == -1 and temp > 0.0:
                crvmin = temp if crvmin == -1.0 else min(crvmin, temp)
            ggsav = gredsq
            gnew += stplen * hsd
            step += stplen * sd
            gredsq = np.inner(gnew[ifree], gnew[ifree])
            sdec = max(stplen * (ggsav - 0.5 * stplen * shs), 0.0)
            qred += sdec

        # Restart the conjugate gradient iterations if a new bound is active.
        if iact >= 0:
            nact += 1
            xbdi[iact] = 1 if sd[iact] >= 0.0 else -1
            delsq -= step[iact] ** 2.0
            if delsq <= 0.0:
                boundary = True
                break
            beta = 0.0
            continue

        # If the trust-region boundary is not reached, continue the conjugate
        # gradient iterations unless the reduction is small.
        if stplen < blen:
            if iterc == itermax or sdec <= 1e-2 * qred:
                break
            beta = gredsq / ggsav
            continue
        boundary = True
        break

    if boundary:
        crvmin = 0.0
        while nact < n - 1:
            # Prepare the search in the two-dimensional subspaces. The vector
            # hred stores the product of the Hessian matrix with the reduced
            # step, being the step restricted to the free variables.
            ifree = xbdi == 0
            dredsq = np.inner(step[ifree], step[ifree])
            dredg = np.inner(step[ifree], gnew[ifree])
            gredsq = np.inner(gnew[ifree], gnew[ifree])
            sd = np.where(ifree, step, 0.0)
            hred = np.asarray(hessp(sd, *args), dtype=float)
            restart = False
            while True:
                iterc += 1
                temp = gredsq * dredsq - dredg ** 2.0
                if temp <= 1e-4 * qred ** 2.0:
                    break
                temp = np.sqrt(temp)
                sd = np.zeros(n)
                sd[ifree] = (dredg * step[ifree] - dredsq * gnew[ifree]) / temp
                sredg = -temp

                # Compute the largest angle of rotation allowed by the bounds.
                # If a free variable already lies on a bound, it is fixed and
                # the procedure restarts.
                angbd = 1.0
                iact = -1
                xsav = 0
                for i in np.flatnonzero(ifree):
                    tempa = xopt[i] + step[i] - xl[i]
                    tempb = xu[i] - xopt[i] - step[i]
                    if tempa <= 0.0:
                        nact += 1
                        xbdi[i] = -1
                        restart = True
                        break
                    elif tempb <= 0.0:
                        nact += 1
                        xbdi[i] = 1
                        restart = True
                        break
                    ssq = step[i] ** 2.0 + sd[i] ** 2.0
                    temp = ssq - (xopt[i] - xl[i]) ** 2.0
                    if temp > 0.0:
                        temp = np.sqrt(temp) - sd[i]
                        if angbd * temp > tempa:
                            angbd = tempa / temp
                            iact = i
                            xsav = -1
                    temp = ssq - (xu[i] - xopt[i]) ** 2.0
                    if temp > 0.0:
                        temp = np.sqrt(temp) + sd[i]
                        if angbd * temp > tempb:
                            angbd = tempb / temp
                            iact = i
                            xsav = 1
                if restart:
                    break

                # Search for the angle of rotation that maximizes the reduction
                # of the quadratic function on a grid, and refine it with a
                # quadratic interpolation.
                hsd = np.asarray(hessp(sd, *args), dtype=float)
                shs = np.inner(sd[ifree], hsd[ifree])
                dhs = np.inner(step[ifree], hsd[ifree])
                dhd = np.inner(step[ifree], hred[ifree])
                redmax = 0.0
                redsav = 0.0
                rdprev = 0.0
                rdnext = 0.0
                isav = 0
                iu = int(17.0 * angbd + 3.1)
                for i in range(1, iu + 1):
                    angt = angbd * i / iu
                    sth = 2.0 * angt / (1.0 + angt ** 2.0)
                    temp = shs + angt * (angt * dhd - 2.0 * dhs)
                    rednew = sth * (angt * dredg - sredg - 0.5 * sth * temp)
                    if rednew > redmax:
                        redmax = rednew
                        isav = i
                        rdprev = redsav
                    elif i == isav + 1:
                        rdnext = rednew
                    redsav = rednew
                if isav == 0:
                    break
                angt = angbd * isav / iu
                if isav < iu:
                    temp = (rdnext - rdprev) / (2.0 * redmax - rdprev - rdnext)
                    angt = angbd * (isav + 0.5 * temp) / iu
                cth = (1.0 - angt ** 2.0) / (1.0 + angt ** 2.0)
                sth = 2.0 * angt / (1.0 + angt ** 2.0)
                temp = shs + angt * (angt * dhd - 2.0 * dhs)
                sdec = sth * (angt * dredg - sredg - 0.5 * sth * temp)
                if sdec <= 0.0:
                    break

                # Rotate the step and update the gradient accordingly.
                gnew += (cth - 1.0) * hred + sth * hsd
                step[ifree] = cth * step[ifree] + sth * sd[ifree]
                dredg = np.inner(step[ifree], gnew[ifree])
                gredsq = np.inner(gnew[ifree], gnew[ifree])
                hred = cth * hred + sth * hsd
                qred += sdec
                if iact >= 0 and isav == iu:
                    nact += 1
                    xbdi[iact] = xsav
                    restart = True
                    break
                if sdec <= 1e-2 * qred:
                    break
            if not restart:
                break

    # Build the new point, setting exactly the active bounds.
    xnew = np.maximum(np.minimum(xopt + step, xu), xl)
    xnew[xbdi == -1] = xl[xbdi == -1]
    xnew[xbdi == 1] = xu[xbdi == 1]
    return xnew, gnew, crvmin
