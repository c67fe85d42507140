import logging
import warnings

import numpy as np

from .linalg.utils import rot, rotg
from .settings import ROTATION_TOL
from .utils import get_arrays_tol

_log = logging.getLogger(__name__)


class Models:
    """
    Quadratic model of the objective function.

    This class stores a base point around which the model is expanded, the
    interpolation points, the function values at these points, and the
    matrices of the factorization of the inverse of the interpolation system.
    The coordinates of the interpolation points, the bounds, and the center of
    the trust region are relative to the base point.

    The Hessian matrix of the model is the sum of the explicit part `hq` and
    the implicit part ``sum(pq[k] * outer(xpt[k], xpt[k]))``.
    """

    def __init__(self, pb, debug=False):
        """
        Build the initial interpolation set and the initial model.

        The initial point is first moved away from (or onto) the bounds that
        are too close to it. The interpolation points are then placed along the
        coordinate directions, and the remaining ones (if any) are placed along
        pairs of coordinate directions. The objective function is evaluated at
        each of them.

        Parameters
        ----------
        pb : Problem
            Problem to be solved.
        debug : bool, optional
            Whether to make debugging tests during the execution.

        Raises
        ------
        `bobyqa.utils.MaxEvalError`
            If the maximum number of function evaluations is reached before the
            interpolation set is complete.
        `bobyqa.utils.CallbackSuccess`
            If the callback function requested to stop.
        """
        n = pb.n
        npt = pb.npt
        rhobeg = pb.radius_init
        rhosq = rhobeg ** 2.0
        self._debug = debug
        self._xl = np.copy(pb.bounds.xl)
        self._xu = np.copy(pb.bounds.xu)

        # Set the initial point around which the model is expanded. Each
        # component that is closer than rhobeg to a bound is moved either onto
        # this bound or at distance rhobeg from it.
        self._x_base = np.copy(pb.x0)
        self._sl = self._xl - self._x_base
        self._su = self._xu - self._x_base
        gap = self._xu - self._xl
        near_xl = self._sl >= -rhobeg
        on_xl = near_xl & (self._sl >= 0.0)
        close_xl = near_xl & np.logical_not(on_xl)
        near_xu = np.logical_not(near_xl) & (self._su <= rhobeg)
        on_xu = near_xu & (self._su <= 0.0)
        close_xu = near_xu & np.logical_not(on_xu)
        self._x_base[on_xl] = self._xl[on_xl]
        self._sl[on_xl] = 0.0
        self._su[on_xl] = gap[on_xl]
        self._x_base[close_xl] = self._xl[close_xl] + rhobeg
        self._sl[close_xl] = -rhobeg
        self._su[close_xl] = np.maximum(self._xu[close_xl] - self._x_base[close_xl], rhobeg)
        self._x_base[on_xu] = self._xu[on_xu]
        self._sl[on_xu] = -gap[on_xu]
        self._su[on_xu] = 0.0
        self._x_base[close_xu] = self._xu[close_xu] - rhobeg
        self._sl[close_xu] = np.minimum(self._xl[close_xu] - self._x_base[close_xu], -rhobeg)
        self._su[close_xu] = rhobeg

        self._xpt = np.zeros((npt, n))
        self._fval = np.zeros(npt)
        self._gq = np.zeros(n)
        self._hq = np.zeros((n, n))
        self._pq = np.zeros(npt)
        self._bmat = np.zeros((npt + n, n))
        self._zmat = np.zeros((npt, npt - n - 1))
        self._kopt = 0

        # Build the interpolation set and evaluate the objective function.
        fbeg = 0.0
        stepa = 0.0
        stepb = 0.0
        ipt = 0
        jpt = 0
        for k in range(npt):
            nfx = k - n
            if k == 0:
                pass
            elif k <= n:
                stepa = -rhobeg if self._su[k - 1] == 0.0 else rhobeg
                self._xpt[k, k - 1] = stepa
            elif k <= 2 * n:
                stepa = self._xpt[nfx, nfx - 1]
                stepb = -rhobeg
                if self._sl[nfx - 1] == 0.0:
                    stepb = min(2.0 * rhobeg, self._su[nfx - 1])
                if self._su[nfx - 1] == 0.0:
                    stepb = max(-2.0 * rhobeg, self._sl[nfx - 1])
                self._xpt[k, nfx - 1] = stepb
            else:
                spread = (k - n - 1) // n
                jpt = k - spread * n - n
                ipt = jpt + spread
                if ipt > n:
                    ipt, jpt = jpt, ipt - n
                self._xpt[k, ipt - 1] = self._xpt[ipt, ipt - 1]
                self._xpt[k, jpt - 1] = self._xpt[jpt, jpt - 1]

            f = pb(self.build_x(self._xpt[k, :]))
            self._fval[k] = f
            if k == 0:
                fbeg = f
            elif f < self._fval[self._kopt]:
                self._kopt = k

            # Set the nonzero initial elements of the gradient and the Hessian
            # matrix of the model, and of the factorization matrices.
            if k == 0:
                continue
            elif k <= n:
                self._gq[k - 1] = (f - fbeg) / stepa
                if npt < k + n + 1:
                    self._bmat[0, k - 1] = -1.0 / stepa
                    self._bmat[k, k - 1] = 1.0 / stepa
                    self._bmat[npt + k - 1, k - 1] = -0.5 * rhosq
            elif k <= 2 * n:
                i = nfx - 1
                temp = (f - fbeg) / stepb
                diff = stepb - stepa
                self._hq[i, i] = 2.0 * (temp - self._gq[i]) / diff
                self._gq[i] = (self._gq[i] * stepb - temp * stepa) / diff
                if stepa * stepb < 0.0 and f < self._fval[k - n]:
                    self._fval[k] = self._fval[k - n]
                    self._fval[k - n] = f
                    if self._kopt == k:
                        self._kopt = k - n
                    self._xpt[k - n, i] = stepb
                    self._xpt[k, i] = stepa
                self._bmat[0, i] = -(stepa + stepb) / (stepa * stepb)
                self._bmat[k, i] = -0.5 / self._xpt[k - n, i]
                self._bmat[k - n, i] = -self._bmat[0, i] - self._bmat[k, i]
                self._zmat[0, i] = np.sqrt(2.0) / (stepa * stepb)
                self._zmat[k, i] = np.sqrt(0.5) / rhosq
                self._zmat[k - n, i] = -self._zmat[0, i] - self._zmat[k, i]
            else:
                recip = 1.0 / rhosq
                self._zmat[0, nfx - 1] = recip
                self._zmat[k, nfx - 1] = recip
                self._zmat[ipt, nfx - 1] = -recip
                self._zmat[jpt, nfx - 1] = -recip
                temp = self._xpt[k, ipt - 1] * self._xpt[k, jpt - 1]
                self._hq[ipt - 1, jpt - 1] = (fbeg - self._fval[ipt] - self._fval[jpt] + f) / temp
                self._hq[jpt - 1, ipt - 1] = self._hq[ipt - 1, jpt - 1]

        # The gradient of the model is stored at the center of the trust region.
        if self._kopt != 0:
            self._gq += self.hess_prod(self.x_opt)
        if self._debug:
            self.check_interpolation_conditions()

    @property
    def n(self):
        """
        Number of variables.

        Returns
        -------
        int
            Number of variables.
        """
        return self._xpt.shape[1]

    @property
    def npt(self):
        """
        Number of interpolation points.

        Returns
        -------
        int
            Number of interpolation points.
        """
        return self._xpt.shape[0]

    @property
    def x_base(self):
        """
        Base point around which the model is expanded.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Base point around which the model is expanded.
        """
        return self._x_base

    @property
    def xpt(self):
        """
        Interpolation points, relative to the base point.

        Returns
        -------
        numpy.ndarray, shape (npt, n)
            Interpolation points. Each row stores the coordinates of a point.
        """
        return self._xpt

    @property
    def fval(self):
        """
        Values of the objective function at the interpolation points.

        Returns
        -------
        numpy.ndarray, shape (npt,)
            Values of the objective function at the interpolation points.
        """
        return self._fval

    @property
    def sl(self):
        """
        Lower bounds, relative to the base point.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Lower bounds, relative to the base point.
        """
        return self._sl

    @property
    def su(self):
        """
        Upper bounds, relative to the base point.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Upper bounds, relative to the base point.
        """
        return self._su

    @property
    def gq(self):
        """
        Gradient of the model at the center of the trust region.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Gradient of the model at ``x_opt``.
        """
        return self._gq

    @property
    def hq(self):
        """
        Explicit part of the Hessian matrix of the model.

        Returns
        -------
        numpy.ndarray, shape (n, n)
            Explicit part of the Hessian matrix of the model.
        """
        return self._hq

    @property
    def pq(self):
        """
        Parameters of the implicit part of the Hessian matrix of the model.

        Returns
        -------
        numpy.ndarray, shape (npt,)
            Parameters of the implicit part of the Hessian matrix of the model.
        """
        return self._pq

    @property
    def bmat(self):
        """
        Last ``n`` columns of the inverse of the interpolation system.

        Returns
        -------
        numpy.ndarray, shape (npt + n, n)
            Last ``n`` columns of the inverse of the interpolation system.
        """
        return self._bmat

    @property
    def zmat(self):
        """
        Factor of the leading ``npt`` by ``npt`` submatrix of the inverse of the
        interpolation system.

        Returns
        -------
        numpy.ndarray, shape (npt, npt - n - 1)
            Matrix whose product with its transpose is the leading submatrix of
            the inverse of the interpolation system.
        """
        return self._zmat

    @property
    def kopt(self):
        """
        Index of the best interpolation point.

        Returns
        -------
        int
            Index of the interpolation point with the least function value.
        """
        return self._kopt

    @property
    def x_opt(self):
        """
        Best interpolation point, relative to the base point.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Center of the trust region.
        """
        return self._xpt[self._kopt, :]

    @property
    def f_opt(self):
        """
        Least function value at the interpolation points.

        Returns
        -------
        float
            Least function value at the interpolation points.
        """
        return self._fval[self._kopt]

    @property
    def hdiag(self):
        """
        Diagonal of the leading submatrix of the inverse of the interpolation
        system.

        Returns
        -------
        numpy.ndarray, shape (npt,)
            Diagonal elements of ``zmat @ zmat.T``.
        """
        return np.sum(self._zmat ** 2.0, axis=1)

    def build_x(self, x):
        """
        Build a point in the original space, within the bounds.

        Parameters
        ----------
        x : array_like, shape (n,)
            Point, relative to the base point.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Point in the original space. The components of `x` that reach the
            relative bounds are set exactly to the corresponding bounds.
        """
        x = np.asarray(x, dtype=float)
        x_orig = np.clip(self._x_base + x, self._xl, self._xu)
        ixl = x <= self._sl
        ixu = x >= self._su
        x_orig[ixl] = self._xl[ixl]
        x_orig[ixu] = self._xu[ixu]
        return x_orig

    def hess_prod(self, v):
        """
        Evaluate the product of the Hessian matrix of the model with a vector.

        Parameters
        ----------
        v : array_like, shape (n,)
            Vector to be multiplied by the Hessian matrix.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Product of the Hessian matrix of the model with `v`.
        """
        v = np.asarray(v, dtype=float)
        return self._hq @ v + self._xpt.T @ (self._pq * (self._xpt @ v))

    def curv(self, v):
        """
        Evaluate the curvature of the model along a vector.

        Parameters
        ----------
        v : array_like, shape (n,)
            Direction along which the curvature is evaluated.

        Returns
        -------
        float
            Curvature ``v.T @ H @ v`` of the model along `v`.
        """
        v = np.asarray(v, dtype=float)
        return np.inner(v, self.hess_prod(v))

    def fun(self, x):
        """
        Evaluate the model at a given point.

        Parameters
        ----------
        x : array_like, shape (n,)
            Point at which the model is evaluated, relative to the base point.

        Returns
        -------
        float
            Value of the model at `x`.
        """
        step = np.asarray(x, dtype=float) - self.x_opt
        return self.f_opt + np.inner(self._gq, step) + 0.5 * self.curv(step)

    def lagrange_values(self, step):
        """
        Evaluate the quantities needed by the updating formula for a step from
        the center of the trust region.

        Parameters
        ----------
        step : array_like, shape (n,)
            Step from ``x_opt``.

        Returns
        -------
        vlag : numpy.ndarray, shape (npt + n,)
            Values of the Lagrange polynomials at ``x_opt + step`` in the first
            ``npt`` components, followed by the product of the last ``n``
            columns of the inverse of the interpolation system with the vector
            related to the new point.
        beta : float
            Parameter ``beta`` of the updating formula.
        xpt_step : numpy.ndarray, shape (npt,)
            Products of the interpolation points with `step`.
        """
        step = np.asarray(step, dtype=float)
        npt = self.npt
        x_opt = self.x_opt
        xpt_step = self._xpt @ step
        xpt_xopt = self._xpt @ x_opt
        w = xpt_step * (0.5 * xpt_step + xpt_xopt)
        vlag = np.empty(npt + self.n)
        zw = self._zmat.T @ w
        vlag[:npt] = self._bmat[:npt, :] @ step + self._zmat @ zw
        bw = self._bmat[:npt, :].T @ w
        vlag[npt:] = bw + self._bmat[npt:, :] @ step
        bsum = np.inner(bw, step) + np.inner(vlag[npt:], step)
        dx = np.inner(step, x_opt)
        dsq = np.inner(step, step)
        xoptsq = np.inner(x_opt, x_opt)
        beta = dx ** 2.0 + dsq * (xoptsq + 2.0 * dx + 0.5 * dsq) - np.inner(zw, zw) - bsum
        vlag[self._kopt] += 1.0
        return vlag, beta, xpt_step

    def lagrange_gradient(self, knew):
        """
        Evaluate the gradient of a Lagrange polynomial at the center of the
        trust region.

        Parameters
        ----------
        knew : int
            Index of the Lagrange polynomial.

        Returns
        -------
        glag : numpy.ndarray, shape (n,)
            Gradient of the `knew`-th Lagrange polynomial at ``x_opt``.
        hcol : numpy.ndarray, shape (npt,)
            Parameters of the implicit Hessian matrix of the `knew`-th Lagrange
            polynomial.
        alpha : float
            Diagonal element of the leading submatrix of the inverse of the
            interpolation system for the `knew`-th point.
        """
        hcol = self._zmat @ self._zmat[knew, :]
        alpha = hcol[knew]
        glag = self._bmat[knew, :] + self._xpt.T @ (hcol * (self._xpt @ self.x_opt))
        return glag, hcol, alpha

    def update_factorization(self, knew, beta, denom, vlag):
        """
        Update the factorization of the inverse of the interpolation system when
        the `knew`-th interpolation point is replaced.

        Parameters
        ----------
        knew : int
            Index of the interpolation point to be replaced.
        beta : float
            Parameter ``beta`` of the updating formula.
        denom : float
            Denominator of the updating formula. It must be positive.
        vlag : numpy.ndarray, shape (npt + n,)
            Vector returned by `lagrange_values` for the new point. It is
            modified in place.
        """
        npt = self.npt
        zmat = self._zmat

        # Apply the rotations that put zeros in the knew-th row of zmat.
        ztest = ROTATION_TOL * np.max(np.abs(zmat), initial=0.0)
        for j in range(1, zmat.shape[1]):
            if abs(zmat[knew, j]) > ztest:
                _, cval, sval = rotg(zmat[knew, 0], zmat[knew, j])
                rot(zmat[:, 0], zmat[:, j], cval, sval)
            zmat[knew, j] = 0.0

        # Put the first npt components of the knew-th column of the leading
        # submatrix of the inverse of the interpolation system into w, and
        # calculate the parameters of the updating formula.
        w = np.empty(npt + self.n)
        w[:npt] = zmat[knew, 0] * zmat[:, 0]
        w[npt:] = self._bmat[knew, :]
        alpha = w[knew]
        tau = vlag[knew]
        vlag[knew] -= 1.0

        # Complete the updating of zmat.
        sqrtdn = np.sqrt(denom)
        zmat[:, 0] = (tau / sqrtdn) * zmat[:, 0] - (zmat[knew, 0] / sqrtdn) * vlag[:npt]

        # Finally, update the matrix bmat. Its last n rows remain symmetric.
        coef_vlag = (alpha * vlag[npt:] - tau * w[npt:]) / denom
        coef_w = (-beta * w[npt:] - tau * vlag[npt:]) / denom
        self._bmat += np.outer(vlag, coef_vlag) + np.outer(w, coef_w)

    def update(self, knew, xnew, fnew, diff):
        """
        Replace an interpolation point and update the model accordingly.

        The factorization must have been updated beforehand with
        `update_factorization`. The center of the trust region is not modified.
        If `knew` is the index of the center, the gradient of the model remains
        evaluated at the former center until `set_kopt` is called.

        Parameters
        ----------
        knew : int
            Index of the interpolation point to be replaced.
        xnew : numpy.ndarray, shape (n,)
            New interpolation point, relative to the base point.
        fnew : float
            Value of the objective function at `xnew`.
        diff : float
            Difference between `fnew` and the value of the model at `xnew`.
        """
        x_opt = np.copy(self.x_opt)

        # Update the Hessian matrix of the model. The knew-th implicit term is
        # moved into the explicit part before being replaced.
        self._hq += self._pq[knew] * np.outer(self._xpt[knew, :], self._xpt[knew, :])
        self._pq[knew] = 0.0
        hcol = self._zmat @ self._zmat[knew, :]
        self._pq += diff * hcol

        # Include the new interpolation point, and make the changes to the
        # gradient of the model at x_opt.
        self._fval[knew] = fnew
        self._xpt[knew, :] = xnew
        glag = self._bmat[knew, :] + self._xpt.T @ (hcol * (self._xpt @ x_opt))
        self._gq += diff * glag

    def set_kopt(self, knew, step):
        """
        Move the center of the trust region to another interpolation point.

        Parameters
        ----------
        knew : int
            Index of the new center of the trust region.
        step : numpy.ndarray, shape (n,)
            Difference between the new and the former centers.
        """
        self._kopt = knew
        self._gq += self.hess_prod(step)

    def shift_x_base(self, xnew):
        """
        Shift the base point to the center of the trust region.

        The interpolation points, the bounds, the model, and the factorization
        matrices are updated consistently.

        Parameters
        ----------
        xnew : numpy.ndarray, shape (n,)
            Point relative to the base point, shifted in place.
        """
        npt = self.npt
        x_opt = np.copy(self.x_opt)
        xoptsq = np.inner(x_opt, x_opt)
        fracsq = 0.25 * xoptsq
        sumpq = np.sum(self._pq)
        _log.debug(f"Shift the base point by {x_opt}")

        # Update the last n rows of bmat, which are symmetric.
        w = self._xpt @ x_opt - 0.5 * xoptsq
        temp = fracsq - 0.5 * w
        vl = w[:, np.newaxis] * self._xpt + temp[:, np.newaxis] * x_opt[np.newaxis, :]
        bvl = self._bmat[:npt, :].T @ vl
        self._bmat[npt:, :] += bvl + bvl.T

        # Then the revisions of bmat that depend on zmat are calculated.
        sumz = np.sum(self._zmat, axis=0)
        vz = w[:, np.newaxis] * self._zmat
        sumw = np.sum(vz, axis=0)
        wz = np.outer(x_opt, fracsq * sumz - 0.5 * sumw) + self._xpt.T @ vz
        self._bmat[:npt, :] += self._zmat @ wz.T
        self._bmat[npt:, :] += wz @ wz.T

        # The following instructions complete the shift, including the changes
        # to the second derivative parameters of the model.
        wq = self._xpt.T @ self._pq - 0.5 * sumpq * x_opt
        self._hq += np.outer(wq, x_opt) + np.outer(x_opt, wq)
        self._xpt -= x_opt[np.newaxis, :]
        self._x_base += x_opt
        self._sl -= x_opt
        self._su -= x_opt
        xnew -= x_opt
        if self._debug:
            self.check_interpolation_conditions()

    def least_frobenius(self):
        """
        Evaluate the model of least Frobenius norm of its Hessian matrix that
        interpolates the objective function.

        Returns
        -------
        gq : numpy.ndarray, shape (n,)
            Gradient of the alternative model at ``x_opt``.
        pq : numpy.ndarray, shape (npt,)
            Parameters of the implicit Hessian matrix of the alternative model,
            whose explicit Hessian matrix is zero.
        """
        fshift = self._fval - self.f_opt
        pq = self._zmat @ (self._zmat.T @ fshift)
        gq = self._bmat[:self.npt, :].T @ fshift + self._xpt.T @ (pq * (self._xpt @ self.x_opt))
        return gq, pq

    def reset(self, gq, pq):
        """
        Replace the model by a model whose explicit Hessian matrix is zero.

        Parameters
        ----------
        gq : numpy.ndarray, shape (n,)
            Gradient of the new model at ``x_opt``.
        pq : numpy.ndarray, shape (npt,)
            Parameters of the implicit Hessian matrix of the new model.
        """
        self._gq = np.copy(gq)
        self._pq = np.copy(pq)
        self._hq = np.zeros_like(self._hq)
        if self._debug:
            self.check_interpolation_conditions()

    def check_interpolation_conditions(self):
        """
        Check the interpolation conditions of the model.
        """
        error = 0.0
        for k in range(self.npt):
            error = max(error, abs(self.fun(self._xpt[k, :]) - self._fval[k]))
        tol = 10.0 * np.sqrt(np.finfo(float).eps) * max(self.n, self.npt)
        if error > tol * np.max(np.abs(self._fval), initial=1.0):
            warnings.warn('The interpolation conditions for the objective function are not satisfied.', RuntimeWarning)
        tol = get_arrays_tol(self._sl, self._su)
        if np.any(self._xpt < self._sl - tol) or np.any(self._xpt > self._su + tol):
            warnings.warn('The interpolation points do not satisfy the bound constraints.', RuntimeWarning)
