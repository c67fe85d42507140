import logging
from enum import Enum, auto

import numpy as np

from .linalg import bvcs, bvlag, bvtcg
from .models import Models
from .settings import ETA1, ETA2, PRINT_OPTIONS, RECENTRE_RATIO, RHO_RATIO_LARGE, RHO_RATIO_SMALL, SHORT_STEP_RATIO
from .utils import TrustRegionStepError

_log = logging.getLogger(__name__)


class Phase(Enum):
    """
    Phases of the trust-region method.
    """
    TRUST_REGION_STEP = auto()
    RECENTRE_MODEL = auto()
    ALTERNATIVE_STEP = auto()
    CHOOSE_REPLACEMENT = auto()
    EVALUATE_CANDIDATE = auto()
    SELECT_FARTHEST_POINT = auto()
    SHRINK_RHO = auto()
    TERMINATE = auto()


class StepKind(Enum):
    """
    Kinds of the current step.
    """
    SHORT = auto()
    GEOMETRY = auto()
    TRUST_REGION = auto()


def _lagrange_curv(step, xpt, hcol):
    """
    Curvature of a Lagrange polynomial along a given step.
    """
    return np.inner(hcol, (xpt @ step) ** 2.0)


class TrustRegion:
    """
    Trust-region method for bound-constrained derivative-free optimization.

    The method maintains a quadratic model of the objective function, which
    interpolates it on a set of points, and alternates between trust-region
    steps, which aim at reducing the objective function, and geometry steps,
    which aim at improving the interpolation set. The lower bound `rho` on the
    trust-region radius is decreased from the initial radius to the final one.
    """

    def __init__(self, pb, verbose=False, debug=False):
        """
        Build the initial model and the initial state of the method.

        Parameters
        ----------
        pb : Problem
            Problem to be solved.
        verbose : bool, optional
            Whether to print information on the progress of the method.
        debug : bool, optional
            Whether to make debugging tests during the execution.

        Raises
        ------
        `bobyqa.utils.MaxEvalError`
            If the maximum number of function evaluations is reached before the
            initial model is built.
        `bobyqa.utils.CallbackSuccess`
            If the callback function requested to stop.
        """
        self._pb = pb
        self._verbose = verbose
        self._debug = debug
        self._models = Models(pb, debug)

        self._rho = pb.radius_init
        self._delta = self._rho
        self._kind = StepKind.GEOMETRY
        self._knew = -1
        self._itest = 0
        self._nfsav = pb.n_eval
        self._diffs = np.zeros(3)
        self._ratio = 0.0
        self._dnorm = 0.0
        self._dsq = 0.0
        self._crvmin = -1.0
        self._distsq = 0.0
        self._adelt = 0.0
        self._alpha = 0.0
        self._cauchy = 0.0
        self._beta = 0.0
        self._denom = 0.0
        self._xnew = np.copy(self._models.x_opt)
        self._xalt = np.copy(self._models.x_opt)
        self._gnew = np.copy(self._models.gq)
        self._step = np.zeros(pb.n)
        self._vlag = np.zeros(pb.npt + pb.n)
        self._xpt_step = np.zeros(pb.npt)
        self._fsave = self._models.fval[0]
        self._x_last = self._models.build_x(self._models.xpt[0, :])
        self._n_iter = 0

    @property
    def models(self):
        """
        Quadratic model of the objective function.

        Returns
        -------
        Models
            Quadratic model of the objective function.
        """
        return self._models

    @property
    def rho(self):
        """
        Lower bound on the trust-region radius.

        Returns
        -------
        float
            Lower bound on the trust-region radius.
        """
        return self._rho

    @property
    def delta(self):
        """
        Trust-region radius.

        Returns
        -------
        float
            Trust-region radius.
        """
        return self._delta

    @property
    def n_iter(self):
        """
        Number of trust-region subproblems solved.

        Returns
        -------
        int
            Number of trust-region subproblems solved.
        """
        return self._n_iter

    def run(self):
        """
        Run the trust-region method until the final value of `rho` is reached.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Best point found, within the bounds.
        float
            Objective function value at this point, to be minimized.

        Raises
        ------
        `bobyqa.utils.MaxEvalError`
            If the maximum number of function evaluations is reached.
        `bobyqa.utils.CallbackSuccess`
            If the callback function requested to stop.
        `bobyqa.utils.TrustRegionStepError`
            If a trust-region step does not reduce the model.
        RuntimeError
            If the method reaches an undefined phase.
        """
        handlers = {
            Phase.TRUST_REGION_STEP: self._trust_region_step,
            Phase.RECENTRE_MODEL: self._recentre_model,
            Phase.ALTERNATIVE_STEP: self._alternative_step,
            Phase.CHOOSE_REPLACEMENT: self._choose_replacement,
            Phase.EVALUATE_CANDIDATE: self._evaluate_candidate,
            Phase.SELECT_FARTHEST_POINT: self._select_farthest_point,
            Phase.SHRINK_RHO: self._shrink_rho,
        }
        _log.debug("Start the main loop")
        phase = Phase.TRUST_REGION_STEP
        while phase is not Phase.TERMINATE:
            try:
                handler = handlers[phase]
            except KeyError as exc:
                raise RuntimeError(f"Undefined phase: {phase}") from exc
            phase = handler()
            _log.debug(f"Next phase: {phase}")
        return self.best_eval()

    def best_eval(self):
        """
        Best point evaluated by the method.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Best point found, within the bounds.
        float
            Objective function value at this point, to be minimized.
        """
        if self._models.f_opt <= self._fsave:
            return self._models.build_x(self._models.x_opt), self._models.f_opt
        return np.copy(self._x_last), self._fsave

    def get_geometry_step(self, knew, adelt):
        """
        Estimate a point that improves the geometry of the interpolation set
        when replacing the `knew`-th interpolation point.

        Parameters
        ----------
        knew : int
            Index of the interpolation point to be replaced.
        adelt : float
            Upper bound on the length of the step.

        Returns
        -------
        xnew : numpy.ndarray, shape (n,)
            Point obtained by a line search along the lines through ``x_opt``
            and the other interpolation points.
        xalt : numpy.ndarray, shape (n,)
            Point obtained by a constrained Cauchy step.
        alpha : float
            Parameter ``alpha`` of the updating formula for the `knew`-th point.
        cauchy : float
            Square of the `knew`-th Lagrange polynomial at `xalt`.
        """
        models = self._models
        glag, hcol, alpha = models.lagrange_gradient(knew)
        xnew = bvlag(models.xpt, models.kopt, knew, glag, models.sl, models.su, adelt, alpha, debug=self._debug)
        xalt, cauchy = bvcs(models.xpt, models.kopt, glag, _lagrange_curv, models.sl, models.su, adelt, models.xpt, hcol, debug=self._debug)
        return xnew, xalt, alpha, cauchy

    def _predicted_change(self, step):
        """
        Evaluate the change of the model along a step from ``x_opt``, together
        with the magnitude of the rounding errors in this evaluation.

        Parameters
        ----------
        step : numpy.ndarray, shape (n,)
            Step from ``x_opt``.

        Returns
        -------
        vquad : float
            Change of the model along `step`.
        tol : float
            Bound on the rounding errors in `vquad`.
        """
        models = self._models
        vquad = np.inner(step, models.gq) + 0.5 * models.curv(step)
        abs_step = np.abs(step)
        scale = np.inner(abs_step, np.abs(models.gq))
        scale += 0.5 * np.inner(abs_step, np.abs(models.hq) @ abs_step)
        scale += 0.5 * np.inner(np.abs(models.pq), (np.abs(models.xpt) @ abs_step) ** 2.0)
        tol = 10.0 * np.finfo(float).eps * models.npt * scale
        return vquad, tol

    def _trust_region_step(self):
        """
        Compute a trust-region step, and decide what to do if it is short.
        """
        models = self._models
        self._n_iter += 1
        self._xnew, self._gnew, self._crvmin = bvtcg(models.x_opt, models.gq, models.hess_prod, models.sl, models.su, self._delta, debug=self._debug)
        self._step = self._xnew - models.x_opt
        self._dsq = np.inner(self._step, self._step)
        self._dnorm = min(self._delta, np.sqrt(self._dsq))
        _log.debug(f"Trust-region step of norm {self._dnorm} (delta = {self._delta})")
        if self._dnorm >= SHORT_STEP_RATIO * self._rho:
            vquad, tol = self._predicted_change(self._step)
            if vquad > tol:
                raise TrustRegionStepError('A trust-region step failed to reduce the quadratic model.')
            if vquad < -tol:
                self._kind = StepKind.TRUST_REGION
                return Phase.RECENTRE_MODEL

            # The model is flat along the step up to rounding errors, which
            # occurs when the projected gradient vanishes.
            _log.debug(f"No reduction of the model along the trust-region step (vquad = {vquad})")

        # The step is short. Unless the model seems accurate, improve the
        # geometry of the interpolation set before reducing rho.
        self._kind = StepKind.SHORT
        self._distsq = (10.0 * self._rho) ** 2.0
        if self._pb.n_eval <= self._nfsav + 2:
            return Phase.SELECT_FARTHEST_POINT
        errbig = np.max(self._diffs)
        frhosq = 0.125 * self._rho ** 2.0
        if self._crvmin > 0.0 and errbig > frhosq * self._crvmin:
            return Phase.SELECT_FARTHEST_POINT
        bdtol = errbig / self._rho
        bdtest = np.full(models.n, bdtol)
        ixl = self._xnew == models.sl
        ixu = self._xnew == models.su
        bdtest[ixl] = self._gnew[ixl]
        bdtest[ixu] = -self._gnew[ixu]
        itest = bdtest < bdtol
        if np.any(itest):
            curv = np.diag(models.hq) + models.pq @ (models.xpt ** 2.0)
            if np.any(bdtest[itest] + 0.5 * curv[itest] * self._rho < bdtol):
                return Phase.SELECT_FARTHEST_POINT
        return Phase.SHRINK_RHO

    def _recentre_model(self):
        """
        Shift the base point if the center of the trust region is far from it.
        """
        x_opt = self._models.x_opt
        if self._dsq <= RECENTRE_RATIO * np.inner(x_opt, x_opt):
            self._models.shift_x_base(self._xnew)
        if self._kind is StepKind.GEOMETRY:
            return Phase.ALTERNATIVE_STEP
        return Phase.CHOOSE_REPLACEMENT

    def _alternative_step(self):
        """
        Compute a geometry step for the interpolation point to be replaced.
        """
        self._xnew, self._xalt, self._alpha, self._cauchy = self.get_geometry_step(self._knew, self._adelt)
        self._step = self._xnew - self._models.x_opt
        return Phase.CHOOSE_REPLACEMENT

    def _choose_replacement(self):
        """
        Evaluate the denominator of the updating formula, and choose the
        interpolation point to be replaced for trust-region steps.
        """
        models = self._models
        self._vlag, self._beta, self._xpt_step = models.lagrange_values(self._step)
        if self._kind is StepKind.GEOMETRY:
            self._denom = self._vlag[self._knew] ** 2.0 + self._alpha * self._beta
            if self._denom < self._cauchy and self._cauchy > 0.0:
                self._xnew = np.copy(self._xalt)
                self._step = self._xnew - models.x_opt
                self._cauchy = 0.0
                return Phase.CHOOSE_REPLACEMENT
            if not np.isfinite(self._denom) or self._denom <= 0.0:
                _log.debug(f"Nonpositive denominator {self._denom} for a geometry step")
                return Phase.SHRINK_RHO
            return Phase.EVALUATE_CANDIDATE

        # Choose the interpolation point to be replaced by the trust-region
        # step, the distances to the center of the trust region being taken
        # into account.
        self._knew, self._denom, _, _ = self._replacement_index(models.x_opt, exclude=models.kopt)
        if self._knew < 0:
            _log.debug("No positive denominator for the trust-region step")
            self._kind = StepKind.SHORT
            self._distsq = (10.0 * self._rho) ** 2.0
            return Phase.SELECT_FARTHEST_POINT
        _log.debug(f"Index of the point to be replaced: {self._knew}")
        return Phase.EVALUATE_CANDIDATE

    def _replacement_index(self, x_center, exclude=None):
        """
        Choose the interpolation point whose replacement maximizes the scaled
        denominator of the updating formula.

        Parameters
        ----------
        x_center : numpy.ndarray, shape (n,)
            Point from which the distances to the interpolation points are
            measured.
        exclude : int, optional
            Index of an interpolation point that must not be chosen.

        Returns
        -------
        knew : int
            Index of the chosen point, or -1 if no denominator is positive.
        denom : float
            Denominator of the updating formula for the chosen point.
        scaden : float
            Scaled denominator for the chosen point.
        biglsq : float
            Largest scaled square of the Lagrange polynomials.
        """
        models = self._models
        npt = models.npt
        delsq = self._delta ** 2.0
        den = self._beta * models.hdiag + self._vlag[:npt] ** 2.0
        distsq = np.sum((models.xpt - x_center[np.newaxis, :]) ** 2.0, axis=1)
        weight = np.maximum(1.0, (distsq / delsq) ** 2.0)
        scaled = weight * den
        biglsq_all = weight * self._vlag[:npt] ** 2.0
        if exclude is not None:
            scaled[exclude] = -np.inf
            biglsq_all[exclude] = 0.0
        biglsq = np.max(biglsq_all, initial=0.0)
        knew = int(np.argmax(scaled))
        if not scaled[knew] > 0.0 or not np.isfinite(scaled[knew]):
            return -1, 0.0, 0.0, biglsq
        return knew, den[knew], scaled[knew], biglsq

    def _evaluate_candidate(self):
        """
        Evaluate the objective function at the new point, and update the radii,
        the model, and the interpolation set accordingly.
        """
        models = self._models
        f = self._pb(models.build_x(self._xnew))
        if self._kind is StepKind.SHORT:
            self._fsave = f
            self._x_last = models.build_x(self._xnew)
            return Phase.TERMINATE

        # Evaluate the difference between the objective function and the model
        # at the new point.
        fopt = models.f_opt
        vquad = np.inner(self._step, models.gq)
        vquad += 0.5 * np.inner(self._step, models.hq @ self._step)
        vquad += 0.5 * np.inner(models.pq, self._xpt_step ** 2.0)
        diff = f - fopt - vquad
        self._diffs = np.r_[abs(diff), self._diffs[:2]]
        if self._dnorm > self._rho:
            self._nfsav = self._pb.n_eval

        if self._kind is StepKind.TRUST_REGION:
            # Update the trust-region radius.
            if vquad >= 0.0:
                raise TrustRegionStepError('A trust-region step failed to reduce the quadratic model.')
            self._ratio = (f - fopt) / vquad
            if self._ratio <= ETA1:
                self._delta = min(0.5 * self._delta, self._dnorm)
            elif self._ratio <= ETA2:
                self._delta = max(0.5 * self._delta, self._dnorm)
            else:
                self._delta = max(0.5 * self._delta, 2.0 * self._dnorm)
            if self._delta <= 1.5 * self._rho:
                self._delta = self._rho
            _log.debug(f"Ratio of reduction: {self._ratio}; new trust-region radius: {self._delta}")

            # Recalculate the index of the point to be replaced if the new point
            # is better than the current center of the trust region.
            if f < fopt:
                knew, denom, scaden, biglsq = self._replacement_index(self._xnew)
                if scaden > 0.5 * biglsq:
                    self._knew = knew
                    self._denom = denom

        # Update the factorization and the model, and include the new point in
        # the interpolation set.
        models.update_factorization(self._knew, self._beta, self._denom, self._vlag)
        models.update(self._knew, self._xnew, f, diff)
        if f < fopt:
            models.set_kopt(self._knew, self._step)
        if self._debug:
            models.check_interpolation_conditions()

        # Replace the model by the least Frobenius norm interpolant if the
        # latter has had a much smaller projected gradient several times.
        if self._kind is StepKind.TRUST_REGION:
            gi, pi = models.least_frobenius()
            x_opt = models.x_opt
            ixl = x_opt == models.sl
            ixu = np.logical_not(ixl) & (x_opt == models.su)
            ifree = np.logical_not(ixl | ixu)
            gqsq = np.sum(np.minimum(0.0, models.gq[ixl]) ** 2.0)
            gqsq += np.sum(np.maximum(0.0, models.gq[ixu]) ** 2.0)
            gqsq += np.sum(models.gq[ifree] ** 2.0)
            gisq = np.sum(np.minimum(0.0, gi[ixl]) ** 2.0)
            gisq += np.sum(np.maximum(0.0, gi[ixu]) ** 2.0)
            gisq += np.sum(gi[ifree] ** 2.0)
            self._itest += 1
            if gqsq < 10.0 * gisq:
                self._itest = 0
            if self._itest >= 3:
                _log.debug("Replace the model by the least Frobenius norm interpolant")
                models.reset(gi, pi)
                self._itest = 0

        # Continue with another trust-region step if the new point provided
        # a sufficient reduction, and try to improve the geometry otherwise.
        if self._kind is StepKind.GEOMETRY or f <= fopt + ETA1 * vquad:
            return Phase.TRUST_REGION_STEP
        self._distsq = max((2.0 * self._delta) ** 2.0, (10.0 * self._rho) ** 2.0)
        return Phase.SELECT_FARTHEST_POINT

    def _select_farthest_point(self):
        """
        Select the interpolation point farthest from the center of the trust
        region, and prepare a geometry step to replace it if it is too far.
        """
        models = self._models
        distsq = np.sum((models.xpt - models.x_opt[np.newaxis, :]) ** 2.0, axis=1)
        knew = int(np.argmax(distsq))
        if distsq[knew] > self._distsq:
            self._knew = knew
            self._distsq = distsq[knew]
            dist = np.sqrt(self._distsq)
            if self._kind is StepKind.SHORT:
                self._delta = min(0.1 * self._delta, 0.5 * dist)
                if self._delta <= 1.5 * self._rho:
                    self._delta = self._rho
            self._kind = StepKind.GEOMETRY
            self._adelt = max(min(0.1 * dist, self._delta), self._rho)
            self._dsq = self._adelt ** 2.0
            _log.debug(f"Index of the point to be replaced by a geometry step: {knew}")
            return Phase.RECENTRE_MODEL
        if self._kind is StepKind.SHORT:
            return Phase.SHRINK_RHO
        if self._ratio > 0.0 or max(self._delta, self._dnorm) > self._rho:
            return Phase.TRUST_REGION_STEP
        return Phase.SHRINK_RHO

    def _shrink_rho(self):
        """
        Reduce the lower bound on the trust-region radius, or terminate.
        """
        rho_end = self._pb.radius_final
        if self._rho > rho_end:
            self._delta = 0.5 * self._rho
            ratio = self._rho / rho_end
            if ratio <= RHO_RATIO_SMALL:
                self._rho = rho_end
            elif ratio <= RHO_RATIO_LARGE:
                self._rho = np.sqrt(ratio) * rho_end
            else:
                self._rho *= 0.1
            self._delta = max(self._delta, self._rho)
            self._kind = StepKind.GEOMETRY
            self._nfsav = self._pb.n_eval
            _log.info(f"New lower bound on the trust-region radius: {self._rho}")
            if self._verbose:
                x_best, f_best = self.best_eval()
                print()
                print(f'New trust-region radius: {self._rho}.')
                print(f'Number of function evaluations: {self._pb.n_eval}.')
                print(f'Least value of {self._pb.fun_name}: {self._pb.signed(f_best)}.')
                with np.printoptions(**PRINT_OPTIONS):
                    print(f'Corresponding point: {x_best}.')
            return Phase.TRUST_REGION_STEP
        if self._kind is StepKind.SHORT:
            return Phase.EVALUATE_CANDIDATE
        return Phase.TERMINATE
