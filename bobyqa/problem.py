import logging
from inspect import signature

import numpy as np
from scipy.optimize import OptimizeResult

from .settings import GoalType, PRINT_OPTIONS
from .utils import CallbackSuccess, EvaluationCounter, InvalidConfigurationError, MaxEvalError, exact_1d_array

_log = logging.getLogger(__name__)


class ObjectiveFunction:
    """
    Real-valued objective function.

    The function values returned by an instance of this class are always to be
    minimized: if the goal is to maximize the objective function, the values
    are negated. The history, the best value and the values passed to the
    callback function are expressed in the original sign convention.
    """

    def __init__(self, fun, goal, max_eval, callback, verbose, store_history, debug, *args):
        """
        Initialize the objective function.

        Parameters
        ----------
        fun : callable
            Function to evaluate.

                ``fun(x, *args) -> float``

            where ``x`` is an array with shape (n,) and `args` is a tuple.
        goal : {GoalType, str}
            Whether `fun` is to be minimized or maximized.
        max_eval : int
            Maximum number of function evaluations.
        callback : {callable, None}
            Function called after each evaluation.
        verbose : bool
            Whether to print the function evaluations.
        store_history : bool
            Whether to store the function evaluations.
        debug : bool
            Whether to make debugging tests during the execution.
        *args : tuple
            Additional arguments to be passed to the function.

        Raises
        ------
        InvalidConfigurationError
            If the goal, the maximum number of function evaluations, or one of
            the functions is not valid.
        """
        if debug:
            assert isinstance(verbose, bool)
            assert isinstance(store_history, bool)
            assert isinstance(debug, bool)

        if not callable(fun):
            raise InvalidConfigurationError('The objective function must be callable.')
        if callback is not None and not callable(callback):
            raise InvalidConfigurationError('The callback must be a callable function.')
        try:
            goal = GoalType(goal)
        except ValueError as exc:
            raise InvalidConfigurationError(f'Unknown optimization goal: {goal}.') from exc
        if int(max_eval) != max_eval or max_eval < 1:
            raise InvalidConfigurationError('The maximum number of function evaluations must be a positive integer.')

        self._fun = fun
        self._goal = goal
        self._counter = EvaluationCounter(max_eval)
        self._callback = callback
        self._verbose = verbose
        self._store_history = store_history
        self._args = args
        self._fun_history = []
        self._x_history = []
        self._best_x = None
        self._best_fun = np.inf

    def __call__(self, x):
        """
        Evaluate the objective function.

        Parameters
        ----------
        x : array_like, shape (n,)
            Point at which the objective function is evaluated.

        Returns
        -------
        float
            Function value at `x`, negated if the goal is to maximize.

        Raises
        ------
        `bobyqa.utils.MaxEvalError`
            If the maximum number of function evaluations has been reached. The
            function is then not evaluated.
        `bobyqa.utils.CallbackSuccess`
            If the callback function raises a ``StopIteration``.
        """
        x = np.array(x, dtype=float)
        if not self._counter.increment():
            raise MaxEvalError(self.max_eval)
        f = float(np.squeeze(self._fun(x, *self._args)))
        if self._verbose:
            with np.printoptions(**PRINT_OPTIONS):
                print(f"{self.name}({x}) = {f}")
        if self._store_history:
            self._fun_history.append(f)
            self._x_history.append(np.copy(x))
        fun_val = -f if self._goal is GoalType.MAXIMIZE else f
        if self._best_x is None or fun_val < self._best_fun:
            self._best_x = np.copy(x)
            self._best_fun = fun_val

        if self._callback is not None:
            sig = signature(self._callback)
            try:
                if set(sig.parameters) == {"intermediate_result"}:
                    intermediate_result = OptimizeResult(x=np.copy(x), fun=f)
                    self._callback(intermediate_result)
                else:
                    self._callback(np.copy(x))
            except StopIteration as exc:
                raise CallbackSuccess from exc
        return fun_val

    def signed(self, fun_val):
        """
        Convert an internal function value into the original sign convention.

        Parameters
        ----------
        fun_val : float
            Function value, as returned by `__call__`.

        Returns
        -------
        float
            Value of the objective function.
        """
        return -fun_val if self._goal is GoalType.MAXIMIZE else fun_val

    @property
    def goal(self):
        """
        Optimization goal.

        Returns
        -------
        GoalType
            Whether the objective function is minimized or maximized.
        """
        return self._goal

    @property
    def n_eval(self):
        """
        Number of function evaluations.

        Returns
        -------
        int
            Number of function evaluations.
        """
        return self._counter.count

    @property
    def max_eval(self):
        """
        Maximum number of function evaluations.

        Returns
        -------
        int
            Maximum number of function evaluations.
        """
        return self._counter.max_count

    @property
    def name(self):
        """
        Name of the objective function.

        Returns
        -------
        str
            Name of the objective function.
        """
        try:
            return self._fun.__name__
        except AttributeError:
            return "fun"

    @property
    def fun_history(self):
        """
        History of objective function evaluations.

        Returns
        -------
        numpy.ndarray, shape (n_eval,)
            History of objective function evaluations.
        """
        return np.array(self._fun_history, dtype=float)

    @property
    def x_history(self):
        """
        History of the evaluated points.

        Returns
        -------
        numpy.ndarray, shape (n_eval, n)
            History of the evaluated points.
        """
        return np.array(self._x_history, dtype=float)

    @property
    def best_eval(self):
        """
        Best point evaluated so far.

        Returns
        -------
        numpy.ndarray, shape (n,)
            Best point evaluated so far, or None if no evaluation was made.
        float
            Corresponding value of the objective function, in the original
            sign convention.
        """
        if self._best_x is None:
            return None, np.nan
        return np.copy(self._best_x), self.signed(self._best_fun)


class BoundConstraints:
    """
    Bound constraints ``xl <= x <= xu``.
    """

    def __init__(self, bounds):
        """
        Initialize the bound constraints.

        Parameters
        ----------
        bounds : scipy.optimize.Bounds
            Bound constraints.
        """
        self._xl = np.atleast_1d(np.array(bounds.lb, float))
        self._xu = np.atleast_1d(np.array(bounds.ub, float))

    @property
    def xl(self):
        """
        Lower bound.

        Returns
        -------
        `numpy.ndarray`, shape (n,)
            Lower bound.
        """
        return self._xl

    @property
    def xu(self):
        """
        Upper bound.

        Returns
        -------
        `numpy.ndarray`, shape (n,)
            Upper bound.
        """
        return self._xu

    @property
    def is_feasible(self):
        """
        Whether the bound constraints are finite and define a nonempty box
        with a nonempty interior.

        Returns
        -------
        bool
            Whether the bound constraints are feasible.
        """
        return bool(
            self.xl.shape == self.xu.shape
            and np.all(np.isfinite(self.xl))
            and np.all(np.isfinite(self.xu))
            and np.all(self.xl < self.xu)
        )

    def maxcv(self, x):
        """
        Evaluate the maximum constraint violation.

        Parameters
        ----------
        x : array_like, shape (n,)
            Point at which the maximum constraint violation is evaluated.

        Returns
        -------
        float
            Maximum constraint violation at `x`.
        """
        x = np.asarray(x, dtype=float)
        val = np.max(self.xl - x, initial=0.0)
        return np.max(x - self.xu, initial=val)


class Problem:
    """
    Bound-constrained optimization problem.
    """

    def __init__(self, obj, x0, bounds, npt, radius_init, radius_final, debug):
        """
        Initialize and validate the optimization problem.

        If the smallest gap between the lower and upper bounds is less than
        twice the initial trust-region radius, the latter is reduced to one
        third of this gap, and the final trust-region radius is reduced
        accordingly if necessary.

        Parameters
        ----------
        obj : ObjectiveFunction
            Objective function.
        x0 : array_like, shape (n,)
            Initial guess.
        bounds : BoundConstraints
            Bound constraints.
        npt : int
            Number of interpolation points.
        radius_init : float
            Initial trust-region radius.
        radius_final : float
            Final trust-region radius.
        debug : bool
            Whether to make debugging tests during the execution.

        Raises
        ------
        InvalidConfigurationError
            If the problem is not valid.
        """
        if debug:
            assert isinstance(obj, ObjectiveFunction)
            assert isinstance(bounds, BoundConstraints)
            assert isinstance(debug, bool)

        self._obj = obj
        self._debug = debug

        # Check the consistency of the problem.
        try:
            x0 = exact_1d_array(x0, 'The initial guess must be a vector.')
        except ValueError as exc:
            raise InvalidConfigurationError(str(exc)) from exc
        n = x0.size
        if n < 2:
            raise InvalidConfigurationError(f'The number of variables must be at least 2; got {n}.')
        if not np.all(np.isfinite(x0)):
            raise InvalidConfigurationError('The initial guess must be finite.')
        if bounds.xl.size != n or bounds.xu.size != n:
            raise InvalidConfigurationError(f'The bounds must have {n} elements.')
        if not bounds.is_feasible:
            raise InvalidConfigurationError('The bounds must be finite and the lower bounds must be less than the upper bounds.')
        if np.any(x0 < bounds.xl):
            raise InvalidConfigurationError('The initial guess must be greater than or equal to the lower bounds.')
        if np.any(x0 > bounds.xu):
            raise InvalidConfigurationError('The initial guess must be less than or equal to the upper bounds.')
        if int(npt) != npt or not n + 2 <= npt <= ((n + 1) * (n + 2)) // 2:
            raise InvalidConfigurationError(f'The number of interpolation points must be an integer between {n + 2} and {((n + 1) * (n + 2)) // 2}; got {npt}.')
        radius_init = float(radius_init)
        radius_final = float(radius_final)
        if not np.isfinite(radius_init) or radius_init <= 0.0:
            raise InvalidConfigurationError('The initial trust-region radius must be positive.')
        if not np.isfinite(radius_final) or radius_final <= 0.0:
            raise InvalidConfigurationError('The final trust-region radius must be positive.')
        if radius_init < radius_final:
            raise InvalidConfigurationError('The initial trust-region radius must be greater than or equal to the final trust-region radius.')

        # Reduce the initial trust-region radius if the bounds are too close.
        min_gap = np.min(bounds.xu - bounds.xl)
        if min_gap < 2.0 * radius_init:
            radius_init = min_gap / 3.0
            radius_final = min(radius_final, radius_init)
            _log.debug(f"Initial trust-region radius reduced to {radius_init}")

        self._x0 = x0
        self._bounds = bounds
        self._npt = int(npt)
        self._radius_init = radius_init
        self._radius_final = radius_final

    def __call__(self, x):
        """
        Evaluate the objective function.

        Parameters
        ----------
        x : array_like, shape (n,)
            Point at which the objective function is evaluated.

        Returns
        -------
        float
            Objective function value, to be minimized.
        """
        if self._debug:
            assert self.bounds.maxcv(x) == 0.0
        return self._obj(x)

    @property
    def n(self):
        """
        Number of variables.

        Returns
        -------
        int
            Number of variables.
        """
        return self.x0.size

    @property
    def npt(self):
        """
        Number of interpolation points.

        Returns
        -------
        int
            Number of interpolation points.
        """
        return self._npt

    @property
    def x0(self):
        """
        Initial guess.

        Returns
        -------
        `numpy.ndarray`, shape (n,)
            Initial guess.
        """
        return self._x0

    @property
    def bounds(self):
        """
        Bound constraints.

        Returns
        -------
        BoundConstraints
            Bound constraints.
        """
        return self._bounds

    @property
    def radius_init(self):
        """
        Initial trust-region radius, possibly reduced to fit the bounds.

        Returns
        -------
        float
            Initial trust-region radius.
        """
        return self._radius_init

    @property
    def radius_final(self):
        """
        Final trust-region radius.

        Returns
        -------
        float
            Final trust-region radius.
        """
        return self._radius_final

    @property
    def n_eval(self):
        """
        Number of function evaluations.

        Returns
        -------
        int
            Number of function evaluations.
        """
        return self._obj.n_eval

    @property
    def fun_name(self):
        """
        Name of the objective function.

        Returns
        -------
        str
            Name of the objective function.
        """
        return self._obj.name

    @property
    def fun_history(self):
        """
        History of objective function evaluations.

        Returns
        -------
        `numpy.ndarray`, shape (n_eval,)
            History of objective function evaluations.
        """
        return self._obj.fun_history

    @property
    def x_history(self):
        """
        History of the evaluated points.

        Returns
        -------
        `numpy.ndarray`, shape (n_eval, n)
            History of the evaluated points.
        """
        return self._obj.x_history

    def best_eval(self):
        """
        Best point evaluated so far.

        Returns
        -------
        `numpy.ndarray`, shape (n,)
            Best point evaluated so far.
        float
            Corresponding value of the objective function.
        """
        return self._obj.best_eval

    def signed(self, fun_val):
        """
        Convert an internal function value into the original sign convention.

        Parameters
        ----------
        fun_val : float
            Function value to be minimized.

        Returns
        -------
        float
            Value of the objective function.
        """
        return self._obj.signed(fun_val)
