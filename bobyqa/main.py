import logging
import warnings

import numpy as np
from scipy.optimize import Bounds, OptimizeResult

from .framework import TrustRegion
from .problem import BoundConstraints, ObjectiveFunction, Problem
from .settings import DEFAULT_OPTIONS, ExitStatus, GoalType, Options, PRINT_OPTIONS
from .utils import CallbackSuccess, InvalidConfigurationError

_log = logging.getLogger(__name__)


class BOBYQA:
    """
    Bound-constrained derivative-free optimizer.

    The optimizer implements the BOBYQA method [1]_, which minimizes (or
    maximizes) a function of several variables subject to finite bound
    constraints, using only function values. An instance stores the parameters
    of the method and can be used for several optimizations in sequence.

    Parameters
    ----------
    nb_points : int
        Number of interpolation points. It must be between ``n + 2`` and
        ``(n + 1) * (n + 2) / 2``, where ``n`` is the number of variables. The
        value ``2 * n + 1`` is recommended.
    radius_init : float, optional
        Initial trust-region radius. It is reduced to one third of the smallest
        gap between the bounds if this gap is less than twice its value.
    radius_final : float, optional
        Final trust-region radius, which determines the accuracy of the
        solution.

    References
    ----------
    .. [1] M. J. D. Powell. The BOBYQA algorithm for bound constrained
       optimization without derivatives. Tech. rep. DAMTP 2009/NA06. Cambridge,
       UK: Department of Applied Mathematics and Theoretical Physics, University
       of Cambridge, 2009.

    Examples
    --------
    >>> import numpy as np
    >>> from bobyqa import BOBYQA

    >>> def rosen(x):
    ...     return 100.0 * (x[1] - x[0] ** 2.0) ** 2.0 + (1.0 - x[0]) ** 2.0

    >>> optimizer = BOBYQA(5, radius_init=0.5, radius_final=1e-8)
    >>> res = optimizer.optimize(rosen, [-1.2, 1.0], [[-5.0, 5.0], [-5.0, 5.0]], 2000)
    >>> np.round(res.x, 4)
    array([1., 1.])
    """

    def __init__(self, nb_points, radius_init=DEFAULT_OPTIONS[Options.RHOBEG], radius_final=DEFAULT_OPTIONS[Options.RHOEND]):
        self._nb_points = nb_points
        self._radius_init = radius_init
        self._radius_final = radius_final

    @property
    def nb_points(self):
        """
        Number of interpolation points.

        Returns
        -------
        int
            Number of interpolation points.
        """
        return self._nb_points

    @property
    def radius_init(self):
        """
        Initial trust-region radius.

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

    def optimize(self, fun, x0, bounds, max_eval, goal=GoalType.MINIMIZE, args=(), callback=None, verbose=False, store_history=False, debug=False):
        r"""
        Optimize a scalar function subject to bound constraints.

        Parameters
        ----------
        fun : callable
            Objective function.

                ``fun(x, *args) -> float``

            where ``x`` is an array with shape (n,) and `args` is a tuple.
        x0 : array_like, shape (n,)
            Initial guess. It must satisfy the bound constraints.
        bounds : {`scipy.optimize.Bounds`, array_like, shape (n, 2)}
            Bound constraints of the problem. It can be one of the cases below.

            #. An instance of `scipy.optimize.Bounds`.
            #. An array with shape (n, 2). The bound constraints for ``x[i]``
               are ``bounds[i][0] <= x[i] <= bounds[i][1]``.

            All bounds must be finite, and every lower bound must be less than
            the corresponding upper bound.
        max_eval : int
            Maximum number of function evaluations.
        goal : {GoalType, str}, optional
            Whether `fun` is to be minimized or maximized.
        args : tuple, optional
            Extra arguments passed to the objective function.
        callback : callable, optional
            A callback executed after each function evaluation. If the
            signature of the callback is

                ``callback(intermediate_result: scipy.optimize.OptimizeResult)``

            then it receives the evaluated point and its function value as the
            fields ``x`` and ``fun``. Otherwise, it is called as
            ``callback(x)``. The optimization stops if the callback raises a
            ``StopIteration``.
        verbose : bool, optional
            Whether to print information on the optimization procedure.
        store_history : bool, optional
            Whether to store the history of the function evaluations.
        debug : bool, optional
            Whether to make debugging tests during the execution, which is
            not recommended in production.

        Returns
        -------
        `scipy.optimize.OptimizeResult`
            Result of the optimization procedure, with the following fields:

                message : str
                    Description of the cause of the termination.
                success : bool
                    Whether the optimization procedure terminated successfully.
                status : int
                    Termination status of the optimization procedure.
                x : `numpy.ndarray`, shape (n,)
                    Solution point, within the bounds.
                fun : float
                    Objective function value at the solution point.
                nfev : int
                    Number of function evaluations.
                nit : int
                    Number of trust-region steps computed.

            If `store_history` is True, the result also has the fields
            ``fun_history`` and ``x_history``. The possible values of
            ``status`` are given below.

            .. list-table::
                :widths: 25 75
                :header-rows: 1

                * - Exit status
                  - Description
                * - 0
                  - The lower bound for the trust-region radius has been
                    reached.
                * - 1
                  - The callback requested to stop the optimization procedure.

        Raises
        ------
        `bobyqa.utils.InvalidConfigurationError`
            If the problem or the optimizer is ill-configured.
        `bobyqa.utils.MaxEvalError`
            If the maximum number of function evaluations is exceeded.
        """
        if not isinstance(args, tuple):
            args = (args,)
        obj = ObjectiveFunction(fun, goal, max_eval, callback, verbose, store_history, debug, *args)
        xl, xu = _get_bounds(bounds, np.size(x0))
        pb = Problem(obj, x0, BoundConstraints(Bounds(xl, xu)), self.nb_points, self.radius_init, self.radius_final, debug)
        if verbose:
            print('Starting the optimization procedure.')
            print(f'Initial trust-region radius: {pb.radius_init}.')
            print(f'Final trust-region radius: {pb.radius_final}.')
            print(f'Maximum number of function evaluations: {max_eval}.')
            print()

        framework = None
        try:
            framework = TrustRegion(pb, verbose, debug)
            x, fun_val = framework.run()
            fun_val = pb.signed(fun_val)
            status = ExitStatus.RADIUS_SUCCESS
        except CallbackSuccess:
            x, fun_val = pb.best_eval()
            status = ExitStatus.CALLBACK_SUCCESS
        n_iter = framework.n_iter if framework is not None else 0
        _log.info(f"Optimization terminated with status {status.name}")
        return _build_result(pb, x, fun_val, status, n_iter, store_history, verbose)


def minimize(fun, x0, args=(), bounds=None, callback=None, options=None):
    r"""
    Minimize a scalar function subject to bound constraints using the BOBYQA
    method.

    Parameters
    ----------
    fun : callable
        Objective function to be minimized.

            ``fun(x, *args) -> float``

        where ``x`` is an array with shape (n,) and `args` is a tuple.
    x0 : array_like, shape (n,)
        Initial guess. It must satisfy the bound constraints.
    args : tuple, optional
        Extra arguments passed to the objective function.
    bounds : {`scipy.optimize.Bounds`, array_like, shape (n, 2)}
        Bound constraints of the problem. They are required, and must be finite.
    callback : callable, optional
        A callback executed after each function evaluation. See
        `BOBYQA.optimize` for its possible signatures.
    options : dict, optional
        Options passed to the solver. Accepted keys are:

            nb_points : int, optional
                Number of interpolation points. Default is ``2 * n + 1``.
            radius_init : float, optional
                Initial trust-region radius. Default is ``10.0``.
            radius_final : float, optional
                Final trust-region radius. Default is ``1e-8``.
            maxfev : int, optional
                Maximum number of function evaluations. Default is
                ``500 * n``.
            goal : {'minimize', 'maximize'}, optional
                Whether to minimize or maximize `fun`. Default is
                ``'minimize'``.
            disp : bool, optional
                Whether to print information on the optimization procedure.
                Default is False.
            store_history : bool, optional
                Whether to store the history of the function evaluations.
                Default is False.
            debug : bool, optional
                Whether to make debugging tests during the execution. Default
                is False.

        Unknown options are ignored, with a warning.

    Returns
    -------
    `scipy.optimize.OptimizeResult`
        Result of the optimization procedure. See `BOBYQA.optimize`.

    Raises
    ------
    `bobyqa.utils.InvalidConfigurationError`
        If the problem or the options are ill-configured.
    `bobyqa.utils.MaxEvalError`
        If the maximum number of function evaluations is exceeded.

    Examples
    --------
    To demonstrate how to use `minimize`, we first minimize the Rosenbrock
    function implemented in `scipy.optimize` in a box.

    >>> import numpy as np
    >>> from scipy.optimize import rosen
    >>> from bobyqa import minimize

    >>> x0 = [1.3, 0.7, 0.8, 1.9, 1.2]
    >>> bounds = [[-5.0, 5.0]] * 5
    >>> res = minimize(rosen, x0, bounds=bounds, options={'radius_init': 0.1, 'radius_final': 1e-8, 'maxfev': 5000})
    >>> np.round(res.x, 4)
    array([1., 1., 1., 1., 1.])
    """
    if options is None:
        options = {}
    else:
        options = dict(options)
    if bounds is None:
        raise InvalidConfigurationError('The bound constraints are required.')
    _set_default_options(options, np.size(x0))
    optimizer = BOBYQA(options[Options.NPT], options[Options.RHOBEG], options[Options.RHOEND])
    return optimizer.optimize(
        fun,
        x0,
        bounds,
        options[Options.MAX_EVAL],
        options[Options.GOAL],
        args,
        callback,
        options[Options.VERBOSE],
        options[Options.STORE_HISTORY],
        options[Options.DEBUG],
    )


def _get_bounds(bounds, n):
    """
    Extract the lower and upper bounds.
    """
    if bounds is None:
        raise InvalidConfigurationError('The bound constraints are required.')
    elif isinstance(bounds, Bounds):
        try:
            xl = np.broadcast_to(np.asarray(bounds.lb, dtype=float), (n,))
            xu = np.broadcast_to(np.asarray(bounds.ub, dtype=float), (n,))
        except ValueError as exc:
            raise InvalidConfigurationError('The shape of the bounds is not compatible with the number of variables.') from exc
        return np.copy(xl), np.copy(xu)
    elif hasattr(bounds, '__len__'):
        bounds = np.asarray(bounds, dtype=float)
        if bounds.shape != (n, 2):
            raise InvalidConfigurationError('The shape of the bounds is not compatible with the number of variables.')
        return bounds[:, 0], bounds[:, 1]
    else:
        raise TypeError('The bounds must be an instance of scipy.optimize.Bounds or an array-like object.')


def _set_default_options(options, n):
    """
    Set the default options.
    """
    if Options.RHOBEG in options and Options.RHOEND not in options:
        options[Options.RHOEND.value] = min(DEFAULT_OPTIONS[Options.RHOEND], options[Options.RHOBEG])
    elif Options.RHOEND in options and Options.RHOBEG not in options:
        options[Options.RHOBEG.value] = max(DEFAULT_OPTIONS[Options.RHOBEG], options[Options.RHOEND])
    options.setdefault(Options.RHOBEG.value, DEFAULT_OPTIONS[Options.RHOBEG])
    options.setdefault(Options.RHOEND.value, DEFAULT_OPTIONS[Options.RHOEND])
    options[Options.RHOBEG.value] = float(options[Options.RHOBEG])
    options[Options.RHOEND.value] = float(options[Options.RHOEND])
    options.setdefault(Options.NPT.value, DEFAULT_OPTIONS[Options.NPT](n))
    options.setdefault(Options.MAX_EVAL.value, max(DEFAULT_OPTIONS[Options.MAX_EVAL](n), options[Options.NPT] + 1))
    options.setdefault(Options.GOAL.value, DEFAULT_OPTIONS[Options.GOAL])
    options.setdefault(Options.VERBOSE.value, DEFAULT_OPTIONS[Options.VERBOSE])
    options[Options.VERBOSE.value] = bool(options[Options.VERBOSE])
    options.setdefault(Options.STORE_HISTORY.value, DEFAULT_OPTIONS[Options.STORE_HISTORY])
    options[Options.STORE_HISTORY.value] = bool(options[Options.STORE_HISTORY])
    options.setdefault(Options.DEBUG.value, DEFAULT_OPTIONS[Options.DEBUG])
    options[Options.DEBUG.value] = bool(options[Options.DEBUG])

    # Check whether they are any unknown options.
    for key in options:
        if key not in Options.__members__.values():
            warnings.warn(f'Unknown option: {key}.', RuntimeWarning, 3)


def _build_result(pb, x, fun_val, status, n_iter, store_history, verbose):
    """
    Build the result of the optimization process.
    """
    result = OptimizeResult()
    result.message = {
        ExitStatus.RADIUS_SUCCESS: 'The lower bound for the trust-region radius has been reached',
        ExitStatus.CALLBACK_SUCCESS: 'The callback requested to stop the optimization procedure',
    }.get(status, 'Unknown exit status')
    result.success = True
    result.status = status.value
    result.x = x
    result.fun = fun_val
    result.nfev = pb.n_eval
    result.nit = n_iter
    if store_history:
        result.fun_history = pb.fun_history
        result.x_history = pb.x_history

    # Print the result if requested.
    if verbose:
        _print_step(result.message, pb, result.x, result.fun, result.nfev, result.nit)
    return result


def _print_step(message, pb, x, fun_val, n_eval, n_iter):
    """
    Print information about the current state of the optimization process.
    """
    print()
    print(f'{message}.')
    print(f'Number of function evaluations: {n_eval}.')
    print(f'Number of iterations: {n_iter}.')
    print(f'Least value of {pb.fun_name}: {fun_val}.')
    with np.printoptions(**PRINT_OPTIONS):
        print(f'Corresponding point: {x}.')
