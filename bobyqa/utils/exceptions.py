class InvalidConfigurationError(ValueError):
    """
    Exception raised when the problem or the solver is ill-configured.
    """
    pass


class MaxEvalError(RuntimeError):
    """
    Exception raised when the maximum number of evaluations is reached.

    Parameters
    ----------
    max_eval : int
        Maximum number of function evaluations that was exceeded.
    """

    def __init__(self, max_eval):
        super().__init__(f'The maximum number of function evaluations ({max_eval}) has been exceeded.')
        self.max_eval = max_eval


class TrustRegionStepError(RuntimeError):
    """
    Exception raised when a trust-region step does not reduce the model.
    """
    pass


class CallbackSuccess(StopIteration):
    """
    Exception raised when the callback function raises a ``StopIteration``.
    """
    pass
