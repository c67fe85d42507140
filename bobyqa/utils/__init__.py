from .exceptions import CallbackSuccess, InvalidConfigurationError, MaxEvalError, TrustRegionStepError
from .math import get_arrays_tol, exact_1d_array
from .structs import EvaluationCounter
from ._show_versions import show_versions

__all__ = ['CallbackSuccess', 'InvalidConfigurationError', 'MaxEvalError', 'TrustRegionStepError', 'get_arrays_tol', 'exact_1d_array', 'EvaluationCounter', 'show_versions']
