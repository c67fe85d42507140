import sys
from enum import Enum

import numpy as np


# Exit status.
class ExitStatus(Enum):
    """
    Exit statuses.
    """
    RADIUS_SUCCESS = 0
    CALLBACK_SUCCESS = 1


class GoalType(str, Enum):
    """
    Optimization goals.
    """
    MINIMIZE = 'minimize'
    MAXIMIZE = 'maximize'


class Options(str, Enum):
    """
    Option names.
    """
    DEBUG = 'debug'
    GOAL = 'goal'
    MAX_EVAL = 'maxfev'
    NPT = 'nb_points'
    RHOBEG = 'radius_init'
    RHOEND = 'radius_final'
    STORE_HISTORY = 'store_history'
    VERBOSE = 'disp'


# Default options.
DEFAULT_OPTIONS = {
    Options.DEBUG.value: False,
    Options.GOAL.value: GoalType.MINIMIZE,
    Options.MAX_EVAL.value: lambda n: 500 * n,
    Options.NPT.value: lambda n: 2 * n + 1,
    Options.RHOBEG.value: 10.0,
    Options.RHOEND.value: 1e-8,
    Options.STORE_HISTORY.value: False,
    Options.VERBOSE.value: False,
}


# Printing options.
PRINT_OPTIONS = {
    'threshold': 6,
    'edgeitems': 2,
    'linewidth': sys.maxsize,
    'formatter': {'float_kind': lambda x: np.format_float_scientific(x, precision=3, unique=False, pad_left=2)}
}


# Constants.
RECENTRE_RATIO = 1e-3
ROTATION_TOL = 1e-20
SHORT_STEP_RATIO = 0.5
ETA1 = 0.1
ETA2 = 0.7
RHO_RATIO_SMALL = 16.0
RHO_RATIO_LARGE = 250.0
