#!/usr/bin/env python3
"""
Minimize the Rosenbrock function subject to randomly generated simple bounds.
"""
import numpy as np
from bobyqa import minimize
from scipy.optimize import Bounds, rosen


if __name__ == "__main__":
    rng = np.random.default_rng(0)
    n = 10

    # Generate bounds that contain the solution in their interior, and an
    # initial guess satisfying them.
    bounds = Bounds(rng.uniform(-3.0, 0.0, n), rng.uniform(2.0, 3.0, n))
    x0 = rng.uniform(bounds.lb, bounds.ub)
    res = minimize(rosen, x0, bounds=bounds, options={'radius_init': 0.5, 'maxfev': 5000})
    print(res)
