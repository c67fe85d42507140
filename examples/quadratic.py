#!/usr/bin/env python3
"""
Solve a bound-constrained variant of Example 16.4 of [1]_.

The unconstrained minimizer lies outside the bounds, so that the bound
constraints on both variables are active at the solution (1, 2).

References
----------
.. [1] J. Nocedal and S. J. Wright. *Numerical Optimization*. Springer Ser.
   Oper. Res. Financ. Eng. Springer, New York, NY, USA, second edition, 2006.
   `doi:10.1007/978-0-387-40065-5
   <https://doi.org/10.1007/978-0-387-40065-5>`_.
"""
from bobyqa import minimize
from scipy.optimize import Bounds


def quad(x):
    return (x[0] - 1.0) ** 2.0 + (x[1] - 2.5) ** 2.0


if __name__ == "__main__":
    x0 = [2.0, 0.0]
    bounds = Bounds([0.0, 0.0], [4.0, 2.0])
    res = minimize(quad, x0, bounds=bounds, options={'disp': True})
    print(res)
