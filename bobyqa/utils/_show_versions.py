import os
import platform
import sys
from importlib.metadata import PackageNotFoundError, version

from .._min_dependencies import dependent_pkgs


def _get_sys_info():
    """
    Get system-related information.
    """
    return {
        "python": sys.version.replace(os.linesep, " "),
        "executable": sys.executable,
        "machine": platform.platform(),
    }


def _get_deps_info():
    """
    Get the installed and the minimum required versions of the package and
    its dependencies.
    """
    deps_info = {}
    for module in ["setuptools", "pip", "bobyqa", *dependent_pkgs]:
        try:
            installed = version(module)
        except PackageNotFoundError:
            installed = None
        required = dependent_pkgs.get(module, (None,))[0]
        deps_info[module] = installed if required is None else f"{installed} (>= {required})"
    return deps_info


def _get_blas_info():
    """
    Get information on the BLAS routine used for the Givens rotations.
    """
    import numpy as np
    from scipy.linalg import get_blas_funcs

    blas_rot, = get_blas_funcs(("rot",), (np.zeros(1),))
    return {
        "routine": f"{blas_rot.prefix}rot",
        "module": blas_rot.module_name,
    }


def _print_section(title, info, sort=False):
    print(title)
    print("-" * len(title))
    width = max(map(len, info.keys())) + 1
    items = sorted(info.items()) if sort else info.items()
    for k, stat in items:
        print(f"{k:>{width}}: {stat}")


def show_versions():
    """
    Print debugging information.

    The information includes the system settings, the installed versions of
    the dependencies together with the minimum versions required, and the
    BLAS routine used for the Givens rotations.
    """
    _print_section("System settings", _get_sys_info())
    print()
    _print_section("Python dependencies", _get_deps_info(), sort=True)
    print()
    _print_section("BLAS", _get_blas_info())
