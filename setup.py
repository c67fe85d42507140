#!/usr/bin/env python3
import os
import shutil
import sys

if sys.version_info < (3, 7):
    raise RuntimeError('Python version >= 3.7 required.')

import builtins
from pathlib import Path

# Remove MANIFEST before importing setuptools to prevent improper updates.
if os.path.exists('MANIFEST'):
    os.remove('MANIFEST')

import setuptools  # noqa
from setuptools import find_packages, setup  # noqa
from distutils.command.clean import clean  # noqa

# This is a bit hackish: to prevent loading components that are not yet built,
# we set a global variable to endow the main __init__ with with the ability to
# detect whether it is loaded by the setup routine.
builtins.__BOBYQA_SETUP__ = True

import bobyqa  # noqa
import bobyqa._min_dependencies as min_deps  # noqa


class CleanCommand(clean):
    description = 'Remove build artifacts from the source tree'

    def run(self):
        super().run()

        # Remove the 'build', 'dist', '*.egg-info', '.pytest_cache', and '.tox'
        # directories from the current working directory.
        cwd = Path(__file__).resolve(strict=True).parent
        shutil.rmtree(cwd / 'build', ignore_errors=True)
        shutil.rmtree(cwd / 'dist', ignore_errors=True)
        for dirname in cwd.glob('*.egg-info'):
            shutil.rmtree(dirname)
        shutil.rmtree(cwd / '.pytest_cache', ignore_errors=True)
        shutil.rmtree(cwd / '.tox', ignore_errors=True)

        # Remove the 'MANIFEST' file.
        if Path(cwd, 'MANIFEST').is_file():
            os.unlink(cwd / 'MANIFEST')

        # Remove the Python caches.
        for dirpath, dirnames, _ in os.walk(cwd / 'bobyqa'):
            dirpath = Path(dirpath).resolve(strict=True)
            for dirname in dirnames:
                if dirname == '__pycache__':
                    shutil.rmtree(dirpath / dirname)


cmdclass = {'clean': CleanCommand}


def setup_package():
    metadata = dict(
        name='bobyqa',
        version=bobyqa.__version__,
        description='Bound Optimization BY Quadratic Approximation',
        long_description=open('README.rst').read().rstrip(),
        long_description_content_type='text/x-rst',
        keywords='derivative-free optimization, trust-region method, bound constraints',
        license='BSD-3-Clause',
        classifiers=[
            'Development Status :: 2 - Pre-Alpha',
            'Intended Audience :: Developers',
            'Intended Audience :: Education',
            'Intended Audience :: Science/Research',
            'License :: OSI Approved :: BSD License',
            'Operating System :: MacOS',
            'Operating System :: Microsoft :: Windows',
            'Operating System :: POSIX',
            'Operating System :: POSIX :: Linux',
            'Operating System :: Unix',
            'Programming Language :: Python',
            'Programming Language :: Python :: 3',
            'Programming Language :: Python :: 3 :: Only',
            'Programming Language :: Python :: Implementation :: CPython',
            'Topic :: Scientific/Engineering',
            'Topic :: Scientific/Engineering :: Mathematics',
            'Topic :: Software Development',
            'Topic :: Software Development :: Libraries',
            'Topic :: Software Development :: Libraries :: Python Modules',
        ],
        platforms=['Linux', 'macOS', 'Unix', 'Windows'],
        cmdclass=cmdclass,
        python_requires='>=3.7',
        packages=find_packages(include=['bobyqa', 'bobyqa.*']),
        install_requires=min_deps.tag_to_pkgs['install'],
        extras_require={'tests': min_deps.tag_to_pkgs['tests']},
        zip_safe=False,
    )
    setup(**metadata)


if __name__ == '__main__':
    setup_package()
    del builtins.__BOBYQA_SETUP__  # noqa
