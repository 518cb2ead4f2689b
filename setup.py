#!/usr/bin/env python
# -*- coding: utf-8 -*-

from setuptools import Command, find_packages, setup
import sys


# Load the __version__ variable
exec(open('promesse/__version__.py').read())


with open('README.rst') as readme_file:
    long_description = readme_file.read()


class Tox(Command):
    description = "Run the test suite with tox."
    user_options = [('tox-args=', 'a', "Arguments to pass to tox")]

    def initialize_options(self):
        self.tox_args = ''

    def finalize_options(self):
        pass

    def run(self):
        import shlex
        import subprocess
        errno = subprocess.call([sys.executable, "-m", "tox"] +
                                shlex.split(self.tox_args))
        sys.exit(errno)


setup(
    name="promesse",
    version=__version__,  # noqa
    description="Promises with cooperative microtask scheduling",
    long_description=long_description,
    license="GPLv3",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Libraries"
    ],
    keywords="promise deferred future microtask scheduler",
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.6',
    install_requires=[
        'appdirs>=1.4'
    ],
    extras_require={
        'test': ['pytest>=3.0', 'tox']
    },
    entry_points={
        "console_scripts": [
            "promesse-demo=promesse:main"
        ]
    },
    cmdclass={
        'test': Tox
    },
    zip_safe=False
)
