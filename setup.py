#!/usr/bin/env python3
"""Setup script for lazytrace - lazy tensor IR with cached shape inference."""

from setuptools import setup, find_packages
import os

HERE = os.path.dirname(os.path.abspath(__file__))


# Read requirements
def read_requirements(filename):
    """Read requirements from file."""
    path = os.path.join(HERE, filename)
    if not os.path.exists(path):
        return []
    with open(path) as f:
        return [line.strip() for line in f if line.strip() and not line.startswith('#')]


# Read README for long description
def read_readme():
    """Read README.md for long description."""
    readme_path = os.path.join(HERE, 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, encoding='utf-8') as f:
            return f.read()
    return ""


setup(
    name="lazytrace",
    version="0.1.0",
    description="Lazy tensor IR: structurally hashed computation graphs with cached shape inference",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    author="lazytrace developers",
    author_email="",
    license="MIT",

    # Package discovery
    packages=find_packages(include=['lazytrace', 'lazytrace.*']),

    # Dependencies
    install_requires=read_requirements('requirements.txt'),

    extras_require={
        'dev': read_requirements('requirements-dev.txt'),
    },

    # Python version requirement
    python_requires='>=3.8',

    # Classifiers
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
        'Topic :: Software Development :: Compilers',
    ],
)
