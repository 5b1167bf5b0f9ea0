#!/usr/bin/env python3
"""
typefuzz
========

Type-directed fuzzing for Python functions: generates inputs from type
hints, runs each call under a hard timeout, and classifies outcomes with
implicit, human and property oracles.

For more information, see README.md
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="typefuzz",
    version="1.0.0",
    author="typefuzz developers",
    description="Type-directed fuzzing for Python functions with pluggable oracles",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Testing",
    ],
    python_requires=">=3.10",
    install_requires=[
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "hypothesis>=6.92.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "hypothesis>=6.92.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.5.0",
            "pytest-cov>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "typefuzz=typefuzz.cli:main",
        ],
    },
)
