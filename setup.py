#!/usr/bin/env python
from setuptools import setup, find_packages

setup(
    name="cpmcmc",
    version="0.1.0",
    description="Step-through Metropolis-Hastings sampler for a single change-point model",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",

    # finds the cpmcmc/ package and its core/ subpackage,
    # but excludes tests, examples, docs
    packages=find_packages(exclude=["tests*", "examples*", "docs*"]),

    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.25",
        "scipy>=1.7",
        "prefect>=3.0",
        "pyyaml>=5.4",
    ],
    extras_require={
        "dev": [
            "pytest",
            "black",
            "flake8",
        ],
        "test": [
            "pytest",
        ],
    },

    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],

    include_package_data=False,
)
