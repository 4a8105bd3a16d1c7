"""Setup for gp-bayesopt package."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="gp-bayesopt",
    version="1.0.0",
    description="Gaussian-Process Bayesian Optimization for expensive black-box functions",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["gpbo", "gpbo.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
    python_requires=">=3.9",
    install_requires=[
        "torch>=2.0.0",
        "gpytorch>=1.11",
        "numpy>=1.20.0",
        "scipy>=1.7.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
