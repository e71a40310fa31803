"""
Setup script for lbm_swe package.
"""

from setuptools import setup, find_packages

setup(
    name="lbm_swe",
    version="0.1.0",
    description="Shallow-water Lattice Boltzmann simulation with interactive obstacles",
    author="Andrey",
    packages=find_packages(include=["lbm_swe", "lbm_swe.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "numba>=0.56",
        "matplotlib>=3.5",
        "scipy>=1.7",
    ],
    extras_require={
        "dev": ["pytest>=7.0", "black", "flake8"],
    },
)
