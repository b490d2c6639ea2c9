from setuptools import setup, find_packages

setup(
    name="CorGen",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "matplotlib",
        "scipy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    author="Paweł Lenartowicz",
    description="Correlated multivariate data generation with Gaussian copulas",
)
