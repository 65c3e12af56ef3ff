from setuptools import setup, find_packages

setup(
    name="bond_calculator",
    version="0.1.0",
    description="Bond price calculator with price/yield curve and portfolio metrics",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "bond-calculator=bond_calculator.main_cli:main",
        ],
    },
    python_requires=">=3.8",
)
