from setuptools import setup, find_packages

setup(
    name="SimPower",
    version="0.1.0",
    packages=find_packages(include=["simpower", "simpower.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "pandas",
        "matplotlib",
        "scipy",
        "statsmodels>=0.14",
        "joblib>=1.3",
    ],
    extras_require={
        "progress": ["tqdm"],
        "test": ["pytest"],
    },
    description="Reproducible parallel Monte Carlo power analysis",
)
