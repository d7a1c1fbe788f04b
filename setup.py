from setuptools import setup, find_packages

setup(
    name="chainfork",
    version="0.1.0",
    description="Fork a live Substrate chain's state into a new chain specification",
    packages=find_packages(include=["chainfork", "chainfork.*"]),
    install_requires=[
        "aiohttp",
        "click",
        "pydantic>=2",
        "pydantic-settings",
        "structlog",
        "scalecodec",
        "tqdm",
        "xxhash",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "chainfork=chainfork.cli:main",
        ],
    }
)
