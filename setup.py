"""
Setup script for mongo-handle.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="mongo-handle",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pymongo>=4.6",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
        ],
    },
)
