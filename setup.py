"""
Skillchain - Skill Execution Engine

Runs ordered tool-call sequences with timeouts, retries and variable substitution.
"""

from setuptools import setup, find_packages

with open("README.md") as f:
    long_description = f.read()

setup(
    name="skillchain",
    version="1.0.0",
    description="Skill Execution Engine",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Skillchain Team",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "*.tests"]),
    install_requires=[
        "pyyaml>=5.4",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: AsyncIO",
    ],
)
