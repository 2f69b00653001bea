#!/usr/bin/env python3
"""esprovisioner package setup."""

from setuptools import setup, find_packages
from pathlib import Path

readme = Path(__file__).parent / "README.md"
long_description = readme.read_text(encoding="utf-8") if readme.exists() else ""

setup(
    name="esprovisioner",
    version="0.1.0",
    description="Idempotent user, index and seed-data provisioning for Elasticsearch clusters",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Database",
        "Topic :: System :: Systems Administration",
    ],
    python_requires=">=3.9",
    install_requires=[
        "elasticsearch>=8.0.0,<9",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": ["pytest", "pytest-cov", "elastic-transport>=8.0.0"],
    },
    entry_points={
        "console_scripts": [
            "esprovisioner=esprovisioner.cli:main",
        ],
    },
)
