#!/usr/bin/env python3
"""Setup script for intelbridge."""

import pathlib
from setuptools import setup, find_packages

# Read version from VERSION file
version_file = pathlib.Path(__file__).parent / "VERSION"
with open(version_file, 'r', encoding='utf-8') as f:
    version = f.read().strip()

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read requirements
with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [
        line.strip()
        for line in fh
        if line.strip() and not line.startswith("#") and not line.startswith("-")
    ]

setup(
    name="intelbridge",
    version=version,
    description="Real-time entity extraction and media metadata analysis for live chat documents",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["intelbridge", "intelbridge.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Information Technology",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Security",
        "Topic :: Text Processing :: Markup :: HTML",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "intelbridge=intelbridge.cli:main",
        ],
    },
    include_package_data=True,
)
