#!/usr/bin/env python
"""
birb - a source based package manager for Linux From Scratch style systems
"""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Define required packages
required_packages = [
    "pydantic>=2.0.0",  # For settings and package declaration models
    "requests>=2.28.0", # For downloading source tarballs
    "pyyaml>=6.0",      # For configuration file support
    "rich>=13.5.0",     # For rich terminal output and prompts
    "cachetools>=5.5.2", # For caching seed reads and dependency closures
    "networkx>=3.0",    # For dependency graphs
]

setup(
    name="birb",
    version="1.0.0",
    description="A source based package manager with dependency resolution and a symlink farm",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests*"]),
    python_requires=">=3.8",
    install_requires=required_packages,
    entry_points={
        'console_scripts': [
            'birb=birb.cli:main',
        ],
    },
    include_package_data=True,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Topic :: System :: Software Distribution",
    ],
)
