"""
Setup script for zenjin-engine.

Zenjin Engine is the adaptive mastery-and-sequencing core of the Zenjin
Maths learning app. It decides, for every learner, which stitch to present
next and when to present it again:

1. Boundary tracking - five distinction levels per learner and fact
2. Stitch repositioning - spaced repetition over per-path stitch queues
3. Triple helix rotation - one active and two preparing learning paths

The 'zenjin' command is a small operator CLI around the engine.
"""

from setuptools import find_packages, setup

setup(
    name="zenjin-engine",
    version="1.0.0",
    description="Adaptive mastery tracking and stitch sequencing engine for Zenjin Maths",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Zenjin",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "zenjin=zenjin.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition mastery education adaptive",
)
