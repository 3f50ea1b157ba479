#!/usr/bin/env python3
"""
Setup configuration for DJ-Companion
A Spotify playback companion for building and playing a BPM-tagged DJ library
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "spotipy>=2.22.1",
    "click>=8.1.7",
    "pyyaml>=6.0.1",
    "requests>=2.31.0",
    "tqdm>=4.66.1",
    "colorama>=0.4.6",
    "python-dotenv>=1.0.0",
    "aiohttp>=3.9.1",
    "asyncio-throttle>=1.0.2",
]

setup(
    name="dj-companion",
    version="0.4.0",
    author="DJ-Companion Team",
    description="Spotify playback companion for building and playing a BPM-tagged DJ library",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["djcompanion", "djcompanion.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Players",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-asyncio>=0.21.1",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "dj-companion=djcompanion.main:cli",
        ],
    },
    keywords="spotify dj bpm playback library cli",
)
