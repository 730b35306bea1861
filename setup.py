#!/usr/bin/env python3
"""Setup script for LINKIT Weekly."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="linkit-weekly",
    version="0.1.0",
    author="LINKIT Karlsruhe",
    author_email="team@example.com",
    description="Curation and generation pipeline for the LINKIT WEEKLY student AI newsletter",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://www.linkedin.com/company/linkit-karlsruhe",
    packages=find_packages(include=["linkit_weekly", "linkit_weekly.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Text Processing :: Markup :: Markdown",
    ],
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.6",
        "pydantic-settings>=2.2",
        "httpx>=0.27",
        "aiohttp>=3.9",
        "feedparser>=6.0",
        "selectolax>=0.3,<1.0",
        "structlog>=24.1",
        "orjson>=3.10",
        "aiosqlite>=0.20",
        "click>=8.1",
        "jinja2>=3.1",
        "pyyaml>=6.0",
        "rich>=13.7.1",
        "openai>=1.97.0",
        "google-genai>=0.5.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.2",
            "pytest-asyncio>=0.23",
            "ruff>=0.4",
            "mypy>=1.10",
            "coverage>=7.5",
            "pytest-cov>=4.1",
        ]
    },
    entry_points={
        "console_scripts": [
            "linkit-weekly=linkit_weekly.orchestrator:cli",
        ],
    },
    include_package_data=True,
    package_data={
        "linkit_weekly": ["*.yaml", "templates/*.md"],
    },
)
