"""Setup script for llm-translate."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README
readme = Path("README.md").read_text(encoding="utf-8")

setup(
    name="llm-translate",
    version="1.0.0",
    description="Text and document translation through pluggable LLM backends",
    long_description=readme,
    long_description_content_type="text/markdown",
    license="MIT",

    packages=find_packages(exclude=["tests*", "docs*", "examples*"]),

    python_requires=">=3.9",

    install_requires=[
        "pyyaml>=6.0",
        "rich>=13.0.0",
        "openai>=1.0.0,<3",
        "anthropic>=0.25.0,<1",
        "typer>=0.9.0",
        "loguru>=0.7.0",
        "httpx[socks]>=0.28.0"
    ],

    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0"
        ]
    },

    entry_points={
        "console_scripts": [
            "llm-translate=cli.commands.main:cli",
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Text Processing :: Linguistic",
    ],

    keywords="translation llm openai anthropic ollama proxy cli",
)
