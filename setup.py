"""
Setup configuration for the App Review Intelligence client.

This setup.py enables installation of the package via pip:
    pip install -e .
    pip install -e ".[test]"
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

requirements = [
    "httpx>=0.25.0",
    "pydantic>=2.5.0",
    "pydantic-settings>=2.1.0",
    "structlog>=23.2.0",
    "tenacity>=8.2.0",
    "langgraph>=0.0.40",
    "click>=8.1.0",
    "rich>=13.7.0",
    "python-dateutil>=2.8.2",
]

setup(
    name="app-review-intelligence",
    version="1.0.0",
    author="App Review Intelligence Team",
    author_email="team@example.com",
    description="Client core for App Store review intelligence: analysis jobs, timelines and competitive SWOT",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    package_dir={"": "."},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.12.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "review-intel=review_intel.main:cli",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: AsyncIO",
        "Typing :: Typed",
    ],
    keywords=[
        "app-store",
        "reviews",
        "review-intelligence",
        "langgraph",
        "competitive-analysis",
    ],
    license="MIT",
    zip_safe=False,
)
