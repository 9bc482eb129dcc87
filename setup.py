"""
pagedistill - Setup Configuration

Page distillation for browser agents: compact, addressable snapshots of
live multi-frame pages and identifier resolution for follow-up actions.

License: Apache-2.0
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Core dependencies
core_deps = [
    # Framework core
    "pydantic>=2.11.9",
    "pyyaml>=6.0.2",
    # Browser automation
    "playwright>=1.55.0",
]

# Development dependencies
dev_deps = [
    # Testing
    "pytest>=8.4.1",
    "pytest-asyncio>=1.0.0",
    "pytest-mock>=3.14.1",
    "pytest-cov>=6.2.1",
    # Code quality
    "black>=25.0.0",
    "flake8>=7.1.0",
    "mypy>=1.13.0",
]

setup(
    name="pagedistill",
    version="0.1.0",

    # Package description
    description="Compact, addressable snapshots of live multi-frame web pages for browser agents",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package discovery
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    # Python version requirement
    python_requires=">=3.11",

    # Dependencies
    install_requires=core_deps,

    # Optional dependencies (extras)
    extras_require={
        "core": core_deps,
        "test": [
            "pytest>=8.4.1",
            "pytest-asyncio>=1.0.0",
        ],
        "dev": core_deps + dev_deps,
    },

    # PyPI classifiers
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Internet :: WWW/HTTP :: Browsers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Framework :: AsyncIO",
    ],

    keywords=[
        "playwright", "browser", "automation", "agents", "dom",
        "iframe", "snapshot", "llm",
    ],

    license="Apache-2.0",

    include_package_data=True,
    zip_safe=False,
)
