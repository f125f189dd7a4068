# setup.py
"""Setup script for Workflow Snippet Generator."""

from setuptools import setup, find_packages

setup(
    name="workflow-snippet-generator",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "click>=8.0",
        "pyyaml>=6.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "jinja2>=3.0",
        "structlog>=23.1",
        "aiofiles>=23.1",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "black>=23.0",
            "flake8>=6.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "workflowgen=cli.main:cli",
            "wfgen=cli.main:cli",  # Short alias
        ],
    },
    python_requires=">=3.8",
)
