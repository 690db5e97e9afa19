"""Setup script for the Mandrill statistics exporter."""

from setuptools import find_packages, setup

setup(
    name="mandrill-exporter",
    version="1.0.0",
    description="Prometheus exporter for Mandrill per-tag email delivery statistics",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.1.7",
        "requests>=2.31.0",
        "python-dotenv>=1.0.0",
        "structlog>=24.1.0",
        "pyyaml>=6.0.1",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "prometheus-client>=0.19.0",
        "fastapi>=0.110.0",
        "uvicorn>=0.29.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "responses>=0.24.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mandrill-exporter=mandrill_exporter.cli.main:main",
        ],
    },
)
