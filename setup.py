"""Setup file for development installation."""

from setuptools import setup, find_packages

setup(
    name="chat-history-store",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "structlog>=22.1",
        "google-generativeai>=0.5",
        "google-api-core>=2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
)
