"""Setup script for WCProxy."""

from setuptools import setup, find_packages

setup(
    name="wcproxy",
    version="1.0.0",
    description="Serves Google webcache copies of pages with an in-memory TTL cache and a request-rate limit.",
    python_requires=">=3.11",
    packages=find_packages(include=["wcproxy", "wcproxy.*"]),
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.29",
        "pydantic>=2.6",
        "pydantic-settings>=2.2",
        "python-dotenv>=1.0",
        "httpx>=0.27",
        "anyio>=4.0",
        "cachetools>=5.3",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "respx>=0.21",
        ],
    },
)
