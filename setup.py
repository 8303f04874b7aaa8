"""
Setup script for the convert service.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="convert-service",
    version="0.1.0",
    description="HTML/Markdown to PDF and DOCX conversion service",
    packages=find_packages(include=["convert_service", "convert_service.*"]),
    package_data={"convert_service": ["templates/*.html"]},
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "python-dotenv>=1.0",
        "playwright>=1.40",
        "markdown>=3.5",
        "pypandoc-binary>=1.12",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "httpx>=0.25",
        ],
    },
)
