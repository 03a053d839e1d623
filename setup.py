"""
tiergen - Data-Tier Code Generator
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="tiergen",
    version="0.1.0",
    author="Diegoproggramer",
    author_email="",
    description="Generate stored procedures, C# data layers and Angular screens from table metadata",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/Diegoproggramer/tiergen",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=23.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tiergen=tiergen.cli:cli_main",
        ],
    },
    keywords="sql-server, stored-procedures, csharp, angular, code-generator, crud",
    project_urls={
        "Bug Reports": "https://github.com/Diegoproggramer/tiergen/issues",
        "Source": "https://github.com/Diegoproggramer/tiergen",
    },
)
