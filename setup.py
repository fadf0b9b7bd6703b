"""
SQL Relations - Setup Configuration
"""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements
core_requirements = [
    "pydantic>=2.0.0",
    "pyyaml>=6.0.0",
    "python-dotenv>=1.0.0",
]

# Optional database drivers
postgresql_requirements = ["psycopg2-binary>=2.9.0"]

# Development requirements
dev_requirements = [
    "pytest>=7.0.0",
    "pytest-cov>=4.0.0",
    "black>=23.0.0",
    "isort>=5.12.0",
    "flake8>=6.0.0",
    "mypy>=1.0.0",
]

setup(
    name="sql-relations",
    version="1.0.0",
    author="SQL Relations Contributors",
    author_email="",
    description="Semantic relation classifier for SQL schema foreign keys",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
        "Topic :: Software Development :: Code Generators",
    ],
    python_requires=">=3.9",
    install_requires=core_requirements,
    extras_require={
        "postgresql": postgresql_requirements,
        "dev": dev_requirements,
        "all": postgresql_requirements + dev_requirements,
    },
    keywords=[
        "sql",
        "schema",
        "foreign-key",
        "database",
        "code-generation",
        "inheritance",
    ],
)
