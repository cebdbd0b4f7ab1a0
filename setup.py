"""Setup configuration for Kitchen Ledger."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="kitchen-ledger",
    version="0.1.0",
    description="Inventory and cost reconciliation engine for restaurant kitchens",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(
        include=["kitchen_ledger", "kitchen_ledger.*"],
        exclude=["kitchen_ledger.tests", "kitchen_ledger.tests.*"],
    ),
    classifiers=[
        "Development Status :: 2 - Pre-Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
