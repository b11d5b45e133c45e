from setuptools import setup, find_packages

setup(
    name="enforce-aaa",
    version="0.1.0",
    description="enforce-aaa — Arrange-Act-Assert markers for PHPUnit test methods",
    packages=find_packages(include=["enforce_aaa", "enforce_aaa.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "enforce-aaa=enforce_aaa.cli:main",
        ],
    },
)
