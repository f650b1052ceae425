"""Setup script for face-age-gate."""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    required = f.read().splitlines()

setup(
    name="face-age-gate",
    version="0.1.0",
    description="Face-based age gate: multi-pass minor/adult classification driving a protective content policy",
    author="Team Converge",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=required,
    extras_require={
        "mediapipe": ["mediapipe>=0.10"],
        "test": ["pytest>=7.0", "pytest-asyncio>=0.21"],
    },
    entry_points={
        "console_scripts": [
            "agegate=agegate_core.cli:main",
        ],
    },
    include_package_data=True,
)
