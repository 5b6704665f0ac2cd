"""Setup script for face-liveness-core."""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    required = [line.strip() for line in f.read().splitlines() if line.strip() and not line.startswith("#")]

setup(
    name="face-liveness-core",
    version="0.1.0",
    description="On-device passive face liveness detection with quality and occlusion gates",
    author="Team Converge",
    packages=find_packages(include=["liveness_core", "liveness_core.*"]),
    python_requires=">=3.8",
    install_requires=required,
    extras_require={
        "mediapipe": ["mediapipe>=0.10.9,<0.10.15"],
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "liveness-detect=liveness_core.cli:main",
        ],
    },
    include_package_data=True,
)
