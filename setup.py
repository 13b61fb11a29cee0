from setuptools import setup, find_packages

setup(
    name="screenrecorder",
    version="0.1.0",
    description="Chunked media recording server with bounded per-session writers",
    author="",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
        "aiohttp>=3.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "screenrecorder=screenrecorder.main:main",
        ],
    },
)
