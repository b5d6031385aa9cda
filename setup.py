from setuptools import find_packages, setup

setup(
    name="fsbridge",
    version="0.1.0",
    description="One filesystem interface over local disk, in-memory and SFTP storage",
    author="Daniel T Sasser II",
    packages=find_packages(include=["fsbridge", "fsbridge.*"]),
    install_requires=[
        "cachetools>=5.0.0",
        "paramiko>=3.0.0",
    ],
    entry_points={
        "console_scripts": [
            "fsbridge=fsbridge.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
