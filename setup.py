#!/usr/bin/env python3
"""
Setup script for cellularpy.
"""

from setuptools import setup, find_packages

setup(
    name="cellularpy",
    version="0.1.0",
    description="Python library for controlling cellular modems via the ModemManager D-Bus API",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="LGPL-3.0-or-later",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "dbus-next>=0.2.3",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-timeout>=2.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cellular-cli=cellularpy.cli:main",
        ],
    },
    keywords=["modemmanager", "modem", "cellular", "dbus", "lte", "5g", "nr"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Communications",
        "Topic :: System :: Hardware :: Hardware Drivers",
        "Operating System :: POSIX :: Linux",
        "License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)",
    ],
)
