"""Setup module for wattpy"""

import pathlib

from setuptools import find_packages, setup

import wattpy

REQUIRES = [
    "aiosqlite>=0.16.0",
    "typing_extensions",
    "voluptuous",
]

TESTS_REQUIRE = [
    "freezegun>=1.3",
    "pytest",
    "pytest-asyncio",
]

setup(
    name="wattpy",
    version=wattpy.__version__,
    description="Electrical power and energy measurement layer for hub device drivers",
    long_description=(pathlib.Path(__file__).parent / "README.md").read_text(),
    long_description_content_type="text/markdown",
    license="GPL-3.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=REQUIRES,
    extras_require={"testing": TESTS_REQUIRE},
    python_requires=">=3.11",
    package_data={"": ["appdb_schemas/schema_v*.sql"]},
)
