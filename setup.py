# setup.py
from setuptools import setup, find_packages


def parse_reqs(fname="requirements.txt"):
    with open(fname) as f:
        # strip comments and empty lines
        return [l.strip() for l in f if l.strip() and not l.startswith("#")]


setup(
    name="aquascore",
    version="0.1.0",
    package_dir={"aquascore": "aquascore"},
    packages=find_packages(include=["aquascore", "aquascore.*"]),
    install_requires=parse_reqs(),
    extras_require={"test": ["pytest>=7.0"], "parquet": ["pyarrow>=14"]},
    include_package_data=True,
    package_data={"aquascore": ["resources/*.yaml"]},
    python_requires=">=3.10",
    entry_points={"console_scripts": ["aquascore=aquascore.core.cli:cli"]},
)
