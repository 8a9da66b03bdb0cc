[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pmsensor"
version = "0.1.0"
description = "Read particulate matter measurements from a PMS5003 sensor over a serial port"
requires-python = ">=3.10"
keywords = ["pms5003", "particulate matter", "air quality", "serial", "sensor"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Atmospheric Science",
]
dependencies = [
    "pyserial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
pms-read = "pmsensor.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["pmsensor"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
