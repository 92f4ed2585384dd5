[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pulseira"
version = "0.1.0"
description = "GPS wristband toolkit: u-blox NEO-6M configuration, NMEA parsing and BLE Location and Speed encoding"
requires-python = ">=3.10"
keywords = ["gps", "nmea", "ubx", "u-blox", "neo-6m", "ble", "gatt", "location-and-navigation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
    "Topic :: Communications",
    "Topic :: Terminals :: Serial",
]
dependencies = [
    "pyserial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
pulseira = "pulseira.service:main"

[tool.hatch.build.targets.wheel]
packages = ["pulseira"]

[tool.pytest.ini_options]
addopts = "-ra"
