[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iapmodem"
version = "1.0.0"
description = "YMODEM in-application programming loader with a simulated flash area and a serial menu"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["ymodem", "bootloader", "iap", "serial", "flash", "crc16"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications",
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Terminals :: Serial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
iapmodem = "iapmodem.menu:main"

[tool.hatch.build.targets.wheel]
packages = ["iapmodem"]

[tool.pytest.ini_options]
addopts = "-ra"
