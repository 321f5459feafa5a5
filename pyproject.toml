[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dsppipe"
version = "0.1.0"
description = "Signal-processing building blocks for amateur radio pipelines: smooth FIR filters, WSPR decoding helpers, Morse decoding and real-to-I/Q conversion"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "ham radio",
    "sdr",
    "dsp",
    "wspr",
    "fano",
    "morse",
    "fir filter",
    "hilbert transform",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
dsppipe-morse = "dsppipe.morse_decoder:main"

[tool.hatch.build.targets.wheel]
packages = ["dsppipe"]

[tool.hatch.build.targets.sdist]
include = ["dsppipe", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
