[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "barometer"
version = "0.1.0"
description = "Progress state, rate estimation and templated rendering for terminal progress bars and spinners"
requires-python = ">=3.10"
dependencies = [
    "wcwidth",
]
keywords = ["progress", "progress-bar", "spinner", "terminal", "template", "eta"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Terminals",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["barometer"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
