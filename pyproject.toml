[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "adlconv"
version = "0.1.0"
description = "Parser for the ADL analysis description language and a converter of analysis commands to TIMBER Python scripts"
requires-python = ">=3.10"
dependencies = []
keywords = ["adl", "analysis description language", "parser", "timber", "high energy physics"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["adlconv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
