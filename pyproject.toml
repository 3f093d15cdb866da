[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pawntrace"
version = "0.1.0"
description = "Read Pawn AMX programs and their debug information, and resolve code addresses to files, lines and functions"
requires-python = ">=3.10"
dependencies = []
keywords = ["pawn", "amx", "debugger", "debug info", "symbols"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Debuggers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pawntrace"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
