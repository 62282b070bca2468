[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chatlogkit"
version = "0.1.0"
description = "Utilities for chat-log tooling: flexible time parsing, .dat image decoding, decompression and file monitoring"
requires-python = ">=3.10"
keywords = ["chat", "time-range", "dat", "lz4", "zstd", "file-monitor"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "cryptography",
    "lz4",
    "zstandard",
    "watchdog",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["chatlogkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
