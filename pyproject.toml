[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "keydirtree"
version = "0.1.0"
description = "Sparse Merkle trees, verifiable key directory updates and their subcircuit layouts"
requires-python = ">=3.10"
dependencies = []
keywords = ["merkle", "sparse-merkle-tree", "key-directory", "sha256", "subcircuits"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["keydirtree"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = false
