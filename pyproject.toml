[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dedupvault"
version = "0.1.0"
description = "Building blocks for a chunk-level deduplicating backup store: backup-version recipes, chunk traces, caches, queues and container-id features"
requires-python = ">=3.10"
dependencies = []
keywords = ["deduplication", "backup", "storage", "recipes", "lru", "trace"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Backup",
]

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["dedupvault"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
