[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mempal"
version = "0.3.1"
description = "Project memory for coding agents: a SQLite drawer store, a small knowledge graph and the AAAK compressed memory format."
requires-python = ">=3.11"
dependencies = []
keywords = ["memory", "agents", "sqlite", "search", "knowledge-graph"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mempal"]

[tool.hatch.build.targets.sdist]
include = ["mempal", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
