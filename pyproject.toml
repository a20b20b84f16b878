[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "schemadiff"
version = "0.1.0"
description = "Compare two SQL schemas (SQL dumps or SQLite databases) and generate idempotent migration and rollback scripts with Markdown and HTML reports."
requires-python = ">=3.10"
dependencies = []
keywords = ["sql", "migration", "diff", "schema", "postgres", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Programming Language :: SQL",
    "Topic :: Database :: Front-Ends",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["schemadiff"]

[tool.pytest.ini_options]
addopts = "-ra"
