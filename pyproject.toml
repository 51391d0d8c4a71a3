[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "qengine"
version = "1.0.0"
description = "A small SQL front end: lexer, parsers, statistics, cost model, plan nodes and a rule-based plan optimizer"
requires-python = ">=3.10"
dependencies = []
keywords = ["sql", "parser", "lexer", "optimizer", "cost model", "statistics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["qengine"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
