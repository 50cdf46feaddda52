[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dbpack"
version = "0.1.0"
description = "Building blocks of a database proxy: request context, protocol types, pooled backend databases, transactions and a listener server."
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "proxy", "mysql", "connection-pool", "transactions"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dbpack"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
