[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "llmspell"
version = "0.1.0"
description = "Script engine registry, tool registry, sandboxed execution contexts and a standard library of script modules (json, log, storage, http, promises, async callbacks)"
requires-python = ">=3.10"
dependencies = []
keywords = ["scripting", "sandbox", "tools", "promises", "spells"]
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
    "Topic :: Software Development :: Interpreters",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["llmspell"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
