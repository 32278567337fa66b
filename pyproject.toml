[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "extinitiator"
version = "0.1.0"
description = "SQLite subscription store and mock blockchain JSON-RPC client for testing external initiators"
requires-python = ">=3.10"
keywords = [
    "blockchain",
    "json-rpc",
    "mock",
    "testing",
    "ethereum",
    "subscriptions",
    "sqlite",
]
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
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Topic :: Software Development :: Testing :: Mocking",
    "Topic :: Database",
]
dependencies = [
    "aiohttp>=3.8",
    "pycryptodome>=3.15",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "pytest-asyncio>=0.21",
]

[project.scripts]
extinitiator-mock = "extinitiator.mock.web:main"

[tool.hatch.build.targets.wheel]
packages = ["extinitiator"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
