[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "demand_proxy"
version = "0.1.2"
description = "Mining proxy core: component health tracking, pool connection setup, share accounting relays and command-line helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["mining", "proxy", "stratum", "share-accounting", "asyncio", "hashrate"]
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
    "Framework :: AsyncIO",
    "Topic :: Internet :: Proxy Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["demand_proxy"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
