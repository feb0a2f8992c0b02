[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vio"
version = "0.1.0"
description = "Asyncio building blocks: timers, DNS lookup, TCP sockets, readiness-driven streams, TLS configuration and small containers"
requires-python = ">=3.10"
dependencies = []
keywords = ["asyncio", "tcp", "tls", "dns", "timer", "networking", "stream"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: System :: Networking",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["vio"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
