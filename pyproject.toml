[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gossipkit"
version = "0.1.0"
description = "Building blocks for gossip-based cluster membership: Vivaldi network coordinates, Lamport clocks, event coalescing, query filters and msgpack wire messages."
requires-python = ">=3.10"
dependencies = [
    "msgpack",
]
keywords = ["gossip", "vivaldi", "network coordinates", "lamport clock", "cluster membership", "msgpack"]
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
    "Topic :: System :: Distributed Computing",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gossipkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
