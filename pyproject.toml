[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shardkv"
version = "0.1.0"
description = "Shard maps, key-to-shard hashing, file-watched cluster layouts and a read/write consistency checker for a sharded key-value store"
requires-python = ">=3.10"
dependencies = []
keywords = ["key-value", "sharding", "replication", "shard-map", "consistency", "ttl"]
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
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["shardkv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
