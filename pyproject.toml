[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "peershare"
version = "0.1.0"
description = "Peer-to-peer file sharing over UDP discovery and TCP transfer"
requires-python = ">=3.10"
keywords = ["p2p", "peer-to-peer", "file-sharing", "udp", "tcp", "discovery"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: File Sharing",
    "Topic :: System :: Networking",
]
dependencies = [
    "pyyaml",
    "rich",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
peershare = "peershare.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["peershare"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
