[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "diffq"
version = "0.1.0"
description = "Differentiated-services queueing: strict priority and deficit round robin schedulers with packet filters and Cisco-style configuration"
requires-python = ">=3.10"
dependencies = []
keywords = ["diffserv", "qos", "queueing", "spq", "drr", "scheduling", "networking"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
diffq = "diffq.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["diffq"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
