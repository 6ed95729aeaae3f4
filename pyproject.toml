[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "k2mat"
version = "0.1.0"
description = "Compact Boolean matrices stored as k2-trees, with Boolean set operations on the compressed form"
requires-python = ">=3.10"
dependencies = []
keywords = ["k2-tree", "boolean matrix", "succinct data structures", "quadtree", "rank"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["k2mat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"
