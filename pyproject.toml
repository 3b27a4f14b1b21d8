[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stripsplitter"
version = "0.1.0"
description = "Join a folder of page images into one long strip and cut it into parts at chosen heights."
requires-python = ">=3.10"
dependencies = ["pillow"]
keywords = ["image", "strip", "split", "webtoon", "comic", "slices"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Graphics :: Editors :: Raster-Based",
]

[project.optional-dependencies]
test = ["pytest", "pillow"]

[project.scripts]
stripsplitter = "stripsplitter.service:main"

[tool.hatch.build.targets.wheel]
packages = ["stripsplitter"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
