[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "orbfeatures"
version = "0.1.0"
description = "ORB keypoint extraction with octree distribution, rotated BRIEF descriptors and matching helpers"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["orb", "features", "keypoints", "descriptors", "computer-vision", "fast", "brief"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Image Recognition",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["orbfeatures"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
