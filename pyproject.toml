[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "repoctl"
version = "0.22.0"
description = "Manage local Pacman repositories: read packages and databases, compare versions, query the AUR"
requires-python = ">=3.11"
keywords = ["pacman", "arch", "aur", "repository", "repo-add", "vercmp", "packaging"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
    "Topic :: System :: Archiving :: Packaging",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "requests",
    "zstandard",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["repoctl"]

[tool.hatch.build.targets.sdist]
include = ["repoctl", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
