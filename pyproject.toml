[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "yippee"
version = "12.0.0"
description = "Building blocks for an AUR helper: searching, fetching and reviewing PKGBUILDs"
requires-python = ">=3.10"
dependencies = []
keywords = ["aur", "pkgbuild", "pacman", "arch", "packaging"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["yippee"]

[tool.pytest.ini_options]
addopts = "-ra"
