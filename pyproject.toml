[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kooky"
version = "0.1.0"
description = "Find browser cookie stores, read their cookies, filter them and export them in the Netscape cookies.txt format"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "cookies",
    "browser",
    "netscape",
    "cookies.txt",
    "safari",
    "opera",
    "konqueror",
    "w3m",
    "elinks",
    "epiphany",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Browsers",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kooky = "kooky.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["kooky"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
