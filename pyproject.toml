[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pagebind"
version = "0.1.0"
description = "Parse SUMMARY.md outlines, load Markdown books from disk and plan their preprocessor and renderer pipelines"
requires-python = ">=3.11"
keywords = ["markdown", "book", "summary", "outline", "preprocessor", "renderer"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Markup :: Markdown",
    "Topic :: Documentation",
    "Typing :: Typed",
]
dependencies = [
    "markdown-it-py",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
pagebind-nop = "pagebind.nop:main"
pagebind-wordcount = "pagebind.wordcount:main"

[tool.hatch.build.targets.wheel]
packages = ["pagebind"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
