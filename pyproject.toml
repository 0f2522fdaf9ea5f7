[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rapinarep"
version = "0.1.0"
description = "Financial reports for companies listed in Brazil: statements, indicators, analyses in a spreadsheet, profit listings and FII dividend yields"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "finance",
    "investment",
    "financial statements",
    "dfp",
    "itr",
    "fii",
    "dividends",
    "spreadsheet",
    "xlsx",
    "report",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Financial and Insurance Industry",
    "Intended Audience :: End Users/Desktop",
    "Natural Language :: Portuguese (Brazilian)",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rapinarep"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
