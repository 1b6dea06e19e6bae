[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "appinsight"
version = "0.1.0"
description = "iOS app analysis tool for developers: search and download App Store IPAs, inspect their visible structure and generate reports"
requires-python = ">=3.10"
dependencies = []
keywords = ["ios", "ipa", "app-store", "analysis", "info-plist", "report"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
appinsight = "appinsight.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["appinsight"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
