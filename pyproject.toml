[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "xarkit"
version = "1.7.0"
description = "Table of contents tree, heap I/O and data modules for the xar archive format"
requires-python = ">=3.10"
dependencies = []
keywords = ["xar", "archive", "toc", "heap", "checksum", "lzma", "xz", "signature", "appledouble"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["xarkit*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
