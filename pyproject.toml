[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wakadat"
version = "0.1.0"
description = "Extract and decrypt files from ACV1 .dat game archives"
requires-python = ">=3.10"
dependencies = []
keywords = ["archive", "extract", "dat", "acv1", "game", "decrypt", "crc64"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
wakadat = "wakadat.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["wakadat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
