[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pifat"
version = "0.1.0"
description = "Read-only FAT32 disk image reader, with boot record and long file name helpers, a small printf, a GPIO register model, a tracing memory and a serial console echo tool"
requires-python = ">=3.10"
dependencies = []
keywords = ["fat32", "filesystem", "disk-image", "mbr", "long-file-name", "utf-8", "printf", "gpio", "serial"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pifat = "pifat.fs:main"
pifat-crosscheck = "pifat.crosscheck:main"
pi-cat = "pifat.picat:main"

[tool.hatch.build.targets.wheel]
packages = ["pifat"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
