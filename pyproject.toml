[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nanoboy"
version = "0.1.0"
description = "Core pieces of a handheld game console emulator: ARM7TDMI interpreter, event scheduler, cartridge ROM access, save-state structure and audio resampling"
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "arm7tdmi", "arm", "thumb", "scheduler", "resampler", "crc32"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nanoboy"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
