[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "samscodec"
version = "0.1.0"
description = "A lossy DCT-based image codec that turns BMP images into compact SAMS files and back"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["image", "compression", "bmp", "dct", "codec", "lossy", "run-length"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
samscodec = "samscodec.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["samscodec"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
