[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tunenote"
version = "0.1.0"
description = "Terminal musical note detector: listens to the microphone and shows the note being played"
requires-python = ">=3.10"
keywords = ["tuner", "pitch", "fft", "music", "notes", "terminal"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Analysis",
]
dependencies = [
    "numpy",
    "rich",
    "pygame",
    "blessed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
tunenote = "tunenote.app:main"

[tool.hatch.build.targets.wheel]
packages = ["tunenote"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
