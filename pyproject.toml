[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vrshelf"
version = "0.1.0"
description = "Building blocks for a VR video library: funscript heatmaps, preview clips, watch sessions, scene scraping and content bundles"
requires-python = ">=3.10"
keywords = ["vr", "video", "funscript", "heatmap", "ffmpeg", "deovr", "scraper"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
]
dependencies = [
    "pillow",
    "beautifulsoup4",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["vrshelf"]

[tool.pytest.ini_options]
addopts = "-ra"
