[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "neopresence"
version = "1.0.0"
description = "Discord rich presence for Neovim, served as a language server, with session diff statistics."
requires-python = ">=3.10"
dependencies = []
keywords = ["neovim", "discord", "rich-presence", "lsp", "language-server", "diff"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Editors",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[project.scripts]
neopresence = "neopresence.app:main"

[tool.hatch.build.targets.wheel]
packages = ["neopresence"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
