[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chatnet"
version = "0.1.0"
description = "A small TCP chat server and client with private messages, chat logging and a UDP-to-serial relay"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["chat", "tcp", "socket", "select", "serial", "udp"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
chatnet-client = "chatnet.client:main"
chatnet-server = "chatnet.server:main"
chatnet-serialserver = "chatnet.serialserver:main"

[tool.hatch.build.targets.wheel]
packages = ["chatnet"]

[tool.pytest.ini_options]
addopts = "-ra"
