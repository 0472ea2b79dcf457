[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gtsnet"
version = "0.1.0"
description = "A lightweight message-routing server framework for TCP and WebSocket connections"
requires-python = ">=3.10"
keywords = ["tcp", "websocket", "server", "framework", "router", "heartbeat", "worker-pool"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]
dependencies = [
    "pyyaml",
    "watchdog",
    "websockets",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gtsnet = "gtsnet.app:main"

[tool.hatch.build.targets.wheel]
packages = ["gtsnet"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
