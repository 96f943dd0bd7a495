[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "taskpilot"
version = "0.1.0"
description = "A task manager actor that configures, spawns and drives a chat-state actor for AI task sessions."
requires-python = ">=3.10"
dependencies = []
keywords = ["actor", "task", "chat", "mcp", "llm", "agent"]
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
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["taskpilot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
