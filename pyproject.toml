[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tombkit"
version = "0.1.0"
description = "Building blocks for crash tombstone reports: a small printf formatter, base64, fixed-offset time conversion, signal names and /proc based memory, file, network and logcat sections."
requires-python = ">=3.10"
dependencies = []
keywords = ["crash", "tombstone", "smaps", "meminfo", "logcat", "procfs", "base64", "signals"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Debuggers",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tombkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
