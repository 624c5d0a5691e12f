[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "servicemesh"
version = "0.1.0"
description = "Service definitions, registry catalogs, load-balancing strategies and JSON payloads for a microservice broker"
requires-python = ">=3.11"
dependencies = []
keywords = ["microservices", "service-registry", "load-balancing", "payload", "broker"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["servicemesh"]

[tool.pytest.ini_options]
addopts = "-ra"
