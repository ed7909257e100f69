[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "uvrpc"
version = "0.1.0"
description = "Request/response RPC over ZeroMQ ROUTER/DEALER sockets with msgpack framing, plus echo benchmark commands"
requires-python = ">=3.10"
keywords = ["rpc", "zeromq", "zmq", "msgpack", "router", "dealer", "benchmark", "latency"]
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
    "Topic :: System :: Distributed Computing",
    "Topic :: System :: Networking",
    "Topic :: System :: Benchmark",
    "Typing :: Typed",
]
dependencies = [
    "pyzmq",
    "msgpack",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
uvrpc-bench-server = "uvrpc.bench_server:main"
uvrpc-bench-client = "uvrpc.bench_client:main"

[tool.hatch.build.targets.wheel]
packages = ["uvrpc"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
