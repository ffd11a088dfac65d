"""A small MapReduce framework: a coordinator, workers over a Unix-domain socket, built-in applications and a sequential runner."""

__version__ = "0.1.0"