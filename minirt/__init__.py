"""A small single-threaded async runtime with timers, byte streams, TCP sockets and an HTTP client."""

__version__ = "0.1.0"