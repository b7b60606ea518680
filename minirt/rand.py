"""Random bytes, secure and insecure."""

from __future__ import annotations

import os
import random


def _check_size(size: int) -> None:
    if isinstance(size, bool) or not isinstance(size, int):
        raise TypeError(f"size must be an int, got {type(size).__name__}")
    if size < 0:
        raise ValueError("size must not be negative")


def get_random_bytes(size: int) -> bytes:
    """Return ``size`` cryptographically secure random bytes."""
    _check_size(size)
    if size == 0:
        return b""
    return os.urandom(size)


def get_insecure_random_bytes(size: int) -> bytes:
    """Return ``size`` random bytes that are not fit for cryptography."""
    _check_size(size)
    if size == 0:
        return b""
    return random.randbytes(size)