"""Timestamp utilities."""

import time


def get_timestamp_us() -> int:
    """Get current timestamp in microseconds."""
    return int(time.time() * 1_000_000)


def get_timestamp_seconds() -> int:
    """Get current timestamp in seconds (block timestamps)."""
    return int(time.time())


def format_timestamp(seconds: int) -> str:
    """Format a block timestamp as a human-readable string."""
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(seconds))
