# core/utils.py
"""
Core Utility Functions.

Helpers shared by the file service and the UI service: unique tokens for
storage paths and human-readable byte sizes.
"""
import threading
import time

_token_lock = threading.Lock()
_last_token = 0

def unique_time_token() -> int:
    """
    Returns the current epoch millisecond count, bumped so it is strictly
    increasing within this process. Two calls in the same millisecond get
    consecutive values instead of the same one.
    """
    global _last_token
    with _token_lock:
        token = max(int(time.time() * 1000), _last_token + 1)
        _last_token = token
        return token

def format_file_size(num_bytes: int | None) -> str:
    """Formats a byte count as e.g. '1.5 KB'. Unknown sizes render as '-'."""
    if num_bytes is None:
        return "-"
    if num_bytes <= 0:
        return "0 Bytes"
    k = 1024
    sizes = ["Bytes", "KB", "MB", "GB"]
    i = 0
    while num_bytes >= k ** (i + 1) and i < len(sizes) - 1:
        i += 1
    value = round(num_bytes / k ** i, 2)
    # 1.50 -> "1.5", 2.00 -> "2"
    return f"{value:g} {sizes[i]}"
