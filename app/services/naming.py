import re
import time
from typing import Optional

_WHITESPACE = re.compile(r"\s+")


def current_millis() -> int:
    """Current time in milliseconds since epoch."""
    return time.time_ns() // 1_000_000


def derive_stored_name(original_name: str, now_ms: Optional[int] = None) -> str:
    """
    Derive the on-disk name for an uploaded file.

    Whitespace runs become a single underscore and the upload time in
    milliseconds is prepended, e.g. "hello world.txt" -> "1700000000000-hello_world.txt".
    Two uploads of the same name within one millisecond get the same stored name.

    Args:
        original_name: File name as sent by the client
        now_ms: Timestamp to use, defaults to the current time

    Returns:
        The stored name
    """
    if now_ms is None:
        now_ms = current_millis()
    safe_name = _WHITESPACE.sub("_", original_name)
    return f"{now_ms}-{safe_name}"
