import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import config

_RANGE_HEADER = re.compile(r"^\s*bytes\s*=\s*(.+)$", re.IGNORECASE)
_RANGE_SPEC = re.compile(r"^\s*(\d*)\s*-\s*(\d*)\s*$")


@dataclass
class DeliveryPlan:
    """What part of a file to send and how to describe it.

    ``end`` is inclusive. Unsatisfiable plans have ``length`` 0.
    """
    status: int
    start: int
    end: int
    length: int
    total_size: int
    headers: Dict[str, str] = field(default_factory=dict)


def parse_range(range_header: str) -> Optional[Tuple[Optional[int], Optional[int]]]:
    """
    Parse the first byte range of a Range header.

    Only the first range of a multi-range request is considered.

    Args:
        range_header: Raw header value, e.g. "bytes=100-" or "bytes=-500"

    Returns:
        (first, last) where either may be None ("bytes=-500" gives (None, 500)),
        or None if the header is not a valid byte range.
    """
    match = _RANGE_HEADER.match(range_header)
    if not match:
        return None

    spec = _RANGE_SPEC.match(match.group(1).split(",")[0])
    if not spec:
        return None

    first_text, last_text = spec.groups()
    if not first_text and not last_text:
        return None

    first = int(first_text) if first_text else None
    last = int(last_text) if last_text else None
    if first is not None and last is not None and last < first:
        return None

    return first, last


def plan(range_header: Optional[str], file_size: int,
         chunk_size: int = config.STREAM_CHUNK_SIZE) -> DeliveryPlan:
    """
    Work out the byte window to deliver for a download.

    Without a usable Range header the whole file is sent with 200. Otherwise a
    206 plan is returned covering at most ``chunk_size`` bytes, so clients
    fetch large files with successive requests. A range starting past the end
    of the file gives a 416 plan.
    """
    requested = parse_range(range_header) if range_header else None
    if requested is None:
        return DeliveryPlan(
            status=200,
            start=0,
            end=file_size - 1,
            length=file_size,
            total_size=file_size,
            headers={
                "Content-Length": str(file_size),
                "Accept-Ranges": "bytes",
            },
        )

    first, last = requested
    if first is None:
        # Suffix range: the final `last` bytes
        start = max(file_size - last, 0)
        end = file_size - 1
        satisfiable = last > 0 and file_size > 0
    else:
        start = first
        end = file_size - 1 if last is None else min(last, file_size - 1)
        satisfiable = start < file_size

    if not satisfiable:
        return DeliveryPlan(
            status=416,
            start=0,
            end=-1,
            length=0,
            total_size=file_size,
            headers={"Content-Range": f"bytes */{file_size}"},
        )

    end = min(end, start + chunk_size - 1)
    length = end - start + 1
    return DeliveryPlan(
        status=206,
        start=start,
        end=end,
        length=length,
        total_size=file_size,
        headers={
            "Content-Range": f"bytes {start}-{end}/{file_size}",
            "Accept-Ranges": "bytes",
            "Content-Length": str(length),
        },
    )
