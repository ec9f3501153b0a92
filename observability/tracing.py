"""Timing helper for provider fan-out."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List


@contextmanager
def span(events: List[Dict[str, Any]], name: str) -> Iterator[Dict[str, Any]]:
    """Append ``{"span", "ms", "status"}`` for the block; status is ``error`` if it raised."""
    entry: Dict[str, Any] = {"span": name, "ms": 0, "status": "ok"}
    start = time.perf_counter()
    try:
        yield entry
    except BaseException:
        entry["status"] = "error"
        raise
    finally:
        entry["ms"] = int((time.perf_counter() - start) * 1000)
        events.append(entry)


__all__ = ["span"]
