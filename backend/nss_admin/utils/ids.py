import time
from collections.abc import Container


def generate_id(existing: Container[str] = (), *, now_ms: int | None = None) -> str:
    """Millisecond timestamp id, bumped until it is not in ``existing``."""
    candidate = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    while str(candidate) in existing:
        candidate += 1
    return str(candidate)
