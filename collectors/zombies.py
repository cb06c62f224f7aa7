"""Zombie process counter (.4)."""

import time
from pathlib import Path

from oid_daemon.collector_api import CollectorBatch, set_oid
from oid_daemon.collector_registry import register_collector

PROC_PATH = Path("/proc")


def count_zombies(proc: Path = PROC_PATH) -> int:
    count = 0
    for status in proc.glob("[0-9]*/status"):
        try:
            text = status.read_text(encoding="utf-8", errors="replace")
        except OSError:
            # Process went away between glob and read
            continue
        if "zombie" in text:
            count += 1
    return count


@register_collector("gather_zombies_data", interval=30)
def gather_zombies_data() -> CollectorBatch:
    return CollectorBatch(
        rows=[
            set_oid(".4.1.0", "gauge", int(time.time())),
            set_oid(".4.2.0", "gauge", count_zombies()),
        ]
    )
