"""Available memory collector (.3)."""

import re
import time
from pathlib import Path

from oid_daemon.collector_api import CollectorBatch, set_oid
from oid_daemon.collector_registry import register_collector

MEMINFO_PATH = Path("/proc/meminfo")

_FIELD = re.compile(r"^(\w+):\s+(\d+)")


def read_meminfo(path: Path = MEMINFO_PATH) -> dict[str, int]:
    fields: dict[str, int] = {}
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            match = _FIELD.match(line)
            if match:
                fields[match.group(1)] = int(match.group(2))
    return fields


def available_memory_kb(fields: dict[str, int]) -> int:
    """MemAvailable, or MemFree + Inactive on kernels that lack it."""
    if "MemAvailable" in fields:
        return fields["MemAvailable"]
    return fields.get("MemFree", 0) + fields.get("Inactive", 0)


@register_collector("gather_meminfo_data", interval=30)
def gather_meminfo_data() -> CollectorBatch:
    memfree = 0
    if MEMINFO_PATH.is_file():
        memfree = available_memory_kb(read_meminfo(MEMINFO_PATH))
    # Served as string: the value may exceed what a 32-bit gauge can hold
    return CollectorBatch(
        rows=[
            set_oid(".3.1.0", "gauge", int(time.time())),
            set_oid(".3.2.0", "string", memfree),
        ]
    )
