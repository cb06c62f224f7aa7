"""
Device-mapper multipath collector (.2).

Table .2.3.1, one row per multipath map:
    1 map name, 2 WWID, 3 "vendor,model" of a running path,
    4 number of paths, 5 number of paths not in state "running"
"""

import time
from pathlib import Path
from typing import List

from oid_daemon.collector_api import CollectorBatch, set_oid, set_oid_list
from oid_daemon.collector_registry import register_collector

SYS_BLOCK_PATH = Path("/sys/devices/virtual/block")


def _read_first_line(path: Path) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.readline().strip()


def read_multipath_maps(sys_block: Path = SYS_BLOCK_PATH) -> List[List[object]]:
    rows: List[List[object]] = []
    for mp in sorted(sys_block.glob("dm-*")):
        uuid_file = mp / "dm" / "uuid"
        if not uuid_file.is_file():
            continue
        uuid = _read_first_line(uuid_file)
        if not uuid.startswith("mpath-"):
            continue
        slave_count = 0
        slave_failed = 0
        vendor = ""
        model = ""
        for state_file in sorted(mp.glob("slaves/*/device/state")):
            slave_count += 1
            if _read_first_line(state_file) != "running":
                slave_failed += 1
            else:
                vendor = _read_first_line(state_file.parent / "vendor")
                model = _read_first_line(state_file.parent / "model")
        rows.append([mp.name, uuid[len("mpath-"):], f"{vendor},{model}", slave_count, slave_failed])
    return rows


@register_collector("gather_multipath_data", interval=60)
def gather_multipath_data() -> CollectorBatch:
    data = read_multipath_maps(SYS_BLOCK_PATH)
    rows = [
        set_oid(".2.1.0", "gauge", int(time.time())),
        set_oid(".2.2.0", "gauge", len(data)),
    ]
    rows += set_oid_list(".2.3.1", data, ["string", "string", "string", "gauge", "gauge"])
    return CollectorBatch(rows=rows, clear=".2")
