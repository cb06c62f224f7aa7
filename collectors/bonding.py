"""
Linux bonding collector (.5).

Table .5.3.1, one row per bond slave:
    1 bond name, 2 bond MII status, 3 slave name, 4 slave MII status
"""

import time
from pathlib import Path
from typing import List

from oid_daemon.collector_api import CollectorBatch, set_oid, set_oid_list
from oid_daemon.collector_registry import register_collector

SYS_NET_PATH = Path("/sys/devices/virtual/net")


def _read_first_line(path: Path) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.readline().strip()


def read_bonds(sys_net: Path = SYS_NET_PATH) -> List[List[object]]:
    rows: List[List[object]] = []
    for bond in sorted(sys_net.glob("bond*")):
        master_state = _read_first_line(bond / "bonding" / "mii_status")
        for slave in _read_first_line(bond / "bonding" / "slaves").split():
            slave_state = _read_first_line(bond / f"lower_{slave}" / "bonding_slave" / "mii_status")
            rows.append([bond.name, master_state, slave, slave_state])
    return rows


@register_collector("gather_bonding_data", interval=30)
def gather_bonding_data() -> CollectorBatch:
    data = read_bonds(SYS_NET_PATH)
    rows = [
        set_oid(".5.1.0", "gauge", int(time.time())),
        set_oid(".5.2.0", "gauge", len(data)),
    ]
    rows += set_oid_list(".5.3.1", data, ["string"] * 4)
    return CollectorBatch(rows=rows, clear=".5")
