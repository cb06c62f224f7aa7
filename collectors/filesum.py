"""
Checksums of security relevant files (.6).

Table .6.3.1, one row per readable file:
    1 path, 2 SHA-1 hex digest
"""

import hashlib
import logging
import time
from typing import List, Sequence

from oid_daemon.collector_api import CollectorBatch, set_oid, set_oid_list
from oid_daemon.collector_registry import register_collector

logger = logging.getLogger(__name__)

WATCHED_FILES = (
    "/etc/passwd",
    "/etc/shadow",
    "/etc/group",
    "/root/.ssh/authorized_keys",
)


def sha1_file(path: str) -> str:
    digest = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def checksum_files(paths: Sequence[str] = WATCHED_FILES) -> List[List[object]]:
    rows: List[List[object]] = []
    for path in paths:
        try:
            rows.append([path, sha1_file(path)])
        except OSError as e:
            logger.debug(f"cannot checksum {path}: {e}")
    return rows


@register_collector("gather_filesum_data", interval=60)
def gather_filesum_data() -> CollectorBatch:
    data = checksum_files(WATCHED_FILES)
    rows = [
        set_oid(".6.1.0", "gauge", int(time.time())),
        set_oid(".6.2.0", "gauge", len(data)),
    ]
    rows += set_oid_list(".6.3.1", data, ["string", "string"])
    return CollectorBatch(rows=rows, clear=".6")
