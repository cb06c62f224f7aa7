"""
OID cache served by the protocol engine.

The cache maps OID suffixes (relative to the base OID) to (type, value) pairs.
Keys are kept in a sorted list next to the dict so GETNEXT is a bisect rather
than a sort of the whole cache on every request.
"""

import bisect
import logging
from typing import Dict, Iterator, List, Optional, Tuple

from oid_daemon.oid_utils import is_rooted_at, normalize_oid, oid_tuple_to_str
from oid_daemon.types import CacheValue, Oid, OidLike

logger = logging.getLogger(__name__)


class OidCache:
    """Mutable OID -> (type, value) mapping with numeric tree ordering.

    Only the protocol engine mutates a cache instance, so no locking is done
    here.
    """

    def __init__(self) -> None:
        self._entries: Dict[Oid, CacheValue] = {}
        self._sorted_oids: List[Oid] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, oid: object) -> bool:
        if isinstance(oid, (str, tuple, list)):
            try:
                return normalize_oid(oid) in self._entries
            except ValueError:
                return False
        return False

    def items(self) -> Iterator[Tuple[Oid, CacheValue]]:
        """Iterate entries in numeric OID order."""
        for oid in self._sorted_oids:
            yield oid, self._entries[oid]

    def apply_clear(self, prefix: OidLike) -> int:
        """Remove every entry equal to or rooted at prefix.

        Args:
            prefix: Subtree root, e.g. ".2"

        Returns:
            Number of removed entries
        """
        root = normalize_oid(prefix)
        start = bisect.bisect_left(self._sorted_oids, root)
        end = start
        # Everything rooted at root sorts contiguously right after it
        while end < len(self._sorted_oids) and is_rooted_at(self._sorted_oids[end], root):
            del self._entries[self._sorted_oids[end]]
            end += 1
        del self._sorted_oids[start:end]
        count = end - start
        logger.debug(f"cache: removed {count} OIDs")
        return count

    def apply_upsert(self, oid: OidLike, type_token: str, value: str) -> None:
        key = normalize_oid(oid)
        if key not in self._entries:
            bisect.insort(self._sorted_oids, key)
        self._entries[key] = (type_token, value)
        logger.debug(f"cache: update {oid_tuple_to_str(key)} = {type_token}: {value}")

    def lookup(self, oid: OidLike) -> Optional[CacheValue]:
        return self._entries.get(normalize_oid(oid))

    def next(self, oid: OidLike) -> Optional[Oid]:
        """Return the smallest cached OID strictly greater than oid.

        oid does not have to be cached itself, which is what lets a manager
        start a walk at any point of the tree.
        """
        key = normalize_oid(oid)
        index = bisect.bisect_right(self._sorted_oids, key)
        if index >= len(self._sorted_oids):
            return None
        return self._sorted_oids[index]
