"""
Shared type aliases for the OID daemon.

OIDs are handled as tuples of integers everywhere inside the daemon and are
only rendered as dotted strings at the protocol edge.
"""

from typing import TYPE_CHECKING, Callable, Tuple, Union, List

if TYPE_CHECKING:
    from oid_daemon.collector_api import CollectorBatch

# OID as stored in the cache, e.g. (2, 1, 0)
Oid = Tuple[int, ...]

# Anything normalize_oid() accepts
OidLike = Union[str, Tuple[int, ...], List[int]]

# (type token, value text) as served to snmpd
CacheValue = Tuple[str, str]

# Argument-less collector callable
CollectorFunc = Callable[[], "CollectorBatch"]
