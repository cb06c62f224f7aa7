"""OID utility functions for consistent OID handling across the daemon.

OIDs are represented as tuples of integers internally. Tuple comparison in
Python is component-wise and places a strict prefix before its extensions,
which is exactly the numeric tree order GETNEXT walks in. Dotted strings only
appear at the edges (wire protocol, collectors, logging).
"""

import re
from typing import Optional, Tuple

from oid_daemon.types import Oid, OidLike

# Dotted OID with leading dot, e.g. ".1.3.6.1.4.1.8072.9999.9999"
OID_PATTERN = re.compile(r"^(\.[0-9]+)+$")


def is_valid_oid_str(oid_str: str) -> bool:
    """Return True if oid_str is a dotted sequence of integers with a leading dot."""
    return OID_PATTERN.match(oid_str) is not None


def oid_str_to_tuple(oid_str: str) -> Tuple[int, ...]:
    """Convert OID string to tuple of integers.

    Handles various OID string formats:
    - With leading dot: ".1.3.6.1.2.1.1.1.0"
    - Without leading dot: "1.3.6.1.2.1.1.1.0"
    - Empty strings return empty tuple

    Args:
        oid_str: OID string with dot-separated integers

    Returns:
        Tuple of integers representing the OID

    Raises:
        ValueError: If a component is not a non-negative integer

    Examples:
        >>> oid_str_to_tuple(".2.3.1.10")
        (2, 3, 1, 10)
        >>> oid_str_to_tuple("")
        ()
    """
    oid_str = oid_str.strip()
    if oid_str.startswith("."):
        oid_str = oid_str[1:]
    if not oid_str:
        return tuple()
    parts = oid_str.split(".")
    for part in parts:
        if not part.isdigit():
            raise ValueError(f"invalid OID component '{part}' in '{oid_str}'")
    return tuple(int(x) for x in parts)


def oid_tuple_to_str(oid_tuple: Tuple[int, ...]) -> str:
    """Convert OID tuple to the dotted form snmpd uses, with a leading dot.

    Examples:
        >>> oid_tuple_to_str((2, 1, 0))
        ".2.1.0"
        >>> oid_tuple_to_str(())
        ""
    """
    return "".join(f".{x}" for x in oid_tuple)


def normalize_oid(oid: OidLike) -> Oid:
    """Normalize OID to tuple format regardless of input type."""
    if isinstance(oid, str):
        return oid_str_to_tuple(oid)
    elif isinstance(oid, list):
        return tuple(oid)
    elif isinstance(oid, tuple):
        return oid
    else:
        raise TypeError(f"OID must be string, tuple, or list, got {type(oid)}")


def is_rooted_at(oid: Oid, prefix: Oid) -> bool:
    """Return True if oid equals prefix or lies in the subtree below it."""
    return oid[: len(prefix)] == prefix


def strip_base(oid_str: str, base: Oid) -> Optional[Oid]:
    """Compute the cache suffix of a requested OID.

    Returns None when the OID is malformed or not under base. An OID equal to
    base maps to the root suffix (0,).
    """
    try:
        oid = oid_str_to_tuple(oid_str)
    except ValueError:
        return None
    if len(oid) < len(base) or not is_rooted_at(oid, base):
        return None
    suffix = oid[len(base):]
    if not suffix:
        return (0,)
    return suffix
