"""
Helpers for writing collectors.

A collector is an argument-less callable that returns a CollectorBatch::

    @register_collector("gather_zombies_data", interval=30)
    def gather_zombies_data() -> CollectorBatch:
        return CollectorBatch(rows=[
            set_oid(".4.1.0", "gauge", str(int(time.time()))),
            set_oid(".4.2.0", "gauge", str(count_zombies())),
        ])

Tables whose row count can shrink should set ``clear`` to their subtree so
that rows which disappeared since the previous run are dropped.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from oid_daemon.value_types import strip_line_terminators


@dataclass(frozen=True)
class OidRow:
    oid: str
    type_token: str
    value: str


@dataclass
class CollectorBatch:
    rows: List[OidRow] = field(default_factory=list)
    clear: Optional[str] = None


def set_oid(oid: str, type_token: str, value: object) -> OidRow:
    """Build a single row. Newlines and carriage returns are dropped from value."""
    return OidRow(oid, type_token, strip_line_terminators(str(value)))


def set_oid_list(
    base_oid: str,
    data: Sequence[Sequence[object]],
    col_types: Sequence[str],
    row_start: int = 1,
    col_start: int = 1,
) -> List[OidRow]:
    """Build rows for a table.

    With a single column type every row becomes ``base_oid.ROW``. With more
    than one, every cell becomes ``base_oid.COL.ROW`` so that a walk returns
    the table column by column, the way SNMP tables are laid out.

    Args:
        base_oid: Table entry OID, e.g. ".2.3.1"
        data: Table rows; each row must have one value per column type
        col_types: Type token per column
        row_start: Index of the first row
        col_start: Index of the first column

    Returns:
        List of rows in row-major order

    Raises:
        ValueError: If a row does not match the number of column types
    """
    rows: List[OidRow] = []
    if len(col_types) == 1:
        for row_id, row in enumerate(data, start=row_start):
            rows.append(set_oid(f"{base_oid}.{row_id}", col_types[0], row[0]))
        return rows

    for row_id, row in enumerate(data, start=row_start):
        if len(row) != len(col_types):
            raise ValueError(
                f"row {row_id} of {base_oid} has {len(row)} values, expected {len(col_types)}"
            )
        for col_id, (type_token, value) in enumerate(zip(col_types, row), start=col_start):
            rows.append(set_oid(f"{base_oid}.{col_id}.{row_id}", type_token, value))
    return rows
