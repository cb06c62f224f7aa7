"""snmpd pass_persist daemon serving custom OIDs from periodic collectors."""

from oid_daemon.collector_api import CollectorBatch, OidRow, set_oid, set_oid_list
from oid_daemon.collector_registry import CollectorRegistry, register_collector
from oid_daemon.daemon import OidDaemon
from oid_daemon.oid_cache import OidCache
from oid_daemon.protocol_engine import ProtocolEngine
from oid_daemon.scheduler import Scheduler
from oid_daemon.update_channel import UpdateChannel

__version__ = "1.0.0"

__all__ = [
    "CollectorBatch",
    "CollectorRegistry",
    "OidCache",
    "OidDaemon",
    "OidRow",
    "ProtocolEngine",
    "Scheduler",
    "UpdateChannel",
    "register_collector",
    "set_oid",
    "set_oid_list",
]
