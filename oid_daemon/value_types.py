"""Value type tokens understood by snmpd's pass_persist parser.

Collectors hand values over as text. Before a row enters the update channel
its value is checked against the pysnmp type that snmpd will encode it as, so
that a collector bug shows up as a skipped batch in the log rather than as a
garbled response on the wire.

There is no 64-bit gauge in the pass_persist protocol. Such values have to be
served as ``string`` and converted by the monitoring system.
"""

from typing import Any, Callable, Dict

from pyasn1.error import PyAsn1Error
from pysnmp.proto import rfc1902


def _integer(cls: Any) -> Callable[[str], Any]:
    def build(value: str) -> Any:
        return cls(int(value.strip()))

    return build


# Type token -> factory that raises on values the type cannot hold
TYPE_FACTORIES: Dict[str, Callable[[str], Any]] = {
    "integer": _integer(rfc1902.Integer32),
    "unsigned": _integer(rfc1902.Unsigned32),
    "gauge": _integer(rfc1902.Gauge32),
    "counter": _integer(rfc1902.Counter32),
    "counter64": _integer(rfc1902.Counter64),
    "timeticks": _integer(rfc1902.TimeTicks),
    "ipaddress": lambda value: rfc1902.IpAddress(value.strip()),
    "objectid": lambda value: rfc1902.ObjectName(value.strip()),
    "octet": rfc1902.OctetString,
    "string": rfc1902.OctetString,
}


def strip_line_terminators(text: str) -> str:
    """Remove embedded newlines and carriage returns from a field."""
    return text.replace("\n", "").replace("\r", "")


def is_known_type(type_token: str) -> bool:
    return type_token in TYPE_FACTORIES


def validate_value(type_token: str, value: str) -> None:
    """Check that value can be encoded as type_token.

    Raises:
        ValueError: If the type is unknown or the value does not fit it
    """
    factory = TYPE_FACTORIES.get(type_token)
    if factory is None:
        raise ValueError(f"unknown value type '{type_token}'")
    try:
        factory(value)
    except (PyAsn1Error, ValueError, TypeError) as e:
        raise ValueError(f"value '{value}' is not a valid {type_token}: {e}") from e
