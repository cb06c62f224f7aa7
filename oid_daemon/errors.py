"""Exception types raised by the OID daemon."""


class OidDaemonError(Exception):
    """Base class for all daemon errors."""

    pass


class ConfigurationError(OidDaemonError):
    """Raised for invalid command line arguments, config or override files."""

    pass


class CollectorError(OidDaemonError):
    """Raised when a collector fails or returns malformed rows."""

    def __init__(self, collector: str, message: str) -> None:
        super().__init__(f"collector '{collector}': {message}")
        self.collector = collector


class ProtocolFramingError(OidDaemonError):
    """Raised for request input that does not fit the pass_persist framing."""

    pass


class FrontendClosedError(OidDaemonError):
    """Raised when the request front-end reports EOF or a read failure."""

    pass


class ChannelClosedError(OidDaemonError):
    """Raised to a producer when the consuming side of the channel is gone."""

    pass
