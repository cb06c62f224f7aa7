"""CLI wrapper for running the OID daemon as an snmpd pass_persist child.

snmpd.conf::

    pass_persist .1.3.6.1.4.1.8072.9999.9999 /usr/local/bin/snmpd-oid-daemon
"""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from oid_daemon.app_config import DEFAULT_BASE_OID, DEFAULT_LOG_TAG, AppConfig, DaemonSettings
from oid_daemon.app_logger import AppLogger
from oid_daemon.collector_registry import build_registry
from oid_daemon.daemon import OidDaemon
from oid_daemon.errors import ConfigurationError
from oid_daemon.oid_utils import is_valid_oid_str


class DaemonArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on invalid arguments."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> DaemonArgumentParser:
    parser = DaemonArgumentParser(
        prog="snmpd-oid-daemon",
        description="Serve collected system data to snmpd through the pass_persist protocol.",
    )
    parser.add_argument(
        "-b",
        "--base-oid",
        help=f"base OID to operate on (default: {DEFAULT_BASE_OID})",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="enable debug output")
    parser.add_argument(
        "-m",
        "--debug-marker",
        metavar="FILE",
        help="debug logs are enabled or disabled during runtime based on the existence of this file",
    )
    parser.add_argument(
        "-o",
        "--overload-script",
        metavar="FILE",
        help="YAML file to add or overload data gathering functions",
    )
    parser.add_argument("-n", "--no-log", action="store_true", help="disable logging")
    parser.add_argument(
        "-t",
        "--tag",
        help=f"mark every line to be logged with the specified tag (default: {DEFAULT_LOG_TAG})",
    )
    parser.add_argument(
        "-c",
        "--config",
        default="oid_daemon.yaml",
        help="path to the daemon config file (default: oid_daemon.yaml)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.base_oid is not None and not is_valid_oid_str(args.base_oid):
        parser.print_usage(sys.stderr)
        print(f"invalid base OID '{args.base_oid}'!", file=sys.stderr)
        return 1
    if args.tag is not None and not args.tag:
        parser.print_usage(sys.stderr)
        print("log tag is empty!", file=sys.stderr)
        return 1
    if args.overload_script is not None and not args.overload_script:
        parser.print_usage(sys.stderr)
        print("overload-script is empty!", file=sys.stderr)
        return 1

    try:
        config = AppConfig(args.config)
        settings = DaemonSettings.from_config(
            config, base_oid=args.base_oid, overload_script=args.overload_script
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    AppLogger.configure(
        config,
        debug=True if args.debug else None,
        debug_marker=args.debug_marker,
        enabled=False if args.no_log else None,
        tag=args.tag,
    )
    logger = AppLogger.get(__name__)

    try:
        registry = build_registry(settings.overload_script)
    except ConfigurationError as e:
        logger.error(f"invalid collector override: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    daemon = OidDaemon(settings, registry)
    return daemon.run()


if __name__ == "__main__":
    sys.exit(main())
