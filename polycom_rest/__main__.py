"""Command line front-end for the Polycom REST client."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from .config import load_config
from .exceptions import PolycomAPIError
from .manager import PolycomPhoneManager

_LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="polycom_rest", description=__doc__)
    parser.add_argument("--config", help="YAML file with connection settings")
    parser.add_argument(
        "--host",
        dest="hosts",
        action="append",
        required=True,
        help="Phone IPv4 address (repeat for several phones)",
    )
    parser.add_argument("--retries", type=int, help="Attempts per request (1-100)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    get_cmd = commands.add_parser("get", help="Read configuration parameters")
    get_cmd.add_argument("names", nargs="+")

    set_cmd = commands.add_parser("set", help="Write one configuration parameter")
    set_cmd.add_argument("name")
    set_cmd.add_argument("value", nargs="?", default="")

    status_cmd = commands.add_parser("call-status", help="Show active calls")
    status_cmd.add_argument("--v2", action="store_true", help="Use the v2 endpoint")

    commands.add_parser("device-info", help="Show model, firmware and uptime")
    commands.add_parser("network-info", help="Show network configuration")
    commands.add_parser("line-info", help="Show line registrations")

    dial_cmd = commands.add_parser("dial", help="Place a call")
    dial_cmd.add_argument("destination")
    dial_cmd.add_argument("--line", type=int, default=1)

    end_cmd = commands.add_parser("end-call", help="End the current call")
    end_cmd.add_argument("--handle")
    end_cmd.add_argument(
        "--force",
        action="store_true",
        help="Send endCall even on firmware known to hang the API",
    )

    commands.add_parser("reboot", help="Reboot once idle")
    return parser


async def _run(args: argparse.Namespace) -> list[Any]:
    config = load_config(args.config, retries=args.retries, timeout=args.timeout)
    async with PolycomPhoneManager(config=config) as manager:
        hosts = args.hosts
        if args.command == "get":
            return await manager.get_parameters(hosts, args.names)
        if args.command == "set":
            return await manager.set_parameter(hosts, args.name, args.value)
        if args.command == "call-status":
            if args.v2:
                return await manager.get_call_status_v2(hosts)
            return await manager.get_call_status(hosts)
        if args.command == "device-info":
            return await manager.get_device_info(hosts)
        if args.command == "network-info":
            return await manager.get_network_info(hosts)
        if args.command == "line-info":
            return await manager.get_line_info(hosts)
        if args.command == "dial":
            return await manager.dial(hosts, args.destination, line=args.line)
        if args.command == "end-call":
            return await manager.end_call(hosts, args.handle, force=args.force)
        if args.command == "reboot":
            return await manager.reboot(hosts)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        records = asyncio.run(_run(args))
    except PolycomAPIError as err:
        _LOGGER.error("%s", err)
        return 2

    print(json.dumps([record.to_dict() for record in records], indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
