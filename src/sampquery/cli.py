"""Command line front end: query a server once and print the result as JSON."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from typing import Any

from sampquery.config.settings import get_settings
from sampquery.errors import QueryError
from sampquery.logging_config import init_logging
from sampquery.transport.opcodes import MessageKind
from sampquery.transport.payloads import RuleSet
from sampquery.transport.udp import UdpClient, UdpEndpoint

COMMANDS = {
    "info": MessageKind.INFORMATION,
    "rules": MessageKind.RULES,
    "clients": MessageKind.PLAYER_COUNT,
    "players": MessageKind.PLAYERS,
    "random": MessageKind.PSEUDO_RANDOM,
}


def to_jsonable(value: Any) -> Any:
    if isinstance(value, RuleSet):
        return value.as_dict()
    if dataclasses.is_dataclass(value):
        return dataclasses.asdict(value)
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    return value


async def run(client: UdpClient, command: str) -> Any:
    if command == "ping":
        return {"ping_ms": round(await client.ping(), 2)}
    if command == "all":
        info, rules, clients = await asyncio.gather(
            client.info(), client.rules(), client.clients()
        )
        return {"info": to_jsonable(info), "rules": to_jsonable(rules), "clients": to_jsonable(clients)}
    return to_jsonable(await client.query(COMMANDS[command]))


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="sampquery", description="SA-MP server query client")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--timeout", type=float, default=settings.timeout_s)
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("command", choices=sorted([*COMMANDS, "ping", "all"]))
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    init_logging(args.log_level)

    client = UdpClient(UdpEndpoint(args.host, args.port), timeout_s=args.timeout)
    try:
        result = asyncio.run(run(client, args.command))
    except QueryError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
