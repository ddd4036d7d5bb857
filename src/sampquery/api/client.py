from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

from sampquery.errors import QueryError
from sampquery.transport.opcodes import DEFAULT_PORT
from sampquery.transport.payloads import (
    PlayerRecord,
    PlayerSummary,
    PseudoRandomSample,
    RuleSet,
    ServerInfo,
)
from sampquery.transport.udp import UdpClient, UdpEndpoint

# servers stop answering player list queries above this many players
MAX_LISTABLE_PLAYERS = 100


class TooManyPlayers(QueryError):
    pass


@dataclass(frozen=True)
class ServerSnapshot:
    info: ServerInfo
    rules: RuleSet
    clients: dict[str, PlayerSummary]


class SampQuery:
    """
    Accessors over a cached snapshot of info + rules + client list.
    The snapshot is refetched once it is older than `max_info_age_s`.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = DEFAULT_PORT,
        timeout_s: float = 2.0,
        max_info_age_s: float = 10.0,
    ):
        self._udp = UdpClient(UdpEndpoint(host, port), timeout_s=timeout_s)
        self._max_info_age_s = max_info_age_s
        self._snapshot: ServerSnapshot | None = None
        self._snapshot_at = 0.0

    async def get_server_info(self) -> ServerSnapshot:
        info, rules = await asyncio.gather(self._udp.info(), self._udp.rules())
        if info.players > MAX_LISTABLE_PLAYERS:
            clients: dict[str, PlayerSummary] = {}
        else:
            clients = await self._udp.clients()
        return ServerSnapshot(info=info, rules=rules, clients=clients)

    async def _read_snapshot(self) -> ServerSnapshot:
        now = time.monotonic()
        if self._snapshot is None or now - self._snapshot_at >= self._max_info_age_s:
            self._snapshot = await self.get_server_info()
            self._snapshot_at = now
        return self._snapshot

    async def _read_info(self) -> ServerInfo:
        return (await self._read_snapshot()).info

    async def _read_rule(self, key: str) -> str | None:
        return (await self._read_snapshot()).rules.get(key)

    async def get_server_properties(self) -> dict[str, str]:
        return (await self._read_snapshot()).rules.as_dict()

    async def get_server_online(self) -> int:
        return (await self._read_info()).players

    async def get_server_max_players(self) -> int:
        return (await self._read_info()).max_players

    async def get_server_name(self) -> str:
        return (await self._read_info()).name

    async def get_server_gamemode_name(self) -> str:
        return (await self._read_info()).gamemode

    async def get_server_language(self) -> str:
        return (await self._read_info()).language

    async def get_server_version(self) -> str | None:
        return await self._read_rule("version")

    async def get_server_weather(self) -> str | None:
        return await self._read_rule("weather")

    async def get_server_website(self) -> str | None:
        return await self._read_rule("weburl")

    async def get_server_world_time(self) -> str | None:
        return await self._read_rule("worldtime")

    async def _check_listable(self) -> None:
        online = await self.get_server_online()
        if online > MAX_LISTABLE_PLAYERS:
            raise TooManyPlayers(f"{online} players online, lists are capped at {MAX_LISTABLE_PLAYERS}")

    async def get_server_players(self) -> dict[str, PlayerSummary]:
        await self._check_listable()
        return await self._udp.clients()

    async def get_server_players_detailed(self) -> dict[int, PlayerRecord]:
        await self._check_listable()
        return await self._udp.players()

    async def get_server_ping(self) -> float:
        return await self._udp.ping()

    async def get_pseudo_random(self) -> PseudoRandomSample:
        return await self._udp.pseudo_random()
