from __future__ import annotations
from dataclasses import dataclass, field
import random
import struct

from sampquery.errors import MalformedPacket
from sampquery.transport.codec import parse_header
from sampquery.transport.opcodes import HEADER_SIZE, MessageKind
from .faults import FaultConfig


@dataclass
class SimPlayer:
    id: int
    name: str
    score: int = 0
    ping: int = 0


def _long_str(s: str) -> bytes:
    raw = s.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def _short_str(s: str) -> bytes:
    raw = s.encode("utf-8")
    if len(raw) > 255:
        raise ValueError(f"string longer than 255 bytes: {s!r}")
    return struct.pack("<B", len(raw)) + raw


def _default_rules() -> list[tuple[str, str]]:
    return [
        ("lagcomp", "On"),
        ("mapname", "San Andreas"),
        ("version", "0.3.7-R2"),
        ("weather", "10"),
        ("weburl", "www.sa-mp.com"),
        ("worldtime", "12:00"),
    ]


@dataclass
class SimModel:
    """Server state the simulator answers queries from."""
    password: bool = False
    max_players: int = 50
    name: str = "SA-MP Simulator"
    gamemode: str = "Freeroam"
    language: str = "English"
    rules: list[tuple[str, str]] = field(default_factory=_default_rules)
    players: list[SimPlayer] = field(default_factory=list)
    # overrides len(players) in the info response when set
    reported_players: int | None = None
    reset_count: int = 0
    queries_served: int = 0
    faults: FaultConfig = field(default_factory=FaultConfig)

    def reset(self) -> None:
        fresh = SimModel(reset_count=self.reset_count + 1)
        self.__dict__.update(fresh.__dict__)

    @property
    def online(self) -> int:
        if self.reported_players is not None:
            return self.reported_players
        return len(self.players)

    def information(self) -> bytes:
        return (
            struct.pack("<BHH", int(self.password), self.online, self.max_players)
            + _long_str(self.name)
            + _long_str(self.gamemode)
            + _long_str(self.language)
        )

    def rule_list(self) -> bytes:
        body = b"".join(_short_str(k) + _short_str(v) for k, v in self.rules)
        return struct.pack("<H", len(self.rules)) + body

    def client_list(self) -> bytes:
        body = b"".join(_short_str(p.name) + struct.pack("<i", p.score) for p in self.players)
        return struct.pack("<BB", len(self.players), 0) + body

    def detailed_players(self) -> bytes:
        body = b"".join(
            struct.pack("<B", p.id) + _short_str(p.name) + struct.pack("<iI", p.score, p.ping)
            for p in self.players
        )
        return struct.pack("<H", len(self.players)) + body

    def pseudo_random(self) -> bytes:
        return bytes(random.randrange(256) for _ in range(4))

    def respond(self, request: bytes) -> bytes | None:
        """Answer one request datagram; None means the request is ignored."""
        try:
            header = parse_header(request)
        except MalformedPacket:
            return None

        kind = MessageKind.from_opcode(header.opcode)
        builders = {
            MessageKind.INFORMATION: self.information,
            MessageKind.RULES: self.rule_list,
            MessageKind.PLAYER_COUNT: self.client_list,
            MessageKind.PLAYERS: self.detailed_players,
            MessageKind.PSEUDO_RANDOM: self.pseudo_random,
        }
        builder = builders.get(kind)
        if builder is None:
            return None

        self.queries_served += 1
        # responses echo the request header
        return request[:HEADER_SIZE] + builder()
