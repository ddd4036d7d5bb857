from __future__ import annotations

import ipaddress
import logging
import struct
from dataclasses import dataclass
from typing import Any, Callable

from sampquery.errors import InvalidAddress, MalformedPacket, OpcodeMismatch
from sampquery.transport.opcodes import MAGIC, MessageKind
from sampquery.transport.payloads import (
    PlayerRecord,
    PlayerSummary,
    PseudoRandomSample,
    RuleSet,
    ServerInfo,
)

logger = logging.getLogger(__name__)

# header: MAGIC(4), ADDR(4), PORT(2, little-endian), OPCODE(1)
_HDR_FMT = "<4s4sHB"
_HDR_SIZE = struct.calcsize(_HDR_FMT)

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_I16 = struct.Struct("<h")


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int

    def packed(self) -> tuple[bytes, int]:
        try:
            addr = ipaddress.IPv4Address(self.host)
        except ValueError as e:
            raise InvalidAddress(f"not a dotted-quad IPv4 address: {self.host!r}") from e
        if not (0 <= self.port <= 0xFFFF):
            raise InvalidAddress(f"port out of range: {self.port}")
        return addr.packed, self.port


@dataclass(frozen=True)
class Header:
    address: str
    port: int
    opcode: int


def encode_request(endpoint: Endpoint, kind: MessageKind, command: str | None = None) -> bytes:
    addr, port = endpoint.packed()
    packet = struct.pack(_HDR_FMT, MAGIC, addr, port, kind.opcode)
    if kind is MessageKind.RCON_COMMAND and command:
        packet += command.encode("utf-8")
    return packet


def parse_header(data: bytes) -> Header:
    if len(data) < _HDR_SIZE:
        raise MalformedPacket(f"packet too short: {len(data)} bytes")
    magic, addr, port, opcode = struct.unpack_from(_HDR_FMT, data)
    if magic != MAGIC:
        raise MalformedPacket(f"bad magic: {magic!r}")
    return Header(address=str(ipaddress.IPv4Address(addr)), port=port, opcode=opcode)


class PacketReader:
    """
    Cursor over a response payload. Every read is bounds-checked and
    raises MalformedPacket instead of returning short data.
    """

    def __init__(self, data: bytes, offset: int = 0):
        self._buf = memoryview(data)
        self._offset = offset

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._offset

    def _take(self, n: int) -> memoryview:
        if n < 0 or n > self.remaining:
            raise MalformedPacket(
                f"read of {n} bytes at offset {self._offset} overruns {len(self._buf)} byte packet"
            )
        chunk = self._buf[self._offset:self._offset + n]
        self._offset += n
        return chunk

    def u8(self) -> int:
        return _U8.unpack(self._take(1))[0]

    def u16(self) -> int:
        return _U16.unpack(self._take(2))[0]

    def i16(self) -> int:
        return _I16.unpack(self._take(2))[0]

    def skip(self, n: int) -> None:
        self._take(n)

    def raw(self, n: int) -> bytes:
        return self._take(n).tobytes()

    def text(self, n: int) -> str:
        # servers in the wild send legacy code pages; never fail on them
        return self._take(n).tobytes().decode("utf-8", errors="replace")

    def short_text(self) -> str:
        return self.text(self.u8())

    def long_text(self) -> str:
        # 4-byte length block, only the low 16 bits carry the length
        length = self.u16()
        self.skip(2)
        return self.text(length)


def decode_information(r: PacketReader) -> ServerInfo:
    password = bool(r.u8())
    players = r.u16()
    max_players = r.u16()
    name = r.long_text()
    gamemode = r.long_text()
    language = r.long_text()
    return ServerInfo(
        password=password,
        players=players,
        max_players=max_players,
        name=name,
        gamemode=gamemode,
        language=language,
    )


def decode_rules(r: PacketReader) -> RuleSet:
    count = r.u16()
    pairs = []
    for _ in range(count):
        key = r.short_text()
        value = r.short_text()
        pairs.append((key, value))
    return RuleSet(declared_count=count, pairs=tuple(pairs))


def decode_player_count(r: PacketReader) -> dict[str, PlayerSummary]:
    count = r.u8()
    reserved = r.u8()
    if reserved:
        logger.warning("reserved byte in client list count is 0x%02x, expected 0", reserved)

    players: dict[str, PlayerSummary] = {}
    for _ in range(count):
        name = r.short_text()
        score = r.i16()
        r.skip(2)
        players[name] = PlayerSummary(name=name, score=score)
    return players


def decode_players(r: PacketReader) -> dict[int, PlayerRecord]:
    count = r.u16()
    players: dict[int, PlayerRecord] = {}
    for _ in range(count):
        pid = r.u8()
        name = r.short_text()
        score = r.i16()
        r.skip(2)
        ping = r.u16()
        r.skip(2)
        players[pid] = PlayerRecord(id=pid, name=name, score=score, ping=ping)
    return players


def decode_pseudo_random(r: PacketReader) -> PseudoRandomSample:
    return PseudoRandomSample(values=(r.u8(), r.u8(), r.u8(), r.u8()))


def decode_rcon(r: PacketReader) -> bytes:
    return r.raw(r.remaining)


DECODERS: dict[MessageKind, Callable[[PacketReader], Any]] = {
    MessageKind.INFORMATION: decode_information,
    MessageKind.RULES: decode_rules,
    MessageKind.PLAYER_COUNT: decode_player_count,
    MessageKind.PLAYERS: decode_players,
    MessageKind.PSEUDO_RANDOM: decode_pseudo_random,
    MessageKind.RCON_COMMAND: decode_rcon,
}
assert set(DECODERS) == set(MessageKind)


def decode_response(kind: MessageKind, data: bytes) -> Any:
    header = parse_header(data)
    if header.opcode != kind.opcode:
        raise OpcodeMismatch(kind, header.opcode)
    return DECODERS[kind](PacketReader(data, offset=_HDR_SIZE))
