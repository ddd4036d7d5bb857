from __future__ import annotations

from enum import Enum

MAGIC = b"SAMP"

# header: MAGIC(4), ADDR(4), PORT(2), OPCODE(1) => total 11 bytes
HEADER_SIZE = 11

DEFAULT_PORT = 7777
MAX_DATAGRAM = 65535


class MessageKind(str, Enum):
    INFORMATION = "i"
    RULES = "r"
    PLAYER_COUNT = "c"
    PLAYERS = "d"
    PSEUDO_RANDOM = "p"
    RCON_COMMAND = "x"

    @property
    def opcode(self) -> int:
        return ord(self.value)

    @classmethod
    def from_opcode(cls, opcode: int) -> MessageKind | None:
        try:
            return cls(chr(opcode))
        except ValueError:
            return None


# RCON is reserved; the query flow never sends it
QUERY_KINDS = frozenset(k for k in MessageKind if k is not MessageKind.RCON_COMMAND)
