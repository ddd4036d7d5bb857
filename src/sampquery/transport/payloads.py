from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ServerInfo:
    password: bool
    players: int
    max_players: int
    name: str
    gamemode: str
    language: str


@dataclass(frozen=True)
class RuleSet:
    """
    Rules in wire order. The protocol does not forbid repeated keys,
    so `pairs` keeps every one of them and `as_dict()` lets the last
    occurrence of a key win.
    """
    declared_count: int
    pairs: tuple[tuple[str, str], ...]

    def as_dict(self) -> dict[str, str]:
        return dict(self.pairs)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.as_dict().get(key, default)

    def __len__(self) -> int:
        return len(self.pairs)


@dataclass(frozen=True)
class PlayerSummary:
    name: str
    score: int


@dataclass(frozen=True)
class PlayerRecord:
    id: int
    name: str
    score: int
    ping: int


@dataclass(frozen=True)
class PseudoRandomSample:
    values: tuple[int, int, int, int]
