from __future__ import annotations
from dataclasses import dataclass
import random


@dataclass
class FaultConfig:
    delay_ms: int = 0           # add delay before responding
    drop_rate: float = 0.0      # 0.0..1.0
    corrupt_rate: float = 0.0   # 0.0..1.0, breaks the magic
    wrong_opcode: bool = False  # answer with a different opcode
    truncate: bool = False      # cut the last byte off every response
    duplicate: bool = False     # send every response twice

    @property
    def delay_s(self) -> float:
        return self.delay_ms / 1000.0

    def should_drop(self) -> bool:
        return self.drop_rate > 0 and random.random() < self.drop_rate

    def should_corrupt(self) -> bool:
        return self.corrupt_rate > 0 and random.random() < self.corrupt_rate

    def apply(self, packet: bytes) -> bytes:
        b = bytearray(packet)
        if self.should_corrupt():
            b[0] ^= 0xFF
        if self.wrong_opcode:
            b[10] = ord("p") if b[10] != ord("p") else ord("i")
        if self.truncate:
            del b[-1:]
        return bytes(b)
