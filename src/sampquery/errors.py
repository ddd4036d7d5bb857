from __future__ import annotations


class QueryError(Exception):
    pass


class MalformedPacket(QueryError):
    pass


class OpcodeMismatch(QueryError):
    def __init__(self, expected, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"expected opcode {expected.value!r}, got {chr(received)!r} (0x{received:02x})"
        )


class QueryTimeout(QueryError, TimeoutError):
    pass


class TransportError(QueryError):
    pass


class InvalidAddress(QueryError, ValueError):
    pass


class RequestCancelled(QueryError):
    pass
