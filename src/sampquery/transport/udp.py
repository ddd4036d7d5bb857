from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sampquery.errors import (
    MalformedPacket,
    OpcodeMismatch,
    QueryError,
    QueryTimeout,
    RequestCancelled,
    TransportError,
)
from sampquery.transport.codec import Endpoint, decode_response, encode_request
from sampquery.transport.opcodes import DEFAULT_PORT, QUERY_KINDS, MessageKind
from sampquery.transport.payloads import (
    PlayerRecord,
    PlayerSummary,
    PseudoRandomSample,
    RuleSet,
    ServerInfo,
)

logger = logging.getLogger(__name__)

UdpEndpoint = Endpoint


class _SessionProtocol(asyncio.DatagramProtocol):
    def __init__(self, waiter: asyncio.Future):
        self._waiter = waiter
        self.transport: asyncio.DatagramTransport | None = None

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data: bytes, addr):
        if self._waiter.done():
            logger.debug("dropping extra %d byte datagram from %s", len(data), addr)
            return
        self._waiter.set_result(data)

    def error_received(self, exc: Exception):
        # e.g. ICMP port unreachable on a connected socket
        if self._waiter.done():
            return
        err = TransportError(str(exc))
        err.__cause__ = exc
        self._waiter.set_exception(err)

    def connection_lost(self, exc: Exception | None):
        if self._waiter.done():
            return
        err = TransportError(str(exc) if exc else "socket closed before a response arrived")
        err.__cause__ = exc
        self._waiter.set_exception(err)


class UdpSession:
    """
    One UDP socket connected to one server, owned by one request.
    The first inbound datagram resolves `receive()`; later ones are dropped.
    """

    def __init__(self, transport: asyncio.DatagramTransport, waiter: asyncio.Future):
        self._transport = transport
        self._waiter = waiter

    @classmethod
    async def open(cls, endpoint: Endpoint) -> UdpSession:
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _SessionProtocol(waiter),
                remote_addr=(endpoint.host, endpoint.port),
            )
        except OSError as e:
            raise TransportError(f"cannot open socket to {endpoint.host}:{endpoint.port}: {e}") from e
        return cls(transport, waiter)

    @property
    def closed(self) -> bool:
        return self._transport.is_closing()

    def send(self, data: bytes) -> None:
        try:
            self._transport.sendto(data)
        except OSError as e:
            raise TransportError(f"send failed: {e}") from e

    def receive(self) -> asyncio.Future:
        return self._waiter

    def close(self) -> None:
        if not self._waiter.done():
            self._waiter.cancel()
        if not self._transport.is_closing():
            self._transport.close()


class RequestState(str, Enum):
    IDLE = "IDLE"
    SENT = "SENT"
    RESOLVED = "RESOLVED"
    FAILED_TIMEOUT = "FAILED_TIMEOUT"
    FAILED_MISMATCH = "FAILED_MISMATCH"
    FAILED_MALFORMED = "FAILED_MALFORMED"
    FAILED_TRANSPORT = "FAILED_TRANSPORT"
    CANCELLED = "CANCELLED"

    @property
    def terminal(self) -> bool:
        return self not in (RequestState.IDLE, RequestState.SENT)


_FAILURE_STATES: dict[type, RequestState] = {
    QueryTimeout: RequestState.FAILED_TIMEOUT,
    OpcodeMismatch: RequestState.FAILED_MISMATCH,
    MalformedPacket: RequestState.FAILED_MALFORMED,
    TransportError: RequestState.FAILED_TRANSPORT,
    RequestCancelled: RequestState.CANCELLED,
}


@dataclass
class OutstandingRequest:
    kind: MessageKind
    created_at: float
    deadline: float | None = None
    state: RequestState = RequestState.IDLE
    error: QueryError | None = None
    result: Any = field(default=None, repr=False)

    def mark_sent(self, deadline: float) -> None:
        if self.state != RequestState.IDLE:
            raise ValueError(f"Invalid transition: {self.state} -> SENT")
        self.deadline = deadline
        self.state = RequestState.SENT

    def resolve(self, result: Any) -> None:
        if self.state != RequestState.SENT:
            raise ValueError(f"Invalid transition: {self.state} -> RESOLVED")
        self.result = result
        self.state = RequestState.RESOLVED

    def fail(self, error: QueryError) -> None:
        if self.state.terminal:
            raise ValueError(f"Invalid transition: {self.state} -> failed")
        self.error = error
        self.state = _FAILURE_STATES[type(error)]


class UdpClient:
    def __init__(self, endpoint: Endpoint, timeout_s: float = 2.0):
        self._endpoint = endpoint
        self._timeout_s = timeout_s
        self.last_request: OutstandingRequest | None = None

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    async def request_once(self, kind: MessageKind, command: str | None = None) -> Any:
        pkt = encode_request(self._endpoint, kind, command)

        loop = asyncio.get_running_loop()
        req = OutstandingRequest(kind=kind, created_at=loop.time())
        self.last_request = req

        session = None
        try:
            try:
                session = await UdpSession.open(self._endpoint)
                session.send(pkt)
            except TransportError as e:
                req.fail(e)
                raise

            req.mark_sent(loop.time() + self._timeout_s)
            logger.debug("sent %r query to %s:%d", kind.value, self._endpoint.host, self._endpoint.port)

            try:
                data = await asyncio.wait_for(session.receive(), self._timeout_s)
            except asyncio.TimeoutError:
                err = QueryTimeout(
                    f"no response from {self._endpoint.host}:{self._endpoint.port} within {self._timeout_s}s"
                )
                req.fail(err)
                raise err from None
            except TransportError as e:
                req.fail(e)
                raise

            logger.debug("received %d bytes for %r query", len(data), kind.value)
            try:
                result = decode_response(kind, data)
            except (OpcodeMismatch, MalformedPacket) as e:
                req.fail(e)
                raise
            req.resolve(result)
            return result
        except asyncio.CancelledError:
            if not req.state.terminal:
                req.fail(RequestCancelled(f"{kind.value!r} query cancelled"))
            raise
        finally:
            if session is not None:
                session.close()

    async def query(self, kind: MessageKind) -> Any:
        if kind not in QUERY_KINDS:
            raise ValueError(f"{kind.name} is not a query kind")
        return await self.request_once(kind)

    # convenience helpers
    async def info(self) -> ServerInfo:
        return await self.query(MessageKind.INFORMATION)

    async def rules(self) -> RuleSet:
        return await self.query(MessageKind.RULES)

    async def clients(self) -> dict[str, PlayerSummary]:
        return await self.query(MessageKind.PLAYER_COUNT)

    async def players(self) -> dict[int, PlayerRecord]:
        return await self.query(MessageKind.PLAYERS)

    async def pseudo_random(self) -> PseudoRandomSample:
        return await self.query(MessageKind.PSEUDO_RANDOM)

    async def ping(self) -> float:
        """Round-trip time of an information query, in milliseconds."""
        start = time.perf_counter()
        await self.query(MessageKind.INFORMATION)
        return (time.perf_counter() - start) * 1000.0


async def query(
    kind: MessageKind,
    host: str = "127.0.0.1",
    port: int = DEFAULT_PORT,
    timeout_s: float = 2.0,
) -> Any:
    return await UdpClient(UdpEndpoint(host, port), timeout_s=timeout_s).query(kind)
