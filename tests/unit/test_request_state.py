import pytest

from sampquery.errors import MalformedPacket, OpcodeMismatch, QueryTimeout, RequestCancelled, TransportError
from sampquery.transport.opcodes import MessageKind
from sampquery.transport.udp import OutstandingRequest, RequestState


def sent_request() -> OutstandingRequest:
    req = OutstandingRequest(kind=MessageKind.INFORMATION, created_at=1.0)
    req.mark_sent(3.0)
    return req


def test_sent_then_resolved():
    req = sent_request()
    assert req.state == RequestState.SENT
    assert req.deadline == 3.0
    req.resolve("payload")
    assert req.state == RequestState.RESOLVED
    assert req.result == "payload"


@pytest.mark.parametrize("error,state", [
    (QueryTimeout("t"), RequestState.FAILED_TIMEOUT),
    (OpcodeMismatch(MessageKind.INFORMATION, ord("r")), RequestState.FAILED_MISMATCH),
    (MalformedPacket("m"), RequestState.FAILED_MALFORMED),
    (TransportError("x"), RequestState.FAILED_TRANSPORT),
    (RequestCancelled("c"), RequestState.CANCELLED),
])
def test_failures_map_to_terminal_states(error, state):
    req = sent_request()
    req.fail(error)
    assert req.state == state
    assert req.state.terminal
    assert req.error is error


def test_only_one_terminal_transition():
    req = sent_request()
    req.resolve("first")
    with pytest.raises(ValueError):
        req.fail(QueryTimeout("late"))
    with pytest.raises(ValueError):
        req.resolve("again")
    assert req.result == "first"


def test_cannot_resolve_before_sent():
    req = OutstandingRequest(kind=MessageKind.RULES, created_at=0.0)
    with pytest.raises(ValueError):
        req.resolve("x")


def test_transport_failure_allowed_before_sent():
    req = OutstandingRequest(kind=MessageKind.RULES, created_at=0.0)
    req.fail(TransportError("no socket"))
    assert req.state == RequestState.FAILED_TRANSPORT
