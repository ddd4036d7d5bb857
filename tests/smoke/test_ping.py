import asyncio

from sampquery.transport.opcodes import MessageKind
from sampquery.transport.payloads import ServerInfo
from sampquery.transport.udp import query


def test_module_level_query(sim_endpoint):
    info = asyncio.run(query(MessageKind.INFORMATION, sim_endpoint.host, sim_endpoint.port, timeout_s=1.0))
    assert isinstance(info, ServerInfo)
    assert info.name == "SA-MP Simulator"


def test_ping_reports_milliseconds(sim_udp):
    ms = asyncio.run(sim_udp.ping())
    assert 0 <= ms < 1000
