import asyncio
import threading

import pytest
from fastapi.testclient import TestClient

from sampquery.api.sim_control import SimApiClient
from sampquery.transport.udp import UdpClient, UdpEndpoint
from services.samp_sim.app.main import MODEL, UdpProto, app


class SimUdpThread(threading.Thread):
    """
    Runs the simulator's UDP responder on its own event loop so tests can
    drive the client with asyncio.run() from the main thread.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0):
        super().__init__(name="samp-sim-udp", daemon=True)
        self._host = host
        self._port = port
        self._ready = threading.Event()
        self.loop: asyncio.AbstractEventLoop | None = None
        self.address: tuple[str, int] | None = None
        self.error: BaseException | None = None

    def run(self):
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        try:
            transport, _ = self.loop.run_until_complete(
                self.loop.create_datagram_endpoint(
                    lambda: UdpProto(MODEL),
                    local_addr=(self._host, self._port),
                )
            )
        except BaseException as e:
            self.error = e
            self._ready.set()
            return
        self.address = transport.get_extra_info("sockname")[:2]
        self._ready.set()
        try:
            self.loop.run_forever()
        finally:
            transport.close()
            self.loop.run_until_complete(asyncio.sleep(0))
            self.loop.close()

    def wait_ready(self, timeout_s: float = 5.0) -> None:
        if not self._ready.wait(timeout_s):
            raise RuntimeError("simulator UDP endpoint did not start")
        if self.error is not None:
            raise RuntimeError(f"simulator UDP endpoint failed: {self.error!r}")

    def stop(self) -> None:
        if self.loop is not None and self.loop.is_running():
            self.loop.call_soon_threadsafe(self.loop.stop)
        self.join(timeout=5)


@pytest.fixture(scope="session")
def simulator():
    t = SimUdpThread()
    t.start()
    t.wait_ready()
    try:
        yield t
    finally:
        t.stop()


@pytest.fixture
def sim_endpoint(simulator):
    host, port = simulator.address
    return UdpEndpoint(host, port)


@pytest.fixture
def sim_api():
    client = SimApiClient("http://testserver", client=TestClient(app))
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def sim_udp(sim_endpoint):
    return UdpClient(sim_endpoint, timeout_s=1.0)


@pytest.fixture(autouse=True)
def reset_simulator():
    """
    Ensure each test starts from a clean simulator state.
    """
    MODEL.reset()
    yield
    MODEL.reset()
