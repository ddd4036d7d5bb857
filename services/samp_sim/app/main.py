import asyncio
import logging
import os
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from services.samp_sim.app.core.protocol import SimModel, SimPlayer

HTTP_HOST = os.getenv("SIM_HTTP_HOST", "127.0.0.1")
HTTP_PORT = int(os.getenv("SIM_HTTP_PORT", "8000"))

UDP_HOST = os.getenv("SIM_UDP_HOST", "127.0.0.1")
UDP_PORT = int(os.getenv("SIM_UDP_PORT", "7777"))

logger = logging.getLogger("samp_sim")

app = FastAPI(title="SA-MP Query Simulator", version="0.1.0")

MODEL = SimModel()


class FaultsIn(BaseModel):
    delay_ms: int = Field(0, ge=0, le=10000)
    drop_rate: float = Field(0.0, ge=0.0, le=1.0)
    corrupt_rate: float = Field(0.0, ge=0.0, le=1.0)
    wrong_opcode: bool = False
    truncate: bool = False
    duplicate: bool = False


class PlayerIn(BaseModel):
    id: int = Field(..., ge=0, le=255)
    name: str = Field(..., max_length=255)
    score: int = Field(0, ge=-32768, le=32767)
    ping: int = Field(0, ge=0, le=65535)


class ServerIn(BaseModel):
    password: bool | None = None
    max_players: int | None = Field(None, ge=0, le=65535)
    reported_players: int | None = Field(None, ge=0, le=65535)
    name: str | None = None
    gamemode: str | None = None
    language: str | None = None
    rules: list[tuple[str, str]] | None = None
    players: list[PlayerIn] | None = None


def _faults_dict() -> dict:
    f = MODEL.faults
    return {
        "delay_ms": f.delay_ms,
        "drop_rate": f.drop_rate,
        "corrupt_rate": f.corrupt_rate,
        "wrong_opcode": f.wrong_opcode,
        "truncate": f.truncate,
        "duplicate": f.duplicate,
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/status")
def status():
    return {
        "name": MODEL.name,
        "online": MODEL.online,
        "max_players": MODEL.max_players,
        "reset_count": MODEL.reset_count,
        "queries_served": MODEL.queries_served,
        "faults": _faults_dict(),
    }


@app.post("/control/reset")
def reset():
    MODEL.reset()
    return {"status": "reset", "reset_count": MODEL.reset_count}


@app.post("/control/server")
def set_server(s: ServerIn):
    data = s.model_dump(exclude_unset=True)
    players = data.pop("players", None)
    if players is not None:
        ids = [p["id"] for p in players]
        if len(set(ids)) != len(ids):
            raise HTTPException(status_code=409, detail="duplicate player id")
        MODEL.players = [SimPlayer(**p) for p in players]
    if "rules" in data:
        data["rules"] = [tuple(r) for r in data["rules"]]
    for key, value in data.items():
        setattr(MODEL, key, value)
    return {"status": "server_updated", "online": MODEL.online}


@app.post("/control/faults")
def set_faults(f: FaultsIn):
    for key, value in f.model_dump().items():
        setattr(MODEL.faults, key, value)
    return {"status": "faults_updated", "faults": f.model_dump()}


@app.get("/control/faults")
def get_faults():
    return _faults_dict()


class UdpProto(asyncio.DatagramProtocol):
    def __init__(self, model: SimModel = MODEL):
        self.model = model

    def connection_made(self, transport):
        # required: stored transport for later sendto()
        self.transport = transport

    def datagram_received(self, data: bytes, addr):
        loop = asyncio.get_running_loop()
        faults = self.model.faults

        if faults.should_drop():
            return

        resp_pkt = self.model.respond(data)
        if resp_pkt is None:
            logger.debug("ignoring %d byte datagram from %s", len(data), addr)
            return
        resp_pkt = faults.apply(resp_pkt)

        copies = 2 if faults.duplicate else 1
        for _ in range(copies):
            if faults.delay_s > 0:
                loop.call_later(faults.delay_s, self.transport.sendto, resp_pkt, addr)
            else:
                self.transport.sendto(resp_pkt, addr)


@app.on_event("startup")
async def start_udp():
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        lambda: UdpProto(),
        local_addr=(UDP_HOST, UDP_PORT),
    )
    app.state.udp_transport = transport


@app.on_event("shutdown")
async def stop_udp():
    t = getattr(app.state, "udp_transport", None)
    if t:
        t.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=HTTP_HOST,
        port=HTTP_PORT,
        reload=False)
