from __future__ import annotations

from typing import Any

import httpx


class SimApiClient:
    """HTTP control client for the query-server simulator in services/samp_sim."""

    def __init__(self, base_url: str, timeout_s: float = 2.0, client: httpx.Client | None = None):
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout_s)

    def close(self) -> None:
        self._client.close()

    def health(self) -> dict:
        r = self._client.get("/health")
        r.raise_for_status()
        return r.json()

    def status(self) -> dict:
        r = self._client.get("/status")
        r.raise_for_status()
        return r.json()

    def reset(self) -> dict:
        r = self._client.post("/control/reset")
        r.raise_for_status()
        return r.json()

    def set_server(self, **fields: Any) -> dict:
        r = self._client.post("/control/server", json=fields)
        r.raise_for_status()
        return r.json()

    def set_faults(
        self,
        *,
        delay_ms: int = 0,
        drop_rate: float = 0.0,
        corrupt_rate: float = 0.0,
        wrong_opcode: bool = False,
        truncate: bool = False,
        duplicate: bool = False,
    ) -> dict:
        r = self._client.post("/control/faults", json={
            "delay_ms": delay_ms,
            "drop_rate": drop_rate,
            "corrupt_rate": corrupt_rate,
            "wrong_opcode": wrong_opcode,
            "truncate": truncate,
            "duplicate": duplicate,
        })
        r.raise_for_status()
        return r.json()
