"""Client for the local EVM inspection service and its trace records."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any

import requests

DEFAULT_HOST = "http://127.0.0.1"
DEFAULT_PORT = 3000

_OMIT_EMPTY = frozenset({"trace_id", "block_number"})


@dataclass
class Trace:
    """One call, delegate call or contract creation inside a transaction."""

    trace_id: str = ""
    block_number: str = ""
    tx_hash: str = ""
    from_addr: str = ""
    to_addr: str = ""
    storage_addr: str = ""
    calldata: str = ""
    value: str = ""
    action: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Trace:
        values = {}
        for f in fields(cls):
            value = data.get(f.name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(f"trace field {f.name!r} must be a string")
            values[f.name] = value
        return cls(**values)

    def to_dict(self) -> dict[str, str]:
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _OMIT_EMPTY and not value:
                continue
            result[f.name] = value
        return result


class EvmInspectClient:
    """HTTP client for the EVM inspection service."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        self.host = host
        self.port = port

    def _request(self, method: str, payload: str = "") -> bytes:
        url = f"{self.host}:{self.port}/{method}"
        print(url)
        response = requests.request(
            "GET",
            url,
            data=payload,
            headers={"accept": "application/json", "content-type": "application/json"},
        )
        return response.content

    def trace_block(self, block_id: str) -> list[Trace]:
        """Fetch every trace of the given block."""
        body = self._request(f"trace_block/{block_id}")
        data = json.loads(body)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError("expected a JSON array of traces")
        traces = []
        for item in data:
            if not isinstance(item, dict):
                raise ValueError("expected trace objects")
            traces.append(Trace.from_dict(item))
        return traces