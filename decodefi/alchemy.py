"""JSON-RPC request and response types for the Alchemy node API."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

JSONRPC_VERSION = "2.0"


def _decode(data: bytes | str) -> dict[str, Any] | None:
    """Parse a JSON document; ``null`` yields None, anything but an object fails."""
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    obj = json.loads(data)
    if obj is None:
        return None
    if not isinstance(obj, dict):
        raise ValueError(f"expected a JSON object, got {type(obj).__name__}")
    return obj


def _get(obj: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = obj.get(key)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"field {key!r} must be {kind.__name__}, got {type(value).__name__}")
    return value


@dataclass
class AlchemyRequest:
    """A JSON-RPC call: a method name and its positional parameters."""

    method: str
    params: tuple[Any, ...] = ()

    def payload(self, request_id: int) -> bytes:
        """Serialise the call with the given request id."""
        body = {
            "id": request_id,
            "jsonrpc": JSONRPC_VERSION,
            "method": self.method,
            "params": list(self.params) if self.params else None,
        }
        return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def block_number_request() -> AlchemyRequest:
    """Request for ``eth_blockNumber``."""
    return AlchemyRequest("eth_blockNumber")


def block_request(number: str) -> AlchemyRequest:
    """Request for ``eth_getBlockByNumber`` without full transaction objects."""
    return AlchemyRequest("eth_getBlockByNumber", (number, False))


@dataclass
class BlockNumberResponse:
    """Reply to ``eth_blockNumber``; ``number`` is the hex-encoded block number."""

    id: int = 0
    jsonrpc: str = ""
    number: str = ""

    @classmethod
    def from_json(cls, data: bytes | str) -> BlockNumberResponse | None:
        obj = _decode(data)
        if obj is None:
            return None
        return cls(
            id=_get(obj, "id", int, 0),
            jsonrpc=_get(obj, "jsonrpc", str, ""),
            number=_get(obj, "result", str, ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "jsonrpc": self.jsonrpc, "result": self.number}


@dataclass
class BlockResponse:
    """Reply to ``eth_getBlockByNumber``: the block hash and its transaction hashes."""

    id: int = 0
    jsonrpc: str = ""
    hash: str = ""
    transactions: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: bytes | str) -> BlockResponse | None:
        obj = _decode(data)
        if obj is None:
            return None
        result = _get(obj, "result", dict, {})
        transactions = _get(result, "transactions", list, [])
        for tx in transactions:
            if not isinstance(tx, str):
                raise ValueError("transactions must be strings")
        return cls(
            id=_get(obj, "id", int, 0),
            jsonrpc=_get(obj, "jsonrpc", str, ""),
            hash=_get(result, "hash", str, ""),
            transactions=list(transactions),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "jsonrpc": self.jsonrpc,
            "result": {"hash": self.hash, "transactions": list(self.transactions)},
        }