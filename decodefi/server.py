"""HTTP endpoints for block data and stored EVM traces."""

from __future__ import annotations

import json
import re
from typing import Any, Callable

from flask import Flask, Response

from .alchemy import block_number_request, block_request
from .db import BLOCK_TAG, Block, Database, Direction, Limit
from .evm_inspect import EvmInspectClient

_ADDRESS_ACTIONS = ("call", "delegate_call", "create", "create2")
_CREATE_ACTIONS = frozenset({"create", "create2"})
_DEFAULT_TOP = 20
_CREATE_TOP = 50
_INT_RE = re.compile(r"[+-]?[0-9]+")


def _parse_block_number(text: str) -> int:
    """Parse a decimal block number; anything unparsable counts as 0."""
    if _INT_RE.fullmatch(text) is None:
        return 0
    return int(text)


def _json_response(data: Any, indent: int | None = None) -> Response:
    body = json.dumps(data, indent=indent, ensure_ascii=False)
    return Response(body, status=200, mimetype="application/json")


class HttpServer:
    """Request handlers backed by a node client, a trace store and an inspector."""

    def __init__(
        self,
        alchemy_client: Any,
        database: Database,
        evm_inspect_factory: Callable[[], EvmInspectClient] = EvmInspectClient,
    ) -> None:
        self.alchemy_client = alchemy_client
        self.database = database
        self.evm_inspect_factory = evm_inspect_factory

    def create_app(self) -> Flask:
        """Build a Flask application exposing every handler."""
        app = Flask(__name__)

        def block_number() -> Response:
            return _json_response(self.handle_block_number(), indent=4)

        def block(block_id: str) -> Response:
            return _json_response(self.handle_block(block_id), indent=4)

        def force_trace_block(block_id: str) -> Response:
            return _json_response(self.handle_force_trace_block(block_id), indent=4)

        def block_traces(block_id: str) -> Response:
            return _json_response(self.handle_get_block_traces(block_id))

        def address_traces(address: str) -> Response:
            return _json_response(self.handle_address_traces(address))

        app.add_url_rule("/block_number", "block_number", block_number)
        app.add_url_rule("/block/<block_id>", "block", block)
        app.add_url_rule("/force_trace_block/<block_id>", "force_trace_block", force_trace_block)
        app.add_url_rule("/block_traces/<block_id>", "block_traces", block_traces)
        app.add_url_rule("/address_traces/<address>", "address_traces", address_traces)
        return app

    def handle_block_number(self) -> dict[str, Any] | None:
        resp = self.alchemy_client.block_number(block_number_request())
        return None if resp is None else resp.to_dict()

    def handle_block(self, block_id: str) -> dict[str, Any] | None:
        resp = self.alchemy_client.block(block_request(block_id))
        return None if resp is None else resp.to_dict()

    def handle_force_trace_block(self, block_id: str) -> list[dict[str, str]]:
        """Trace a block now, store its traces and the block, and return the traces."""
        traces = self.evm_inspect_factory().trace_block(block_id)
        number = _parse_block_number(block_id)
        self.database.insert_traces(block_id, traces)
        self.database.insert_block(Block(block_number=number, tag=BLOCK_TAG))
        return [trace.to_dict() for trace in traces]

    def handle_get_block_traces(self, block_id: str) -> list[dict[str, str]] | None:
        """Stored traces of a block without calldata; None when there are none."""
        traces = self.database.get_block_traces(block_id)
        if not traces:
            return None
        for trace in traces:
            trace.calldata = ""
        return [trace.to_dict() for trace in traces]

    def handle_address_traces(self, address: str) -> list[dict[str, str]]:
        """Most frequent counterparties of an address, for each direction and action."""
        result: list[dict[str, str]] = []
        for direction in (Direction.FROM, Direction.TO):
            for action in _ADDRESS_ACTIONS:
                top = _CREATE_TOP if action in _CREATE_ACTIONS else _DEFAULT_TOP
                traces = self.database.get_address_traces(
                    address, action, direction, Limit(top=top, offset=0), None
                )
                result.extend(trace.to_dict() for trace in traces)
        return result