"""Trace and block storage over a DB-API connection."""

from __future__ import annotations

import enum
from contextlib import closing
from dataclasses import dataclass
from typing import Any, Sequence

from .evm_inspect import Trace

BLOCK_TAG = 1

TRACES_SCHEMA = (
    "trace_id",
    "tx_hash",
    "block_number",
    "from_addr",
    "to_addr",
    "storage_addr",
    "value",
    "action",
    "calldata",
)

_PLACEHOLDERS = {
    "dollar": lambda n: f"${n}",
    "numeric": lambda n: f":{n}",
    "qmark": lambda n: "?",
    "format": lambda n: "%s",
}


@dataclass
class DbCreds:
    """Credentials for a PostgreSQL database."""

    user: str
    password: str
    db_name: str

    def dsn(self) -> str:
        return f"user={self.user} password={self.password} dbname={self.db_name} sslmode=disable"


class Direction(enum.IntEnum):
    """Which side of a trace the queried address is on."""

    FROM = 0
    TO = 1


@dataclass
class Limit:
    top: int = 100
    offset: int = 0


@dataclass
class BlockRange:
    block_from: int = 0
    block_to: int = 1 << 60


@dataclass
class Block:
    block_number: int
    tag: int = BLOCK_TAG


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class Database:
    """Stores blocks and traces; ``paramstyle`` selects the placeholder syntax."""

    def __init__(self, connection: Any, paramstyle: str = "dollar") -> None:
        if paramstyle not in _PLACEHOLDERS:
            raise ValueError(f"unsupported paramstyle: {paramstyle!r}")
        self._conn = connection
        self._placeholder = _PLACEHOLDERS[paramstyle]

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()

    def _execute(self, query: str, args: Sequence[Any]) -> None:
        with closing(self._conn.cursor()) as cur:
            cur.execute(query, tuple(args))
        self._conn.commit()

    def _fetch(self, query: str, args: Sequence[Any]) -> list[tuple]:
        with closing(self._conn.cursor()) as cur:
            cur.execute(query, tuple(args))
            return list(cur.fetchall())

    def insert_block(self, block: Block) -> None:
        p = self._placeholder
        query = (
            f"INSERT INTO blocks(block_number, tag) VALUES({p(1)}, {p(2)}) "
            "ON CONFLICT (block_number) DO UPDATE SET "
            "block_number=EXCLUDED.block_number, tag=EXCLUDED.tag"
        )
        self._execute(query, (block.block_number, block.tag))

    def insert_traces(self, block_number: str, traces: Sequence[Trace]) -> None:
        """Upsert traces of one block; trace ids are the index in hex plus the tx hash."""
        if not traces:
            raise ValueError("no traces to insert")
        width = len(TRACES_SCHEMA)
        schema = "(" + ", ".join(TRACES_SCHEMA) + ")"
        update = ", ".join(f"{col}=EXCLUDED.{col}" for col in TRACES_SCHEMA)
        rows = ", ".join(
            "(" + ", ".join(self._placeholder(r * width + i + 1) for i in range(width)) + ")"
            for r in range(len(traces))
        )
        args: list[Any] = []
        for index, trace in enumerate(traces):
            args.extend(
                (
                    f"{index:08x}{trace.tx_hash}",
                    trace.tx_hash,
                    block_number,
                    trace.from_addr,
                    trace.to_addr,
                    trace.storage_addr,
                    trace.value,
                    trace.action,
                    trace.calldata,
                )
            )
        query = (
            f"INSERT INTO TRACES {schema} VALUES {rows} "
            f"ON CONFLICT (trace_id) DO UPDATE SET {update}"
        )
        self._execute(query, args)

    def get_block_traces(self, block_number: str) -> list[Trace]:
        query = (
            f"SELECT {', '.join(TRACES_SCHEMA)} FROM traces "
            f"WHERE block_number = {self._placeholder(1)}"
        )
        return [
            Trace(**{col: _text(value) for col, value in zip(TRACES_SCHEMA, row)})
            for row in self._fetch(query, (block_number,))
        ]

    def get_address_traces(
        self,
        address: str,
        action: str,
        direction: Direction,
        limit: Limit | None = None,
        block_range: BlockRange | None = None,
    ) -> list[Trace]:
        """Counterparties of ``address`` for one action, most frequent first."""
        delegate = action == "delegate_call"
        from_col = "storage_addr" if delegate else "from_addr"
        to_col = "to_addr"
        filter_col, group_col = from_col, to_col
        if direction == Direction.TO:
            filter_col, group_col = group_col, filter_col

        limit = limit or Limit()
        block_range = block_range or BlockRange()
        p = self._placeholder
        query = (
            f"SELECT {group_col}, count(*) c FROM traces "
            f"WHERE {filter_col} = {p(1)} AND action = {p(2)} "
            f"AND block_number >= {p(3)} AND block_number <= {p(4)} "
            f"GROUP BY {group_col} ORDER BY c DESC "
            f"LIMIT {p(5)} OFFSET {p(6)}"
        )
        rows = self._fetch(
            query,
            (address, action, block_range.block_from, block_range.block_to, limit.top, limit.offset),
        )

        traces = []
        for group_value, _count in rows:
            other = _text(group_value)
            trace = Trace(action=action)
            if direction == Direction.TO:
                trace.to_addr = address
                source = other
            else:
                trace.to_addr = other
                source = address
            if delegate:
                trace.storage_addr = source
            else:
                trace.from_addr = source
            traces.append(trace)
        return traces