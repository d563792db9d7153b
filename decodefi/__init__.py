"""EVM block and call-trace inspection: JSON-RPC payloads, a trace store, a Flask API and a shell."""

__version__ = "0.1.0"
__all__ = ["alchemy", "evm_inspect", "db", "server", "chisel"]