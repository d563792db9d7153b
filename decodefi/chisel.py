"""Interactive shell for querying block data and traces."""

from __future__ import annotations

import subprocess
import sys
from dataclasses import astuple
from typing import Any, Iterable, TextIO

from .alchemy import block_number_request, block_request
from .evm_inspect import EvmInspectClient

CLI_NAME = "chisel"
PROMPT = f"{CLI_NAME}> "


def clean_input(text: str) -> str:
    """Strip surrounding whitespace and lower-case a line of input."""
    return text.strip().lower()


def help_text() -> str:
    return (
        f"Welcome to {CLI_NAME}! These are the available commands: \n"
        ".help    - Show available commands\n"
        ".clear   - Clear the terminal screen\n"
        ".exit    - Exits terminal \n"
    )


def clear_screen() -> None:
    """Clear the terminal using the system's ``clear`` command."""
    try:
        subprocess.run(["clear"], check=False)
    except OSError:
        pass


def _format_record(record: Any) -> str:
    return "{" + " ".join(str(v) for v in astuple(record)) + "}"


class CommandHandler:
    """Executes the query commands of the shell."""

    def __init__(
        self,
        alchemy_client: Any,
        evm_inspect_client: EvmInspectClient,
        out: TextIO | None = None,
    ) -> None:
        self.alchemy_client = alchemy_client
        self.evm_inspect_client = evm_inspect_client
        self.out = out if out is not None else sys.stdout

    def _print(self, *values: Any) -> None:
        print(*values, file=self.out)

    @staticmethod
    def _argument(args: list[str], cmd: str) -> str:
        if len(args) < 2:
            raise ValueError(f"{cmd}: missing block number")
        return args[1]

    def handle(self, text: str) -> None:
        args = text.split(" ")
        cmd = args[0]
        if cmd == "block_number":
            resp = self.alchemy_client.block_number(block_number_request())
            self._print(resp.number)
        elif cmd == "block":
            resp = self.alchemy_client.block(block_request(self._argument(args, cmd)))
            self._print(resp.hash)
            self._print(resp.transactions[0])
        elif cmd == "trace_block":
            traces = self.evm_inspect_client.trace_block(self._argument(args, cmd))
            self._print(_format_record(traces[0]))
        else:
            self._print(cmd, ": command not found")


def run_repl(
    handler: CommandHandler,
    lines: Iterable[str] | None = None,
    out: TextIO | None = None,
) -> None:
    """Read commands line by line until ``.exit`` or end of input."""
    if lines is None:
        lines = sys.stdin
    if out is None:
        out = sys.stdout
    builtins = {
        ".help": lambda: out.write(help_text()),
        ".clear": clear_screen,
    }
    out.write(PROMPT)
    out.flush()
    for line in lines:
        text = clean_input(line)
        if text in builtins:
            builtins[text]()
        elif text == ".exit":
            return
        else:
            handler.handle(text)
        out.write(PROMPT)
        out.flush()
    out.write("\n")