"""Shared CLI state and the network session used by every subcommand.

Exit Codes:
    0 -- Success.
    1 -- Integrity or consistency problems, store unavailable, rejected import.
    2 -- Invalid input or unknown identity.
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import click

from wotscore.config import ScoreConfig
from wotscore.exceptions import ErrorKind, TrustGraphError
from wotscore.network import WebOfTrust

EXIT_OK = 0
EXIT_PROBLEMS = 1
EXIT_INVALID = 2

_EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: EXIT_INVALID,
    ErrorKind.NOT_FOUND: EXIT_INVALID,
    ErrorKind.CONSISTENCY: EXIT_PROBLEMS,
    ErrorKind.UPSTREAM: EXIT_PROBLEMS,
}


@dataclass
class CliState:
    """Options of the ``wotscore`` group, passed to subcommands via ``ctx.obj``."""

    store_path: Path
    config: ScoreConfig


def fail(error: TrustGraphError, output_format: str = "text") -> None:
    """Report ``error`` and exit with the code matching its kind."""
    if output_format == "json":
        click.echo(json.dumps({
            "error": error.message,
            "kind": error.kind.value,
        }))
    else:
        click.echo(f"Error: {error.message}", err=True)
        for problem in error.context.get("problems") or []:
            click.echo(f"  - {problem}", err=True)
    sys.exit(_EXIT_CODES[error.kind])


@contextmanager
def open_network(output_format: str = "text") -> Iterator[WebOfTrust]:
    """Open the web of trust named by the group options for one command.

    Pending recomputation is flushed before the store is closed. Any
    ``TrustGraphError`` ends the command with its exit code.
    """
    state = click.get_current_context().find_object(CliState)
    if state is None:
        raise click.UsageError("wotscore subcommands must run under the wotscore group")
    wot = WebOfTrust(state.store_path, state.config)
    try:
        wot.start()
        try:
            yield wot
            wot.flush()
        finally:
            wot.stop()
    except TrustGraphError as exc:
        fail(exc, output_format)
