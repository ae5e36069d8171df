"""wotscore CLI -- administer a web of trust store.

Entry point for the ``wotscore`` command-line tool. Registers all
subcommands under a single Click group. Every command opens the store,
runs, brings all trust trees up to date and closes the store again.

Commands:
    identity -- Create, inspect and edit identities.
    trust    -- Set, remove, import and list trust values.
    score    -- Query scores in a trust tree.
    check    -- Validate the store and the stored scores.

Usage::

    wotscore identity own alice
    wotscore trust set alice bob 100
    wotscore trust import bob ./bob-trust.yaml
    wotscore score list alice
    wotscore --store other.json check
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from wotscore import __version__
from wotscore.cli.check_cmd import check_command
from wotscore.cli.identity_cmd import identity_command
from wotscore.cli.score_cmd import score_command
from wotscore.cli.session import EXIT_INVALID, CliState
from wotscore.cli.trust_cmd import trust_command
from wotscore.config import ScoreConfig
from wotscore.exceptions import TrustGraphError


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--store", "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("wot.json"),
    envvar="WOTSCORE_STORE",
    show_default=True,
    help="JSON file holding the trust graph.",
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML file with score settings (capacities, max_rank).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log recomputation details.")
@click.pass_context
def cli(ctx: click.Context, store_path: Path, config_path: Path | None, verbose: bool) -> None:
    """wotscore: reputation scores over a web of trust.

    Every own identity sees the network as a trust tree: identities it
    trusts directly have rank 1, identities they trust have rank 2, and
    so on. The score of an identity is the sum of the trust it receives,
    weighted by the capacity of each truster's rank.
    """
    _configure_logging(verbose)
    try:
        config = ScoreConfig.load(config_path) if config_path else ScoreConfig()
    except TrustGraphError as exc:
        click.echo(f"Error: Invalid configuration: {exc.message}", err=True)
        ctx.exit(EXIT_INVALID)
    ctx.obj = CliState(store_path=store_path, config=config)


# Register all subcommands
cli.add_command(identity_command)
cli.add_command(trust_command)
cli.add_command(score_command)
cli.add_command(check_command)
