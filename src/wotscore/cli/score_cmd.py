"""``wotscore score`` -- query the trust tree of an own identity.

Exit Codes:
    0 -- Score printed.
    2 -- No score (target not in the tree) or unknown identity.
"""

from __future__ import annotations

import json
import sys

import click

from wotscore.cli.output import print_scores, score_to_json
from wotscore.cli.session import EXIT_INVALID, open_network

_SIGNS: dict[str, int] = {"positive": 1, "zero": 0, "negative": -1}


@click.group("score")
def score_command() -> None:
    """Query scores in a trust tree."""


@score_command.command("show")
@click.argument("owner")
@click.argument("target")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def show_command(owner: str, target: str, output_format: str) -> None:
    """Show the score of TARGET in the trust tree of OWNER."""
    with open_network(output_format) as wot:
        wot.identities.require_own_identity(owner)
        score = wot.get_score(owner, target)

    if score is None:
        if output_format == "json":
            click.echo(json.dumps({"error": f"{target} is not in the trust tree of {owner}"}))
        else:
            click.echo(f"Error: {target} is not in the trust tree of {owner}", err=True)
        sys.exit(EXIT_INVALID)

    if output_format == "json":
        click.echo(json.dumps(score_to_json(score), indent=2))
    else:
        print_scores([score], title=f"Score of {target}")


@score_command.command("list")
@click.argument("owner")
@click.option(
    "--sign",
    type=click.Choice(["all", *_SIGNS]),
    default="all",
    help="Only list targets whose score has this sign (default: all).",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def list_command(owner: str, sign: str, output_format: str) -> None:
    """List the scores in the trust tree of OWNER, highest first."""
    with open_network(output_format) as wot:
        wot.identities.require_own_identity(owner)
        signs = list(_SIGNS.values()) if sign == "all" else [_SIGNS[sign]]
        scores = [
            wot.get_score(owner, identity.id)
            for s in signs
            for identity in wot.get_identities_by_score(owner, s)
        ]

    if output_format == "json":
        click.echo(json.dumps([score_to_json(s) for s in scores], indent=2))
    else:
        print_scores(scores, title=f"Trust tree of {owner}")
