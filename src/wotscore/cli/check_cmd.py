"""``wotscore check`` -- validate the store and the stored scores.

Runs the structural integrity check and compares every tree with a
fresh computation.

Exit Codes:
    0 -- No problems found.
    1 -- Integrity problems or score mismatches found.
"""

from __future__ import annotations

import json
import sys

import click

from wotscore.cli.output import print_check_report
from wotscore.cli.session import EXIT_OK, EXIT_PROBLEMS, open_network


@click.command("check")
@click.option(
    "--verify/--no-verify",
    default=True,
    help="Also recompute every tree and compare (default: on).",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def check_command(verify: bool, output_format: str) -> None:
    """Check the store for integrity problems and stale scores."""
    with open_network(output_format) as wot:
        problems = wot.check_integrity()
        mismatched = wot.verify_scores() if verify and not problems else []

    if output_format == "json":
        click.echo(json.dumps({
            "problems": problems,
            "mismatched_trees": mismatched,
        }, indent=2))
    else:
        print_check_report(problems, mismatched)

    sys.exit(EXIT_PROBLEMS if problems or mismatched else EXIT_OK)
