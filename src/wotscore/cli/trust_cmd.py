"""``wotscore trust`` -- edit and import trust values.

Trust list files are YAML documents::

    edition: 5
    trust:
      - identity: bob
        value: 100
        comment: known him for years
      - identity: mallory
        value: -50

Exit Codes:
    0 -- Trust values written, list imported, or listing printed.
    1 -- Trust list rejected because its edition is not newer.
    2 -- Invalid value, malformed trust list, or unknown identity.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
import yaml

from wotscore.cli.output import (
    console,
    print_import_result,
    print_trusts,
    trust_to_json,
)
from wotscore.cli.session import EXIT_INVALID, EXIT_PROBLEMS, open_network
from wotscore.core.trust import TrustListEntry


def load_trust_list(path: Path) -> tuple[int, list[TrustListEntry]]:
    """Read a trust list file.

    Returns:
        The edition and the entries, in file order.

    Raises:
        click.BadParameter: If the file is not a well-formed trust list.
    """
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise click.BadParameter(f"Cannot read trust list: {exc}") from exc

    if not isinstance(data, dict) or "edition" not in data:
        raise click.BadParameter("Trust list must be a mapping with an 'edition' key")
    edition = data["edition"]
    if isinstance(edition, bool) or not isinstance(edition, int):
        raise click.BadParameter(f"Edition must be an integer, got {edition!r}")

    raw_entries = data.get("trust") or []
    if not isinstance(raw_entries, list):
        raise click.BadParameter("'trust' must be a list of entries")
    entries: list[TrustListEntry] = []
    for raw in raw_entries:
        if not isinstance(raw, dict) or "identity" not in raw or "value" not in raw:
            raise click.BadParameter(
                f"Trust list entry {raw!r} needs 'identity' and 'value'"
            )
        entries.append(
            TrustListEntry(str(raw["identity"]), raw["value"], str(raw.get("comment") or ""))
        )
    return edition, entries


@click.group("trust")
def trust_command() -> None:
    """Edit and import trust values."""


@trust_command.command("set", context_settings={"ignore_unknown_options": True})
@click.argument("truster")
@click.argument("trustee")
@click.argument("value", type=int)
@click.option("--comment", default="", help="Comment stored with the trust value.")
def set_command(truster: str, trustee: str, value: int, comment: str) -> None:
    """Let own identity TRUSTER give VALUE (-100..100) to TRUSTEE."""
    with open_network() as wot:
        wot.set_trust(truster, trustee, value, comment)
    console.print(f"{truster} trusts {trustee} with [bold]{value}[/bold]")


@trust_command.command("remove")
@click.argument("truster")
@click.argument("trustee")
def remove_command(truster: str, trustee: str) -> None:
    """Remove the trust value TRUSTER gave to TRUSTEE."""
    with open_network() as wot:
        change = wot.remove_trust(truster, trustee)
    if change is None:
        console.print(f"[dim]{truster} did not trust {trustee}[/dim]")
    else:
        console.print(f"Removed trust of {truster} in {trustee}")


@trust_command.command("import")
@click.argument("truster")
@click.argument("trust_list", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def import_command(truster: str, trust_list: Path, output_format: str) -> None:
    """Replace the trust values of remote identity TRUSTER with TRUST_LIST.

    Exit code 0 if the list was applied, 1 if its edition is stale,
    2 if it is malformed.
    """
    try:
        edition, entries = load_trust_list(trust_list)
    except click.BadParameter as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(EXIT_INVALID)

    with open_network(output_format) as wot:
        result = wot.apply_remote_trust_list(truster, entries, edition)

    if output_format == "json":
        click.echo(json.dumps({
            "truster": result.truster,
            "edition": result.edition,
            "accepted": result.accepted,
            "changes": len(result.changes),
        }, indent=2))
    else:
        print_import_result(result)
    sys.exit(0 if result.accepted else EXIT_PROBLEMS)


@trust_command.command("list")
@click.argument("identity_id")
@click.option("--received", is_flag=True, help="List trust received instead of given.")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def list_command(identity_id: str, received: bool, output_format: str) -> None:
    """List the trust values IDENTITY_ID gave (or received)."""
    with open_network(output_format) as wot:
        wot.identities.require_identity(identity_id)
        if received:
            trusts = wot.trusts.received_trusts(identity_id)
        else:
            trusts = wot.trusts.given_trusts(identity_id)

    if output_format == "json":
        click.echo(json.dumps([trust_to_json(t) for t in trusts], indent=2))
    else:
        title = f"Trust received by {identity_id}" if received else f"Trust given by {identity_id}"
        print_trusts(trusts, title)
