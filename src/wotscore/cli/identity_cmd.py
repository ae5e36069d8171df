"""``wotscore identity`` -- create, inspect and edit identities.

Subcommands:
    add       -- Register a (remote) identity.
    own       -- Create an own identity, or promote an existing one.
    disown    -- Turn an own identity back into a plain one.
    show      -- Show one identity and its score in every tree.
    list      -- List identities, optionally only own ones or one context.
    delete    -- Delete an identity with its edges and scores.
    context   -- Add or remove an application context.
    property  -- Set, get or remove a named property.
"""

from __future__ import annotations

import json
import sys

import click

from wotscore.cli.output import (
    console,
    identity_to_json,
    print_identities,
    print_identity,
)
from wotscore.cli.session import EXIT_INVALID, open_network

_FORMAT_OPTION = click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)


@click.group("identity")
def identity_command() -> None:
    """Create, inspect and edit identities."""


@identity_command.command("add")
@click.argument("identity_id")
@click.option("--nickname", default=None, help="Nickname of the identity.")
def add_command(identity_id: str, nickname: str | None) -> None:
    """Register the identity IDENTITY_ID."""
    with open_network() as wot:
        identity = wot.add_identity(identity_id, nickname)
    console.print(f"Added identity [bold]{identity.display_name}[/bold]")


@identity_command.command("own")
@click.argument("identity_id")
@click.option("--nickname", default=None, help="Nickname of the identity.")
def own_command(identity_id: str, nickname: str | None) -> None:
    """Create the own identity IDENTITY_ID (a trust tree owner)."""
    with open_network() as wot:
        identity = wot.create_own_identity(identity_id, nickname)
    console.print(f"Own identity [bold]{identity.display_name}[/bold] is ready")


@identity_command.command("disown")
@click.argument("identity_id")
def disown_command(identity_id: str) -> None:
    """Stop treating IDENTITY_ID as an own identity.

    Its trust values, contexts and properties are kept; its trust tree
    is dropped.
    """
    with open_network() as wot:
        identity = wot.delete_own_identity(identity_id)
    console.print(f"[bold]{identity.display_name}[/bold] is no longer an own identity")


@identity_command.command("show")
@click.argument("identity_id")
@_FORMAT_OPTION
def show_command(identity_id: str, output_format: str) -> None:
    """Show IDENTITY_ID with its attributes and scores.

    Exit code 0 on success, 2 if the identity does not exist.
    """
    with open_network(output_format) as wot:
        identity = wot.get_identity(identity_id)
        scores = wot.store.scores_of_target(identity_id)

    if identity is None:
        if output_format == "json":
            click.echo(json.dumps({"error": f"Unknown identity: {identity_id}"}))
        else:
            click.echo(f"Error: Unknown identity: {identity_id}", err=True)
        sys.exit(EXIT_INVALID)

    if output_format == "json":
        click.echo(json.dumps(identity_to_json(identity, scores), indent=2))
    else:
        print_identity(identity, scores)


@identity_command.command("list")
@click.option("--own", "own_only", is_flag=True, help="Only list own identities.")
@click.option("--context", default=None, help="Only list identities with this context.")
@_FORMAT_OPTION
def list_command(own_only: bool, context: str | None, output_format: str) -> None:
    """List known identities."""
    with open_network(output_format) as wot:
        if context is not None:
            identities = wot.identities.identities_with_context(context)
        else:
            identities = wot.get_all_identities()
    if own_only:
        identities = [i for i in identities if i.own]

    if output_format == "json":
        click.echo(json.dumps([identity_to_json(i) for i in identities], indent=2))
    else:
        print_identities(identities)


@identity_command.command("delete")
@click.argument("identity_id")
def delete_command(identity_id: str) -> None:
    """Delete IDENTITY_ID, its trust values and its scores."""
    with open_network() as wot:
        wot.delete_identity(identity_id)
    console.print(f"Deleted identity [bold]{identity_id}[/bold]")


# -- Contexts ---------------------------------------------------------------


@identity_command.group("context")
def context_command() -> None:
    """Add or remove application contexts."""


@context_command.command("add")
@click.argument("identity_id")
@click.argument("context")
def context_add_command(identity_id: str, context: str) -> None:
    """Add CONTEXT to IDENTITY_ID."""
    with open_network() as wot:
        wot.add_context(identity_id, context)
    console.print(f"Added context [bold]{context}[/bold] to {identity_id}")


@context_command.command("remove")
@click.argument("identity_id")
@click.argument("context")
def context_remove_command(identity_id: str, context: str) -> None:
    """Remove CONTEXT from IDENTITY_ID."""
    with open_network() as wot:
        wot.remove_context(identity_id, context)
    console.print(f"Removed context [bold]{context}[/bold] from {identity_id}")


# -- Properties -------------------------------------------------------------


@identity_command.group("property")
def property_command() -> None:
    """Set, get or remove named properties."""


@property_command.command("set")
@click.argument("identity_id")
@click.argument("name")
@click.argument("value")
def property_set_command(identity_id: str, name: str, value: str) -> None:
    """Set property NAME of IDENTITY_ID to VALUE."""
    with open_network() as wot:
        wot.set_property(identity_id, name, value)
    console.print(f"Set property [bold]{name}[/bold] of {identity_id}")


@property_command.command("get")
@click.argument("identity_id")
@click.argument("name")
def property_get_command(identity_id: str, name: str) -> None:
    """Print property NAME of IDENTITY_ID.

    Exit code 2 if the property is not set.
    """
    with open_network() as wot:
        value = wot.get_property(identity_id, name)
    if value is None:
        click.echo(f"Error: Property {name} is not set on {identity_id}", err=True)
        sys.exit(EXIT_INVALID)
    click.echo(value)


@property_command.command("remove")
@click.argument("identity_id")
@click.argument("name")
def property_remove_command(identity_id: str, name: str) -> None:
    """Remove property NAME from IDENTITY_ID."""
    with open_network() as wot:
        wot.remove_property(identity_id, name)
    console.print(f"Removed property [bold]{name}[/bold] from {identity_id}")
