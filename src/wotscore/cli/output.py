"""Rich output formatting helpers for the wotscore CLI.

Trust values and scores are colored by sign:
    positive = green, zero = dim, negative = red
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from wotscore.core.identity import Identity
from wotscore.core.score import Score
from wotscore.core.trust import Trust, TrustListImport

console = Console()


def value_style(value: int) -> str:
    """Return the Rich style string for a signed trust value or score."""
    if value > 0:
        return "green"
    if value < 0:
        return "red"
    return "dim"


def _signed(value: int) -> Text:
    return Text(f"{value:+d}" if value else "0", style=value_style(value))


def identity_to_json(identity: Identity, scores: list[Score] | None = None) -> dict[str, Any]:
    data = identity.to_dict()
    if scores is not None:
        data["scores"] = [score_to_json(s) for s in scores]
    return data


def score_to_json(score: Score) -> dict[str, Any]:
    return score.to_dict()


def trust_to_json(trust: Trust) -> dict[str, Any]:
    return trust.to_dict()


def print_identity(identity: Identity, scores: list[Score]) -> None:
    """Print one identity with its attributes and its score in every tree."""
    kind = "own identity" if identity.own else "identity"
    header = Text.assemble(
        (identity.display_name, "bold"),
        (f"  ({kind})", "dim"),
    )
    console.print(Panel(header, title="Identity"))
    console.print(f"  Id:       {identity.id}")
    console.print(f"  Nickname: {identity.nickname or '-'}")
    console.print(f"  Edition:  {identity.edition if identity.edition is not None else '-'}")
    console.print(f"  Contexts: {', '.join(sorted(identity.contexts)) or '-'}")

    if identity.properties:
        prop_table = Table(title="Properties", show_header=True, header_style="bold")
        prop_table.add_column("Name")
        prop_table.add_column("Value")
        for name, value in sorted(identity.properties.items()):
            prop_table.add_row(name, value)
        console.print(prop_table)

    if scores:
        print_scores(scores, title="Scores")
    else:
        console.print("[dim]Not in any trust tree.[/dim]")


def print_identities(identities: list[Identity]) -> None:
    if not identities:
        console.print("[dim]No identities.[/dim]")
        return
    table = Table(title="Identities", show_header=True, header_style="bold")
    table.add_column("Id", style="bold")
    table.add_column("Nickname")
    table.add_column("Own", justify="center")
    table.add_column("Contexts", style="dim")
    for identity in identities:
        table.add_row(
            identity.id,
            identity.nickname or "-",
            Text("yes", style="bold cyan") if identity.own else Text("-", style="dim"),
            ", ".join(sorted(identity.contexts)) or "-",
        )
    console.print(table)


def print_trusts(trusts: list[Trust], title: str) -> None:
    if not trusts:
        console.print("[dim]No trust values.[/dim]")
        return
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Truster")
    table.add_column("Trustee")
    table.add_column("Value", justify="right")
    table.add_column("Comment", style="dim")
    for trust in trusts:
        table.add_row(trust.truster, trust.trustee, _signed(trust.value), trust.comment)
    console.print(table)


def print_scores(scores: list[Score], title: str = "Scores") -> None:
    if not scores:
        console.print("[dim]No scores.[/dim]")
        return
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Tree owner")
    table.add_column("Target", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Rank", justify="right")
    table.add_column("Capacity", justify="right")
    for score in scores:
        table.add_row(
            score.owner,
            score.target,
            _signed(score.score),
            str(score.rank),
            f"{score.capacity}%",
        )
    console.print(table)


def print_import_result(result: TrustListImport) -> None:
    if not result.accepted:
        console.print(
            Panel(
                f"[yellow]Edition {result.edition} of {result.truster} is not newer "
                "than the applied one; nothing changed[/yellow]",
                title="Trust list rejected",
            )
        )
        return
    console.print(
        Panel(
            f"[bold green]Applied edition {result.edition} of {result.truster}[/bold green]",
            title="Trust list imported",
        )
    )
    console.print(f"  Changed edges: [bold]{len(result.changes)}[/bold]")


def print_check_report(problems: list[str], mismatched: list[str]) -> None:
    if not problems and not mismatched:
        console.print(
            Panel("[bold green]Store is consistent[/bold green]", title="Integrity Check")
        )
        return
    console.print(Panel("[bold red]Problems found[/bold red]", title="Integrity Check"))
    for problem in problems:
        console.print(f"  [red]- {problem}[/red]")
    for owner in mismatched:
        console.print(f"  [red]- Stored scores of tree {owner} differ from a fresh computation[/red]")
