"""CLI interface for the campaign graph."""

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .config import Neo4jSettings
from .db import Neo4jExecutor, init_schema
from .logging import DEFAULT_LEVEL, LOG_LEVELS, configure_logging
from .models.graph import EdgeType, GraphData, GraphQuery, NodeType
from .repositories import RepositoryFactory

app = typer.Typer(
    name="campaign-graph",
    help="Maintenance and inspection tools for the campaign graph",
    add_completion=False,
)
console = Console()


def get_executor() -> Neo4jExecutor:
    """Connect using NEO4J_* settings from the environment or .env."""
    return Neo4jExecutor.from_settings(Neo4jSettings.from_env())


@app.callback()
def main(
    log_level: str = typer.Option(
        DEFAULT_LEVEL, "--log-level", envvar="LOG_LEVEL", help=", ".join(LOG_LEVELS)
    ),
):
    """Campaign graph tools."""
    level = log_level.upper()
    if level not in LOG_LEVELS:
        console.print(f"[red]Unknown log level: {log_level}[/red]")
        raise typer.Exit(1)
    configure_logging(level)


@app.command("init-schema")
def init_schema_command():
    """Create the uniqueness constraints and indexes."""
    executor = get_executor()
    try:
        count = init_schema(executor)
    finally:
        executor.close()
    console.print(f"[green]Applied {count} schema statements[/green]")


@app.command()
def stats(campaign_id: str = typer.Argument(..., help="Campaign id")):
    """Show how many entities a campaign owns."""
    executor = get_executor()
    try:
        repos = RepositoryFactory.create(executor)
        campaign = repos.campaigns.find_by_id(campaign_id)
        statistics = repos.campaigns.get_statistics(campaign_id)
    finally:
        executor.close()

    if campaign is None or statistics is None:
        console.print(f"[red]Campaign not found: {campaign_id}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Campaign Statistics: {campaign.name}")
    table.add_column("Entity")
    table.add_column("Count")

    table.add_row("Sessions", str(statistics.sessions))
    table.add_row("Characters", str(statistics.characters))
    table.add_row("Locations", str(statistics.locations))
    table.add_row("Items", str(statistics.items))
    table.add_row("Events", str(statistics.events))
    table.add_row("Powers", str(statistics.powers))

    console.print(table)


@app.command()
def graph(
    world_id: str = typer.Option(None, "--world-id", help="Start from a world"),
    campaign_id: str = typer.Option(None, "--campaign-id", help="Start from a campaign"),
    session_id: str = typer.Option(None, "--session-id", help="Start from a session"),
    character_id: str = typer.Option(None, "--character-id", help="Start from a character"),
    location_id: str = typer.Option(None, "--location-id", help="Start from a location"),
    item_id: str = typer.Option(None, "--item-id", help="Start from an item"),
    event_id: str = typer.Option(None, "--event-id", help="Start from an event"),
    power_id: str = typer.Option(None, "--power-id", help="Start from a power"),
    depth: int = typer.Option(2, "--depth", "-d", help="Hops to expand (1-5)"),
    node_types: list[NodeType] = typer.Option(None, "--node-type", help="Only draw these node types"),
    edge_types: list[EdgeType] = typer.Option(None, "--edge-type", help="Only follow these edge types"),
    limit: int = typer.Option(50, "--limit", "-l", help="Sample size without a start entity"),
    output: Path = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout"),
):
    """Export a mind map around one entity (or a sample) as JSON."""
    try:
        query = GraphQuery(
            world_id=world_id,
            campaign_id=campaign_id,
            session_id=session_id,
            character_id=character_id,
            location_id=location_id,
            item_id=item_id,
            event_id=event_id,
            power_id=power_id,
            depth=depth,
            node_types=node_types or None,
            edge_types=edge_types or None,
            limit=limit,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid graph query: {e.errors()[0]['msg']}[/red]")
        raise typer.Exit(1)

    executor = get_executor()
    try:
        data = RepositoryFactory.create(executor).graph.get_mind_map(query)
    finally:
        executor.close()

    _emit(data, output)


@app.command()
def hierarchy(
    world_id: str = typer.Option(None, "--world-id", help="Only this world"),
    campaign_id: str = typer.Option(None, "--campaign-id", help="Root the tree at a campaign"),
    depth: int = typer.Option(3, "--depth", "-d", help="Levels below the root (1-3)"),
    output: Path = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout"),
):
    """Export the World > Campaign > Session > Character tree as JSON."""
    if not 1 <= depth <= 3:
        console.print("[red]Depth must be between 1 and 3[/red]")
        raise typer.Exit(1)

    executor = get_executor()
    try:
        data = RepositoryFactory.create(executor).graph.get_hierarchy(
            world_id=world_id, campaign_id=campaign_id, depth=depth
        )
    finally:
        executor.close()

    _emit(data, output)


def _emit(data: GraphData, output: Path | None):
    payload = json.dumps(data.to_json_dict(), indent=2)
    if output:
        output.write_text(payload)
        console.print(f"[green]Wrote {len(data.nodes)} nodes and {len(data.edges)} edges to {output}[/green]")
    else:
        console.print_json(payload)


if __name__ == "__main__":
    app()
