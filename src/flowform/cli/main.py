"""Main CLI entry point for FlowForm"""

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from flowform.__version__ import __version__
from flowform.config.loader import FlowLoader
from flowform.config.models import FlowFormConfig
from flowform.core.errors import (
    AuthoringError,
    EngineInvariantError,
    InputError,
    StructuralError,
)
from flowform.flow.graph import validate_structure
from flowform.flow.models import FlowDefinition
from flowform.observability.logging import configure_from_settings, setup_logging
from flowform.runtime.runtime import FlowRuntime

app = typer.Typer(
    name="flowform",
    help="FlowForm - dynamic flow definition and response engine",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit"""
    if value:
        typer.echo(f"FlowForm version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """FlowForm - dynamic flow definition and response engine"""
    pass


def _load(path: Path) -> FlowFormConfig:
    try:
        return FlowLoader.load(path)
    except (AuthoringError, FileNotFoundError) as e:
        typer.echo(f"Invalid flow document: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def validate(
    path: Path = typer.Argument(..., help="Flow YAML file or directory", exists=True),
) -> None:
    """Check the structure of every flow in a document."""
    config = _load(path)
    allow_unreachable = config.settings.structure.allow_unreachable

    table = Table(title="Structure issues")
    table.add_column("Flow")
    table.add_column("Severity")
    table.add_column("Kind")
    table.add_column("Message")

    failed = False
    for flow in config.flows:
        report = validate_structure(flow)
        for issue in report.issues:
            table.add_row(flow.id, issue.severity, issue.kind, issue.message)
        if not report.ok or (report.warnings and not allow_unreachable):
            failed = True

    if table.row_count:
        console.print(table)
    if failed:
        typer.echo(f"Validation failed for {path}", err=True)
        raise typer.Exit(1)
    typer.echo(f"{len(config.flows)} flow(s) OK")


@app.command()
def run(
    path: Path = typer.Argument(..., help="Flow YAML file or directory", exists=True),
    flow_id: str = typer.Option(..., "--flow", "-f", help="Id of the flow to walk"),
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Override settings.logging.level"
    ),
) -> None:
    """Walk a flow interactively, answering each prompt in the terminal."""
    config = _load(path)
    if log_level:
        setup_logging(level=log_level.upper(), log_file=config.settings.logging.file)
    else:
        configure_from_settings(config.settings.logging)
    flow = config.get_flow(flow_id)
    if flow is None:
        typer.echo(f"Flow '{flow_id}' not found in {path}", err=True)
        raise typer.Exit(1)

    runtime = FlowRuntime(settings=config.settings)
    try:
        answers = asyncio.run(_walk(runtime, flow))
    except StructuralError as e:
        typer.echo(str(e), err=True)
        for issue in e.issues:
            typer.echo(f"  {issue}", err=True)
        raise typer.Exit(1)
    except EngineInvariantError as e:
        typer.echo(f"Session abandoned: {e.message}", err=True)
        raise typer.Exit(1)

    table = Table(title=f"Responses to '{flow.name or flow.id}'", expand=True)
    table.add_column("Node")
    table.add_column("Answer")
    for node_id, value in answers.items():
        table.add_row(node_id, "" if value is None else str(value))
    console.print(table)


async def _walk(runtime: FlowRuntime, flow: FlowDefinition) -> dict[str, Any]:
    await runtime.publish(flow)
    session = await runtime.start(flow.id)

    while session.is_open:
        node = flow.get_node(session.current_node_id or "")
        if node is None:
            break
        prompt = node.display_name + ("" if node.required else " (optional)")
        options = getattr(node.config, "option_values", None)
        if options:
            prompt += f" [{'/'.join(options())}]"
        raw = typer.prompt(prompt, default="", show_default=False)
        try:
            result = await runtime.submit_answer(session.id, node.id, _parse_input(raw))
        except InputError as e:
            console.print(e.message, style="red", markup=False)
            continue
        session = result.session

    return session.answer_map()


def _parse_input(raw: str) -> Any:
    """JSON objects (e.g. file handles) are decoded, anything else stays text."""
    text = raw.strip()
    if text.startswith("{"):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return raw
    return raw


def cli() -> None:
    """Entry point for CLI"""
    app()


if __name__ == "__main__":
    cli()
