"""Harmonia command line interface."""

from __future__ import annotations

import asyncio
import importlib
import json
import sys
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from harmonia.config import Settings, get_settings
from harmonia.converter import envelope_json_to_text, text_to_envelope_json
from harmonia.errors import FormatError, HarmoniaError
from harmonia.executor import HarmonyExecutor
from harmonia.integrations.republic_client import RepublicChatProvider, build_llm
from harmonia.models import DEFAULT_HRF_VERSION, HarmonyError
from harmonia.providers import ChatProvider, ToolProvider
from harmonia.schema import SchemaValidator
from harmonia.semantic import validate_for_hrf
from harmonia.tools.registry import ToolRegistry

app = typer.Typer(name="harmonia", help="Harmony Response Format toolkit", add_completion=False)
err_console = Console(stderr=True)


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.is_file():
        raise typer.BadParameter(f"File not found: {source}")
    return path.read_text(encoding="utf-8")


def _print_error(error: HarmonyError) -> None:
    table = Table(title=f"{error.code}: {error.message}", show_header=False)
    table.add_column("detail")
    details = error.details if isinstance(error.details, list) else [error.details]
    for detail in details:
        if detail is None:
            continue
        table.add_row(json.dumps(detail, ensure_ascii=False) if isinstance(detail, dict) else str(detail))
    err_console.print(table)


def _parse_inputs(pairs: list[str]) -> dict[str, Any]:
    inputs: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got '{pair}'", param_hint="--input")
        try:
            inputs[key.strip()] = json.loads(value)
        except json.JSONDecodeError:
            inputs[key.strip()] = value
    return inputs


def _load_tools(spec: str | None) -> ToolProvider:
    if not spec:
        return ToolRegistry()
    module_name, sep, attribute = spec.partition(":")
    if not sep or not module_name or not attribute:
        raise typer.BadParameter(f"Expected module:attribute, got '{spec}'", param_hint="--tools")
    try:
        provider = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError) as exc:
        raise typer.BadParameter(f"Cannot load tools from '{spec}': {exc}", param_hint="--tools") from exc
    if isinstance(provider, type) or (callable(provider) and not isinstance(provider, ToolProvider)):
        provider = provider()
    if not isinstance(provider, ToolProvider):
        raise typer.BadParameter(f"'{spec}' is not a tool provider", param_hint="--tools")
    return provider


def _build_chat(settings: Settings) -> ChatProvider:
    return RepublicChatProvider(build_llm(settings), max_tokens=settings.max_tokens)


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override HARMONIA_LOG_LEVEL"),
) -> None:
    """Parse, render, validate and run Harmony Response Format documents."""

    overrides: dict[str, Any] = {"log_profile": "cli"}
    if log_level:
        overrides["log_level"] = log_level
    get_settings(**overrides)


@app.command()
def parse(
    source: str = typer.Argument("-", help="HRF text file, '-' for stdin"),
    version: str = typer.Option(DEFAULT_HRF_VERSION, "--version", "-v", help="HRFVersion to stamp"),
) -> None:
    """Convert HRF wire text to a JSON envelope."""

    try:
        typer.echo(text_to_envelope_json(_read_source(source), version))
    except FormatError as exc:
        err_console.print(f"[red]Format error:[/red] {exc}")
        raise typer.Exit(1) from exc


@app.command()
def render(source: str = typer.Argument("-", help="JSON envelope file, '-' for stdin")) -> None:
    """Convert a JSON envelope to HRF wire text."""

    try:
        typer.echo(envelope_json_to_text(_read_source(source)))
    except (json.JSONDecodeError, ValueError) as exc:
        err_console.print(f"[red]Invalid envelope:[/red] {exc}")
        raise typer.Exit(1) from exc


@app.command()
def validate(
    source: str = typer.Argument("-", help="JSON envelope file, '-' for stdin"),
    schema_path: Path | None = typer.Option(None, "--schema", help="Schema file or folder"),  # noqa: B008
) -> None:
    """Validate an envelope against the schema and HRF semantic rules."""

    settings = get_settings(log_profile="cli")
    schema = SchemaValidator.load(schema_path or settings.schema_path)
    error = validate_for_hrf(_read_source(source), schema)
    if error is not None:
        _print_error(error)
        raise typer.Exit(1)
    typer.echo("ok")


@app.command()
def run(
    source: str = typer.Argument("-", help="JSON envelope file, '-' for stdin"),
    inputs: list[str] = typer.Option([], "--input", "-i", help="Script input as key=value (JSON values accepted)"),  # noqa: B008
    tools: str | None = typer.Option(None, "--tools", help="Tool provider as module:attribute"),
    show_vars: bool = typer.Option(False, "--vars", help="Print the final variable snapshot"),
) -> None:
    """Validate and execute the harmony-script carried by an envelope."""

    settings = get_settings(log_profile="cli")
    document = _read_source(source)
    executor = HarmonyExecutor(chat=_build_chat(settings), tools=_load_tools(tools))
    try:
        result = asyncio.run(
            executor.execute_envelope(
                document,
                _parse_inputs(inputs),
                schema=SchemaValidator.load(settings.schema_path),
            )
        )
    except HarmoniaError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    if result.error is not None:
        _print_error(result.error)
        raise typer.Exit(1)
    typer.echo(result.final_text)
    if show_vars:
        typer.echo(json.dumps(result.vars, ensure_ascii=False, indent=2, default=str))


@app.command("tools")
def list_tools(spec: str = typer.Argument(..., help="Tool provider as module:attribute")) -> None:
    """Show the tools a provider registers."""

    provider = _load_tools(spec)
    if not isinstance(provider, ToolRegistry):
        typer.echo("(provider does not list its tools)")
        return
    rows = provider.compact_rows()
    if not rows:
        typer.echo("(no tools registered)")
        return
    for row in rows:
        typer.echo(row)
