"""Helpers shared by the CLI command modules."""

import json
from typing import Any

import typer

from lexis.application.config import AppConfig, resolve_config
from lexis.application.coordinator import SessionCoordinator
from lexis.application.factory import build_coordinator
from lexis.application.responses import ActionResult
from lexis.domain.outcome import FailureKind


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    """Resolve config, ignoring options the user did not pass."""
    return resolve_config({k: v for k, v in overrides.items() if v is not None})


def get_config(ctx: typer.Context) -> AppConfig:
    obj = ctx.ensure_object(dict)
    if "config" not in obj:
        obj["config"] = _resolve_with_overrides(**obj.get("overrides", {}))
    return obj["config"]


def get_coordinator(ctx: typer.Context) -> SessionCoordinator:
    """One coordinator per CLI invocation, built from the resolved config."""
    obj = ctx.ensure_object(dict)
    if "coordinator" not in obj:
        obj["coordinator"] = build_coordinator(get_config(ctx))
    return obj["coordinator"]


def emit(response: ActionResult, json_output: bool) -> None:
    """Print a JSON dump of the response when requested; exit 1 on failure."""
    if json_output:
        typer.echo(response.model_dump_json(by_alias=True, indent=2))
    if not response.success:
        if not json_output:
            color = "yellow" if response.error_kind is FailureKind.VALIDATION else "red"
            typer.secho(f"Error: {response.error}", fg=color, err=True)
        raise typer.Exit(1)


def echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))
