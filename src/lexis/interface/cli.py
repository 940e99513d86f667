"""Lexis CLI: root commands and subgroup registration."""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from lexis.consts import VERSION
from lexis.interface._common import get_config, get_coordinator

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lexis: spaced-repetition vocabulary trainer.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

from lexis.interface.progress_commands import progress_app  # noqa: E402
from lexis.interface.session_commands import session_app  # noqa: E402

app.add_typer(session_app, name="session")
app.add_typer(progress_app, name="progress")

config_app = typer.Typer(help="Manage lexis configuration.")
app.add_typer(config_app, name="config")

decks_app = typer.Typer(help="Inspect available decks.", no_args_is_help=True)
app.add_typer(decks_app, name="decks")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    data_dir: Annotated[Path | None, typer.Option(help="Where progress is stored.")] = None,
    decks_dir: Annotated[Path | None, typer.Option(help="Directory of YAML decks.")] = None,
    store: Annotated[
        str | None,
        typer.Option("--store", help="Storage backend: json or memory."),
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Seed for card shuffling.")] = None,
):
    """Global settings for lexis."""
    level = logging.DEBUG if verbose >= 2 else logging.INFO if verbose == 1 else logging.WARNING
    logging.getLogger("lexis").setLevel(level)

    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "data_dir": data_dir,
        "decks_dir": decks_dir,
        "store_backend": store,
        "seed": seed,
        "verbose": verbose or None,
    }


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def version():
    """Print the lexis version."""
    typer.echo(VERSION)


@app.command()
def serve(
    ctx: typer.Context,
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP API server."""
    import os

    import uvicorn

    config = get_config(ctx)
    # The server process resolves its own config; hand the CLI overrides over via env.
    for key, value in ctx.obj["overrides"].items():
        if value is not None:
            os.environ[f"LEXIS_{key.upper()}"] = str(value)

    uvicorn.run(
        "lexis.server:app",
        host=host or config.host,
        port=port or config.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Decks subgroup
# ---------------------------------------------------------------------------


@decks_app.command("list")
def decks_list(ctx: typer.Context):
    """List decks found in the decks directory."""
    source = get_coordinator(ctx).card_source
    deck_ids = source.deck_ids()
    if not deck_ids:
        typer.secho("No decks found.", fg="yellow")
        return
    for deck_id in deck_ids:
        cards = source.cards_for_deck(deck_id) or []
        typer.echo(f"  {deck_id}  ({len(cards)} cards)")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = get_config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


def main():
    app()
