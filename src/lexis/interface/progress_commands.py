"""`lexis progress`: inspect and manage per-word progress records."""

from pathlib import Path
from typing import Annotated

import typer

from lexis.application.responses import ActionResult
from lexis.domain.outcome import FailureKind
from lexis.interface._common import echo_json, get_coordinator

progress_app = typer.Typer(help="Inspect and manage learning progress.", no_args_is_help=True)

JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON.")]


def _check(response: ActionResult) -> None:
    if not response.success:
        color = "yellow" if response.error_kind is FailureKind.NOT_FOUND else "red"
        typer.secho(f"Error: {response.error}", fg=color, err=True)
        raise typer.Exit(1)


@progress_app.command("due")
def due(
    ctx: typer.Context,
    limit: Annotated[int | None, typer.Option(help="Show at most this many.")] = None,
    json_output: JsonOption = False,
):
    """List words due for review, new words first."""
    response = get_coordinator(ctx).due_progress(limit)
    _check(response)
    if json_output:
        echo_json(response.items)
        return
    if not response.items:
        typer.secho("Nothing due.", fg="green")
    for r in response.items:
        when = (r["next_review_at"] or "new")[:10]
        typer.echo(f"  {r['item_id']}  [{r['status']}]  {when}")


@progress_app.command("show")
def show(ctx: typer.Context, item_id: Annotated[str, typer.Argument()]):
    """Show the full progress record of one word."""
    response = get_coordinator(ctx).get_progress(item_id)
    if not response.success:
        typer.secho(f"No progress for {item_id}", fg="yellow", err=True)
        raise typer.Exit(1)
    echo_json(response.record)


@progress_app.command("reset")
def reset(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument()],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
):
    """Forget everything learned about a word."""
    if not yes:
        typer.confirm(f"Reset all progress for {item_id}?", abort=True)
    _check(get_coordinator(ctx).reset_progress(item_id))
    typer.secho(f"Reset {item_id}", fg="green")


@progress_app.command("suspend")
def suspend(ctx: typer.Context, item_id: Annotated[str, typer.Argument()]):
    """Exclude a word from due lists and new sessions."""
    _check(get_coordinator(ctx).suspend_progress(item_id))
    typer.echo(f"Suspended {item_id}")


@progress_app.command("unsuspend")
def unsuspend(ctx: typer.Context, item_id: Annotated[str, typer.Argument()]):
    _check(get_coordinator(ctx).unsuspend_progress(item_id))
    typer.echo(f"Unsuspended {item_id}")


@progress_app.command("export")
def export(
    ctx: typer.Context,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to file instead of stdout.")
    ] = None,
):
    """Export all progress as JSON."""
    response = get_coordinator(ctx).export_progress()
    _check(response)
    if output is None:
        typer.echo(response.payload)
        return
    output.write_text(response.payload, encoding="utf-8")
    typer.secho(f"Exported to {output}", fg="green")


@progress_app.command("import")
def import_(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, readable=True)],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
):
    """Replace all progress with an export file."""
    if not yes:
        typer.confirm("This replaces all existing progress. Continue?", abort=True)
    response = get_coordinator(ctx).import_progress(path.read_text(encoding="utf-8"))
    _check(response)
    typer.secho(f"Imported {response.imported} records", fg="green")


@progress_app.command("stats")
def stats(
    ctx: typer.Context,
    struggling: Annotated[
        bool, typer.Option("--struggling", help="List words you keep forgetting.")
    ] = False,
    json_output: JsonOption = False,
):
    """Show overall learning statistics."""
    response = get_coordinator(ctx).progress_stats(struggling=struggling)
    _check(response)
    data = response.stats

    if struggling:
        words = data["struggling"]
        if json_output:
            echo_json(words)
            return
        if not words:
            typer.secho("No struggling words.", fg="green")
        for w in words:
            typer.echo(
                f"  {w['item_id']}  success {w['success_rate']:.0%}  ({w['review_count']} reviews)"
            )
        return

    if json_output:
        echo_json(data)
        return
    typer.echo(f"Words: {data['total_words']}  Due: {data['due_count']}")
    typer.echo(
        "  " + "  ".join(f"{name}: {count}" for name, count in data["status_counts"].items())
    )
    typer.echo(f"Reviewed today: {data['reviewed_today']}")
    typer.echo(f"Average success: {data['average_success_rate']:.0%}")
    typer.echo(f"Streak: {data['current_streak']} (longest {data['longest_streak']})")
