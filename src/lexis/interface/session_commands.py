"""`lexis session`: drive a study session from the command line."""

from typing import Annotated

import typer

from lexis.application.responses import CardView, SessionInfo
from lexis.domain.models import ReviewResult, SessionType, WorkItemKind
from lexis.interface._common import emit, get_coordinator

session_app = typer.Typer(help="Start and drive study sessions.", no_args_is_help=True)

JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON.")]


def _echo_session(info: SessionInfo) -> None:
    typer.echo(
        f"Session {info.id} [{info.status.value}]: {info.total_cards} cards "
        f"in {info.total_rounds} rounds (~{info.estimated_time} min)"
    )
    typer.echo(f"Round {info.current_round}/{info.total_rounds}, {info.cards_completed} done")


def _echo_card(card: CardView) -> None:
    line = f"  {card.word}  ({card.part_of_speech})  [{card.id}]"
    if card.hint:
        line += f"  hint: {card.hint}"
    typer.echo(line)


@session_app.command("start")
def start(
    ctx: typer.Context,
    deck_ids: Annotated[list[str], typer.Argument(help="Deck ids to study.")],
    round_size: Annotated[int | None, typer.Option(help="Cards per round (1-100).")] = None,
    ratio: Annotated[
        int | None, typer.Option("--ratio", help="Percentage of new cards (0-100).")
    ] = None,
    session_type: Annotated[
        SessionType, typer.Option("--type", help="Which cards to include.")
    ] = SessionType.MIXED,
    max_rounds: Annotated[int | None, typer.Option(help="Stop after this many rounds.")] = None,
    json_output: JsonOption = False,
):
    """[bold green]Start[/bold green] a new session, replacing any session in progress."""
    coordinator = get_coordinator(ctx)
    config = {
        "deck_ids": deck_ids,
        "round_size": round_size,
        "new_review_ratio": ratio,
        "session_type": session_type,
        "max_rounds": max_rounds,
    }
    response = coordinator.create_session({k: v for k, v in config.items() if v is not None})
    emit(response, json_output)
    if not json_output:
        _echo_session(response.session)


@session_app.command("status")
def status(ctx: typer.Context, json_output: JsonOption = False):
    """Show the current session."""
    response = get_coordinator(ctx).get_session()
    emit(response, json_output)
    if not json_output:
        _echo_session(response.session)
        p = response.progress
        typer.echo(f"Card {p.position}/{p.total} (round card {p.round_position}/{p.round_total})")


@session_app.command("next")
def next_card(ctx: typer.Context, json_output: JsonOption = False):
    """Show what to study next."""
    response = get_coordinator(ctx).get_next_card()
    emit(response, json_output)
    if json_output:
        return

    if response.type is WorkItemKind.SESSION_COMPLETE:
        typer.secho("Session complete.", fg="green")
        if response.session_summary:
            s = response.session_summary
            typer.echo(
                f"Remembered {s.remembered_cards}, forgot {s.forgotten_cards}, "
                f"{s.time_spent_minutes} min"
            )
        return

    p = response.progress
    if response.is_retry:
        typer.secho("Retry:", fg="yellow")
    elif response.type is WorkItemKind.COMPARISON:
        typer.secho(f"Compare ({response.group_name}):", fg="cyan")
    else:
        typer.echo(f"Card {p.position}/{p.total}:")
    for card in response.cards:
        _echo_card(card)


@session_app.command("answer")
def answer(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id being answered.")],
    result: Annotated[ReviewResult, typer.Argument(help="remember or not-remember.")],
    response_time: Annotated[
        float, typer.Option("--time", help="Response time in milliseconds.")
    ] = 0,
    json_output: JsonOption = False,
):
    """Record whether you remembered a card."""
    response = get_coordinator(ctx).record_card_result(card_id, result, response_time)
    emit(response, json_output)
    if json_output:
        return
    nr = response.next_review
    typer.echo(f"Next review in {nr.interval} day(s)")
    if response.retry_in:
        typer.secho(f"Will come back in {response.retry_in} minutes.", fg="yellow")
    if response.session_complete:
        typer.secho("Session complete.", fg="green")


@session_app.command("preview")
def preview(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument()],
    result: Annotated[ReviewResult, typer.Argument()],
    json_output: JsonOption = False,
):
    """Show how an answer would change a card's schedule."""
    response = get_coordinator(ctx).preview_next_review(card_id, result)
    emit(response, json_output)
    if not json_output:
        typer.echo(
            f"Interval {response.next_interval} day(s), ease {response.new_ease_factor:.2f}, "
            f"difficulty {response.difficulty.value}"
        )


@session_app.command("pause")
def pause(ctx: typer.Context, json_output: JsonOption = False):
    response = get_coordinator(ctx).pause_session()
    emit(response, json_output)
    if not json_output:
        typer.echo(f"Paused. Resume token: {response.resume_token}")


@session_app.command("resume")
def resume(
    ctx: typer.Context,
    token: Annotated[str | None, typer.Argument(help="Resume token from `pause`.")] = None,
    json_output: JsonOption = False,
):
    response = get_coordinator(ctx).resume_session(token)
    emit(response, json_output)
    if not json_output:
        _echo_session(response.session)
        if response.has_retry_cards:
            typer.secho(f"{len(response.retry_cards)} card(s) waiting for retry", fg="yellow")


@session_app.command("undo")
def undo(ctx: typer.Context, json_output: JsonOption = False):
    """Step back to the previous card."""
    response = get_coordinator(ctx).undo_last_action()
    emit(response, json_output)
    if not json_output:
        restored = response.restored_card
        typer.echo(f"Back to {restored.card_id}")


@session_app.command("retries")
def retries(
    ctx: typer.Context,
    include_pending: Annotated[
        bool, typer.Option("--all", help="Include cards still waiting.")
    ] = False,
    json_output: JsonOption = False,
):
    """List cards queued for retry."""
    response = get_coordinator(ctx).get_retry_cards(include_pending=include_pending)
    emit(response, json_output)
    if json_output:
        return
    if not response.retry_cards:
        typer.echo("No retry cards.")
    for r in response.retry_cards:
        state = "ready" if r.is_ready else f"in {r.remaining_seconds}s"
        typer.echo(f"  {r.word} [{r.card_id}]: {state}")


@session_app.command("skip-retry")
def skip_retry(
    ctx: typer.Context,
    card_id: Annotated[str | None, typer.Argument(help="Only this card.")] = None,
    json_output: JsonOption = False,
):
    """Make waiting retry cards available now."""
    response = get_coordinator(ctx).skip_retry_wait(card_id)
    emit(response, json_output)
    if not json_output:
        typer.echo(f"{response.cards_ready} card(s) ready")


@session_app.command("complete")
def complete(ctx: typer.Context, json_output: JsonOption = False):
    """Finish the session and show its summary."""
    response = get_coordinator(ctx).complete_session()
    emit(response, json_output)
    if not json_output:
        s = response.summary
        typer.secho("Session complete.", fg="green")
        typer.echo(
            f"Cards: {s.total_cards}  Remembered: {s.remembered_cards}  "
            f"Forgot: {s.forgotten_cards}  Streak: {s.streak}"
        )


@session_app.command("abandon")
def abandon(ctx: typer.Context, json_output: JsonOption = False):
    response = get_coordinator(ctx).abandon_session()
    emit(response, json_output)
    if not json_output:
        typer.echo("Session abandoned.")


@session_app.command("summary")
def summary(ctx: typer.Context, json_output: JsonOption = False):
    response = get_coordinator(ctx).session_summary()
    emit(response, json_output)
    if not json_output:
        for name, value in response.summary.model_dump().items():
            typer.echo(f"{name}: {value}")

