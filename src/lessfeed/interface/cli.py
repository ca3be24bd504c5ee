"""lessfeed CLI — drive the feed engine from a terminal."""

import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer

from lessfeed import __version__
from lessfeed.application.config import AppConfig, resolve_config
from lessfeed.application.controller import FeedController
from lessfeed.application.engagement import FavoritesTracker, LearnedTracker, UnusefulTracker
from lessfeed.application.factory import get_analytics_sink, get_card_source, get_store
from lessfeed.application.review_scheduler import ReviewScheduler
from lessfeed.application.streak import StreakTracker
from lessfeed.application.utils.dates import epoch_ms, utc_now
from lessfeed.domain.errors import LessFeedError
from lessfeed.domain.models import Content, FeedItem, Lang, ListMode, Opening, System

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lessfeed: a calm, finite feed of knowledge cards.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage lessfeed configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


class Relation(str, Enum):
    LEARNED = "learned"
    UNUSEFUL = "unuseful"
    FAVORITE = "favorite"


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
    ] = 1,
):
    """Global settings for lessfeed."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose
    if verbose > 1:
        logging.getLogger().setLevel(logging.DEBUG)


def _resolve(ctx: typer.Context, **overrides) -> AppConfig:
    overrides["verbose"] = (ctx.obj or {}).get("verbose_bonus", 1)
    return resolve_config(overrides)


@asynccontextmanager
async def open_controller(
    config: AppConfig, lang: str | None = None, start: bool = True
) -> AsyncIterator[FeedController]:
    """Build a controller over the configured store and source, and tear it down."""
    source = get_card_source(config)
    sink = get_analytics_sink(config)
    controller = FeedController(get_store(config), source, default_lang=config.default_lang)
    try:
        if lang is not None:
            await controller.settings_repo.update_lang(Lang.from_code(lang))
        if start:
            await controller.start()
            await controller.wait_background()
        yield controller
        if sink is not None:
            sent = await controller.flush_analytics(sink)
            logger.debug(f"Flushed {sent} analytics events")
    finally:
        await controller.close()
        await source.close()
        if sink is not None:
            await sink.close()


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except LessFeedError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1)


def _describe(item: FeedItem) -> str:
    match item:
        case Content(card):
            return f"{card.id}  [{card.topic}] {card.title}"
        case System(card):
            return f"*  {card.title}"
        case Opening(card):
            return f">  {card.title}"


def _print_items(items: list[FeedItem], limit: int | None = None) -> None:
    shown = items if limit is None else items[:limit]
    for i, item in enumerate(shown, start=1):
        typer.echo(f"{i:>3}. {_describe(item)}")
    if limit is not None and len(items) > limit:
        typer.echo(f"... {len(items) - limit} more")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def feed(
    ctx: typer.Context,
    mode: Annotated[
        ListMode, typer.Option("--mode", "-m", help="List to show.")
    ] = ListMode.FEED,
    lang: Annotated[str | None, typer.Option(help="Language: fr, en, es.")] = None,
    limit: Annotated[int | None, typer.Option(help="Show at most N items.")] = None,
    read: Annotated[
        bool, typer.Option("--read", help="Mark the listed cards as viewed.")
    ] = False,
    cards_file: Annotated[Path | None, typer.Option(help="Local YAML cards file.")] = None,
):
    """Print the composed [bold green]feed[/bold green] for a list mode."""
    config = _resolve(ctx, cards_file=cards_file)

    async def run():
        async with open_controller(config, lang) as controller:
            await controller.set_list_mode(mode)

            state = controller.state
            if state.error_message:
                typer.secho(state.error_message, fg="red")
                return
            if not state.items:
                typer.secho("Nothing to show.", fg="yellow")
                return
            _print_items(state.items, limit)

            if read:
                shown = state.items if limit is None else state.items[:limit]
                for item in shown:
                    await controller.card_became_visible(item.id)

    _run(run())


@app.command()
def daily(
    ctx: typer.Context,
    lang: Annotated[str | None, typer.Option(help="Language: fr, en, es.")] = None,
    read: Annotated[
        bool, typer.Option("--read", help="Walk through the ritual and record completion.")
    ] = False,
    cards_file: Annotated[Path | None, typer.Option(help="Local YAML cards file.")] = None,
):
    """Show today's [bold]daily ritual[/bold] cards."""
    config = _resolve(ctx, cards_file=cards_file)

    async def run():
        async with open_controller(config, lang) as controller:
            await controller.enter_daily_mode()
            _print_items(controller.state.items)

            if read:
                for item in controller.state.items:
                    await controller.card_became_visible(item.id)

            state = controller.state
            typer.echo(f"Progress: {state.daily_progress}/{controller.ritual.size}")
            if state.show_daily_completion:
                typer.secho(f"Ritual complete. Streak: {state.current_streak}", fg="green")
            elif state.is_daily_complete:
                typer.secho("Already completed today.", fg="green")

    _run(run())


@app.command()
def streak(ctx: typer.Context):
    """Show the current daily streak."""
    config = _resolve(ctx)

    async def run():
        tracker = StreakTracker(get_store(config))
        count = await tracker.check_validity()
        last = await tracker.last_completion()
        typer.echo(f"Streak: {count}")
        typer.echo(f"Last completion: {last or 'never'}")

    _run(run())


@app.command()
def mark(
    ctx: typer.Context,
    relation: Annotated[Relation, typer.Argument(help="Relation to toggle.")],
    card_id: Annotated[str, typer.Argument(help="Card id.")],
):
    """Toggle a card's learned, unuseful or favorite flag."""
    config = _resolve(ctx)

    async def run():
        store = get_store(config)
        trackers = {
            Relation.LEARNED: LearnedTracker,
            Relation.UNUSEFUL: UnusefulTracker,
            Relation.FAVORITE: FavoritesTracker,
        }
        now_set = await trackers[relation](store).toggle(card_id)
        typer.echo(f"{relation.value}: {card_id} -> {'on' if now_set else 'off'}")

    _run(run())


@app.command()
def review(
    ctx: typer.Context,
    card_id: Annotated[
        str | None, typer.Argument(help="Card to toggle. Omit to list reviews.")
    ] = None,
    seen_ms: Annotated[
        int | None,
        typer.Option("--seen-ms", help="Record a view of this many ms instead of toggling."),
    ] = None,
):
    """Toggle, record or list spaced-repetition [bold]reviews[/bold]."""
    config = _resolve(ctx)

    async def run():
        scheduler = ReviewScheduler(get_store(config))
        if card_id is None:
            reviews = await scheduler.all()
            if not reviews:
                typer.secho("No cards in review.", fg="yellow")
                return
            now_ms = epoch_ms(utc_now())
            for cid, item in sorted(reviews.items(), key=lambda kv: kv[1].next_at):
                due = datetime.fromtimestamp(item.next_at / 1000).isoformat(timespec="minutes")
                flag = " (due)" if item.is_due(now_ms) else ""
                typer.echo(f"{cid}  stage={item.stage}  next={due}{flag}")
            return

        if seen_ms is not None:
            if not await scheduler.is_in_review(card_id):
                typer.secho(f"{card_id} is not in review.", fg="yellow")
                return
            await scheduler.mark_seen(card_id, seen_ms)
            item = await scheduler.get(card_id)
            typer.echo(f"{card_id}: stage={item.stage}")
            return

        added = await scheduler.toggle(card_id)
        typer.echo(f"review: {card_id} -> {'on' if added else 'off'}")

    _run(run())


@app.command()
def refresh(
    ctx: typer.Context,
    lang: Annotated[str | None, typer.Option(help="Language: fr, en, es.")] = None,
    cards_file: Annotated[Path | None, typer.Option(help="Local YAML cards file.")] = None,
):
    """Fetch cards from the source, bypassing the local cache."""
    config = _resolve(ctx, cards_file=cards_file)

    async def run():
        async with open_controller(config, lang, start=False) as controller:
            await controller.load_settings()
            await controller.refresh()
            state = controller.state
            if state.error_message:
                typer.secho(f"Refresh failed: {state.error_message}", fg="red")
                raise typer.Exit(1)
            typer.secho(
                f"Loaded {len(controller.cards)} cards ({controller.lang.value}).", fg="green"
            )

    _run(run())


@app.command()
def version():
    """Print the installed version."""
    typer.echo(f"lessfeed {__version__}")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = config.model_dump(mode="json")
    if d.get("supabase_key"):
        d["supabase_key"] = "***"
    typer.echo(json.dumps(d, indent=2))


if __name__ == "__main__":
    app()
