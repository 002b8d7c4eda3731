# cli.py
"""
Maintenance commands for the page builder.

    page-builder init-db
    page-builder show-page homepage
    page-builder preview-rule '{"source": "articles", "limit": 5}'
    page-builder compact-zone <zone-id>
    page-builder resort-zone <zone-id>
"""
import asyncio
import json
import logging
import sys
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import click

from page_builder.app import PageBuilder
from page_builder.config import Settings
from page_builder.db.database import DataBase
from page_builder.errors import PageBuilderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_VALIDATION_ERROR = 4


def _run(database_url: Optional[str], action: Callable[[PageBuilder], Awaitable[T]]) -> T:
    async def runner() -> T:
        builder = PageBuilder(DataBase(database_url))
        try:
            return await action(builder)
        finally:
            await builder.close()

    try:
        return asyncio.run(runner())
    except PageBuilderError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_VALIDATION_ERROR)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


@click.group()
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="SQLAlchemy async database URL")
@click.pass_context
def cli(ctx: click.Context, database_url: Optional[str]) -> None:
    """Newsroom page builder maintenance."""
    logging.basicConfig(level=Settings().log_level)
    ctx.obj = {"database_url": database_url}


@cli.command("init-db")
@click.pass_obj
def init_db(obj: dict) -> None:
    """Create all tables (development and tests; use migrations in production)."""
    _run(obj["database_url"], lambda b: b.database.create_all())
    click.echo("Tables created.")


@cli.command("show-page")
@click.argument("slug")
@click.pass_obj
def show_page(obj: dict, slug: str) -> None:
    """Print the resolved zones of an active page."""
    zones = _run(obj["database_url"], lambda b: b.composer.get_page_zones_content(slug))
    if not zones:
        click.echo(f"No active page with slug {slug!r}.", err=True)
        sys.exit(EXIT_ERROR)
    _echo_json({name: zone.model_dump(mode="json") for name, zone in zones.items()})


@cli.command("preview-rule")
@click.argument("rule")
@click.pass_obj
def preview_rule(obj: dict, rule: str) -> None:
    """Resolve an auto-fill rule given as JSON without saving it."""
    try:
        raw = json.loads(rule)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="RULE")
    items = _run(obj["database_url"], lambda b: b.auto_fill.preview(raw))
    _echo_json([item.model_dump(mode="json") for item in items])


@cli.command("compact-zone")
@click.argument("zone_id", type=click.UUID)
@click.pass_obj
def compact_zone(obj: dict, zone_id: UUID) -> None:
    """Renumber a zone's placements to 0..n-1."""
    placements = _run(obj["database_url"], lambda b: b.reorder.compact(zone_id))
    click.echo(f"Zone {zone_id}: {len(placements)} placements compacted.")


@cli.command("resort-zone")
@click.argument("zone_id", type=click.UUID)
@click.pass_obj
def resort_zone(obj: dict, zone_id: UUID) -> None:
    """Order a zone's article placements newest first."""
    placements = _run(obj["database_url"], lambda b: b.reorder.resort_by_publish_date(zone_id))
    for p in placements:
        title = p.article.title if p.article else (p.video.title if p.video else p.content_type)
        click.echo(f"{p.position:>3}  {title}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
