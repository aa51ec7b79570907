"""Command-line interface for MetaFuse."""

import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

import click

from metafuse import __version__
from metafuse.config import load_config
from metafuse.core.aggregator import build_aggregator
from metafuse.core.cancellation import CancellationToken
from metafuse.core.worker_pool import EnrichmentWorkerPool
from metafuse.exceptions import ConfigurationError
from metafuse.models.metadata import AlbumQuery, ArtistQuery
from metafuse.models.sources import SourcedResult
from metafuse.utils.logger import setup_logging


def _result_dict(result: SourcedResult) -> dict:
    return {
        "data": asdict(result.data),
        "source": {
            "name": result.source.name,
            "tier": int(result.source.tier),
            "url": result.source.url,
        },
        "fetched_at": result.fetched_at,
    }


def _run_lookup(config, method: str, query, timeout: Optional[float]) -> Optional[SourcedResult]:
    async def _lookup():
        aggregator = build_aggregator(config)
        token = CancellationToken()
        if timeout:
            token.cancel_after(timeout)
        try:
            return await getattr(aggregator, method)(query, token=token)
        finally:
            token.dispose()
            await aggregator.aclose()

    return asyncio.run(_lookup())


def _show(result: Optional[SourcedResult], as_json: bool, what: str):
    if result is None:
        click.secho(f"✗ No {what} found", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(_result_dict(result), indent=2, default=str))
        return

    click.secho(f"✓ {what} from {result.source}", fg="green")
    for name, value in asdict(result.data).items():
        if value in (None, [], ""):
            continue
        if isinstance(value, list):
            value = ", ".join(
                v.get("name") or v.get("url") or str(v) if isinstance(v, dict) else str(v)
                for v in value
            )
        text = str(value.value if hasattr(value, "value") else value)
        if len(text) > 200:
            text = text[:197] + "..."
        click.echo(f"  {name}: {text}")


json_option = click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
timeout_option = click.option(
    "--timeout", type=float, default=30.0, show_default=True, help="Give up after N seconds"
)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (defaults to built-in defaults)",
)
@click.pass_context
def cli(ctx, config):
    """MetaFuse - multi-provider music metadata aggregator."""
    try:
        cfg = load_config(config)
    except (ConfigurationError, ValueError) as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg
    setup_logging(cfg.logging)


@cli.command()
@click.argument("name")
@click.option("--mbid", default=None, help="MusicBrainz artist ID")
@json_option
@timeout_option
@click.pass_context
def artist(ctx, name, mbid, as_json, timeout):
    """Look up artist information."""
    result = _run_lookup(ctx.obj["config"], "fetch_artist_info", ArtistQuery(name, mbid), timeout)
    _show(result, as_json, "artist info")


@cli.command()
@click.argument("artist_name")
@click.argument("title")
@click.option("--mbid", default=None, help="MusicBrainz release-group ID")
@json_option
@timeout_option
@click.pass_context
def album(ctx, artist_name, title, mbid, as_json, timeout):
    """Look up album information."""
    query = AlbumQuery(title=title, artist=artist_name, mbid=mbid)
    result = _run_lookup(ctx.obj["config"], "fetch_album_info", query, timeout)
    _show(result, as_json, "album info")


@cli.command("artist-image")
@click.argument("name")
@click.option("--mbid", default=None, help="MusicBrainz artist ID")
@json_option
@timeout_option
@click.pass_context
def artist_image(ctx, name, mbid, as_json, timeout):
    """Find an artist photo."""
    result = _run_lookup(ctx.obj["config"], "fetch_artist_image", ArtistQuery(name, mbid), timeout)
    _show(result, as_json, "artist image")


@cli.command("artist-background")
@click.argument("name")
@click.option("--mbid", default=None, help="MusicBrainz artist ID")
@json_option
@timeout_option
@click.pass_context
def artist_background(ctx, name, mbid, as_json, timeout):
    """Find wide artist background artwork."""
    result = _run_lookup(
        ctx.obj["config"], "fetch_artist_background", ArtistQuery(name, mbid), timeout
    )
    _show(result, as_json, "artist background")


@cli.command("album-cover")
@click.argument("artist_name")
@click.argument("title")
@click.option("--mbid", default=None, help="MusicBrainz release-group ID")
@json_option
@timeout_option
@click.pass_context
def album_cover(ctx, artist_name, title, mbid, as_json, timeout):
    """Find an album front cover."""
    query = AlbumQuery(title=title, artist=artist_name, mbid=mbid)
    result = _run_lookup(ctx.obj["config"], "fetch_album_cover", query, timeout)
    _show(result, as_json, "album cover")


def parse_batch_line(line: str):
    """Parse one batch input line.

    ``Artist`` looks up an artist; ``Artist<TAB>Album`` looks up an album.
    Blank lines and ``#`` comments yield None.
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    if "\t" in line:
        artist_name, title = (part.strip() for part in line.split("\t", 1))
        return AlbumQuery(title=title, artist=artist_name)
    return ArtistQuery(name=line)


@cli.command()
@click.argument("input_file", type=click.File("r"))
@click.option("--workers", "-w", type=int, default=None, help="Concurrent workers")
@click.option(
    "--output", "-o", type=click.File("w"), default="-", help="JSON lines output (default stdout)"
)
@click.pass_context
def enrich(ctx, input_file, workers, output):
    """Enrich a list of artists and albums.

    INPUT_FILE holds one artist per line, or "artist<TAB>album" for albums.
    Each outcome is written as one JSON line.
    """
    config = ctx.obj["config"]
    queries: List = [q for q in (parse_batch_line(line) for line in input_file) if q is not None]
    if not queries:
        click.secho("⊘ Nothing to enrich", fg="yellow", err=True)
        sys.exit(0)

    async def _enrich():
        aggregator = build_aggregator(config)
        pool = EnrichmentWorkerPool(
            aggregator,
            worker_count=workers or config.batch.worker_count,
            item_timeout=config.batch.item_timeout_seconds,
        )
        try:
            return await pool.run(queries)
        finally:
            await aggregator.aclose()

    outcomes = asyncio.run(_enrich())

    failed = 0
    for outcome in outcomes:
        if not outcome.success:
            failed += 1
        output.write(
            json.dumps(
                {
                    "query": asdict(outcome.query),
                    "info": _result_dict(outcome.info) if outcome.info else None,
                    "image": _result_dict(outcome.image) if outcome.image else None,
                    "error": outcome.error,
                },
                default=str,
            )
            + "\n"
        )

    click.secho(
        f"Enriched {len(outcomes) - failed}/{len(outcomes)} item(s)",
        fg="green" if not failed else "yellow",
        err=True,
    )
    if failed:
        sys.exit(1)


@cli.command()
@click.pass_context
def serve(ctx):
    """Start the HTTP lookup service."""
    config = ctx.obj["config"]

    click.echo("Starting MetaFuse daemon...")
    click.echo(f"Listening on {config.api.host}:{config.api.port}")
    click.echo(f"  - Health check: http://{config.api.host}:{config.api.port}/health")
    click.echo(f"  - API docs:     http://{config.api.host}:{config.api.port}/docs")
    click.echo("")

    from metafuse.daemon import start_daemon

    try:
        start_daemon(config)
    except KeyboardInterrupt:
        click.echo("\n\nDaemon stopped")
        sys.exit(0)


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
