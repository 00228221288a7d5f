"""roampub CLI: publish tagged Roam Research blocks as Markdown posts.

Commands:
    roampub init [TAG]         create roampub.toml
    roampub publish            write output/post_<uid>.md for every tagged post
    roampub stats              entity / block / page counts for an export
    roampub show UID           render one post to stdout
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from roampub.config import RoamPubConfig, init_config, load_config
from roampub.decoder import read_snapshot
from roampub.document import find_posts, publish_marker
from roampub.errors import RoamPubError
from roampub.graph import RoamGraph, build_graph
from roampub.publish import publish_posts, render_post

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg() -> RoamPubConfig:
    try:
        return load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _setup_logging(level: str) -> None:
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(message)s")


def _load_graph(input_path: Path, *, strict: bool) -> RoamGraph:
    try:
        return build_graph(read_snapshot(input_path), strict=strict)
    except (RoamPubError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="roampub")
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """roampub: Roam Research export to Markdown posts."""
    cfg = _load_cfg()
    _setup_logging("DEBUG" if verbose else cfg.logging.level)
    ctx.obj = cfg


# ---------------------------------------------------------------------------
# roampub init
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("tag", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(tag: str | None, root: str) -> None:
    """Create roampub.toml in the current project."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, tag=tag)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("roampub.toml already exists, skipping init")

    cfg = load_config(root_path)
    click.echo(f"Input      : {cfg.input}")
    click.echo(f"Output dir : {cfg.output_dir}")
    click.echo(f"Publish tag: #{cfg.publish_tag}")


# ---------------------------------------------------------------------------
# roampub publish
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--input", "input_path", type=click.Path(dir_okay=False, path_type=Path), help="EDN export file")
@click.option("--publish-tag", "tag", help="Tag page that marks posts")
@click.option("--output", "output_dir", type=click.Path(file_okay=False, path_type=Path), help="Existing output directory")
@click.option("--strict", is_flag=True, help="Fail on duplicate block uids")
@click.pass_obj
def publish(
    cfg: RoamPubConfig,
    input_path: Path | None,
    tag: str | None,
    output_dir: Path | None,
    strict: bool,
) -> None:
    """Write one Markdown file per post tagged with the publish tag."""
    tag = tag or cfg.publish_tag
    graph = _load_graph(input_path or cfg.input, strict=strict or cfg.strict)
    try:
        report = publish_posts(
            graph,
            tag,
            output_dir or cfg.output_dir,
            indent=cfg.render.indent,
            max_depth=cfg.render.max_depth,
        )
    except (RoamPubError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    for path in report.written:
        click.echo(f"  wrote {path}")
    for failure in report.failed:
        click.echo(f"  failed {failure.uid}: {failure.error}", err=True)
    click.echo(
        f"{len(report.written)} written, {len(report.skipped)} skipped "
        f"(no '{publish_marker(tag).strip()}' prefix), {len(report.failed)} failed"
    )
    if not report.ok:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# roampub stats
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--input", "input_path", type=click.Path(dir_okay=False, path_type=Path), help="EDN export file")
@click.option("--publish-tag", "tag", help="Tag page that marks posts")
@click.pass_obj
def stats(cfg: RoamPubConfig, input_path: Path | None, tag: str | None) -> None:
    """Show entity, block and page counts for an export."""
    from rich.console import Console
    from rich.table import Table

    tag = tag or cfg.publish_tag
    graph = _load_graph(input_path or cfg.input, strict=cfg.strict)

    table = Table(title=f"roampub: {input_path or cfg.input}", show_header=True, header_style="bold")
    table.add_column("Metric", style="dim", no_wrap=True)
    table.add_column("Value", justify="right")

    counts = graph.stats()
    table.add_row("Entities", str(counts["entities"]))
    table.add_row("Facts", str(counts["facts"]))
    table.add_row("Blocks", str(counts["blocks"]))
    table.add_row("Pages", str(counts["pages"]))
    table.add_row("Schema attributes", str(len(graph.schema)))
    if counts["dangling_edges"]:
        table.add_row("  Dangling edges", f"[yellow]{counts['dangling_edges']}[/yellow]")
    if counts["uid_conflicts"]:
        table.add_row("  Uid conflicts", f"[red]{counts['uid_conflicts']}[/red]")
    table.add_row("", "")

    if tag in graph.pages:
        try:
            n_posts = sum(1 for _ in find_posts(graph, tag))
        except RoamPubError as exc:
            raise click.ClickException(str(exc)) from exc
        table.add_row(f"Posts (#{tag})", str(n_posts))
    else:
        table.add_row(f"Posts (#{tag})", "[red]no such page[/red]")

    Console().print(table)


# ---------------------------------------------------------------------------
# roampub show
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("uid")
@click.option("--input", "input_path", type=click.Path(dir_okay=False, path_type=Path), help="EDN export file")
@click.option("--publish-tag", "tag", help="Marker stripped from the title")
@click.pass_obj
def show(cfg: RoamPubConfig, uid: str, input_path: Path | None, tag: str | None) -> None:
    """Render the post rooted at block UID to stdout."""
    graph = _load_graph(input_path or cfg.input, strict=cfg.strict)
    try:
        markdown = render_post(
            graph.block(uid),
            tag or cfg.publish_tag,
            indent=cfg.render.indent,
            max_depth=cfg.render.max_depth,
        )
    except RoamPubError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(markdown, nl=False)
