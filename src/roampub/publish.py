"""Batch pipeline: write one Markdown file per published post.

Decode and graph errors happen before this module is reached and abort the
run. Here, a post whose tree cannot be assembled or rendered is logged and
skipped so the remaining posts are still written. Write failures abort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from roampub.document import assemble, candidates, is_post, publish_marker
from roampub.errors import AssemblyError, GraphLookupError, RenderError
from roampub.render import DEFAULT_INDENT, DEFAULT_MAX_DEPTH, render_document

if TYPE_CHECKING:
    from roampub.graph import Block, RoamGraph

logger = logging.getLogger("roampub.publish")


@dataclass
class PostFailure:
    uid: str
    error: str


@dataclass
class PublishReport:
    written: list[Path] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)    # referencing blocks without the marker
    failed: list[PostFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def post_filename(uid: str) -> str:
    return f"post_{uid}.md"


def render_post(
    root: Block,
    tag: str,
    *,
    indent: str = DEFAULT_INDENT,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """Assemble and render a single post rooted at ``root``."""
    tree = assemble(root, publish_marker(tag))
    return render_document(tree, indent=indent, max_depth=max_depth)


def publish_posts(
    graph: RoamGraph,
    tag: str,
    output_dir: Path | str,
    *,
    indent: str = DEFAULT_INDENT,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> PublishReport:
    """Render every post tagged ``#<tag>`` into ``output_dir``.

    ``output_dir`` must already exist. Raises GraphLookupError if the tag
    page is missing.
    """
    out = Path(output_dir)
    if not out.is_dir():
        msg = f"output directory does not exist: {out}"
        raise FileNotFoundError(msg)

    report = PublishReport()
    for ref in candidates(graph, tag):
        try:
            if not is_post(ref, tag):
                report.skipped.append(ref.id)
                continue
            markdown = render_post(ref, tag, indent=indent, max_depth=max_depth)
        except (AssemblyError, RenderError, GraphLookupError) as exc:
            logger.error("skipping post %s: %s", ref.id, exc)
            report.failed.append(PostFailure(ref.id, str(exc)))
            continue

        path = out / post_filename(ref.uid)
        path.write_text(markdown, encoding="utf-8")
        logger.info("wrote %s", path)
        report.written.append(path)

    return report
