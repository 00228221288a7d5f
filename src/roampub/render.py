"""Markdown rendering for assembled document trees.

Output shape:

    # Title

    - first child
      - grandchild
    - second child

``[[page]]`` links collapse to ``_page_``; single brackets pass through.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from roampub.errors import RenderError

if TYPE_CHECKING:
    from roampub.document import DocumentNode

DEFAULT_INDENT = "  "
DEFAULT_MAX_DEPTH = 256
# Frames kept free for callers (CLI, test runner) below the render recursion.
_STACK_HEADROOM = 200


def depth_ceiling() -> int:
    """Deepest nesting render_node can reach before Python's recursion limit."""
    return sys.getrecursionlimit() - _STACK_HEADROOM


def process_text(text: str, prefix: str = "") -> str:
    """Rewrite block text for Markdown.

    An outermost ``[[`` (depth 0 -> 2) and the ``]]`` that closes it
    (depth 2 -> 0) each become ``_``. Every other bracket is kept as-is.
    Unbalanced brackets are not an error; the depth counter stays off for
    the rest of the text. Newlines are followed by ``prefix`` so
    continuation lines stay nested under the list item.
    A ``[[`` opened inside a single ``[`` is left intact, so ``"[ [[x]]"`` is
    unchanged.
    """
    depth = 0
    doubled = False
    out: list[str] = []
    i, n = 0, len(text)
    while i < n:
        c = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if c == "[" and depth == 0 and nxt == "[":
            out.append("_")
            depth, doubled = 2, True
            i += 2
            continue
        if c == "]" and depth == 2 and doubled and nxt == "]":
            out.append("_")
            depth, doubled = 0, False
            i += 2
            continue
        if c == "[":
            depth += 1
            out.append(c)
        elif c == "]":
            depth -= 1
            out.append(c)
        elif c == "\n":
            out.append("\n" + prefix)
        else:
            out.append(c)
        i += 1
    return "".join(out)


def render_node(
    node: DocumentNode,
    prefix: str = "",
    *,
    indent: str = DEFAULT_INDENT,
    max_depth: int = DEFAULT_MAX_DEPTH,
    _depth: int = 0,
) -> str:
    """Render ``node`` as a list item followed by its sorted children.

    ``max_depth`` is clamped to depth_ceiling().
    """
    limit = min(max_depth, depth_ceiling())
    if _depth > limit:
        msg = f"block {node.uid} is nested deeper than {limit} levels"
        raise RenderError(msg)

    parts = [f"{prefix}- {process_text(node.text, prefix)}\n"]
    for child in node.sorted_children():
        parts.append(render_node(child, prefix + indent, indent=indent, max_depth=max_depth, _depth=_depth + 1))
    return "".join(parts)


def render_document(
    root: DocumentNode,
    *,
    indent: str = DEFAULT_INDENT,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """Render a post: ``# title``, a blank line, then the nested bullet list."""
    parts = [f"# {process_text(root.text)}\n\n"]
    for child in root.sorted_children():
        parts.append(render_node(child, indent=indent, max_depth=max_depth, _depth=1))
    return "".join(parts)
