"""Assemble a post's blocks into an ordered document tree.

A post root is any block that references the publish tag page and whose
text starts with ``#<tag> ``. Every descendant of the root lists the root
in its ``block/parents``, so ``root.children`` is the flat descendant set.
Each node then attaches itself under the last entry of its own ancestor
chain, without walking the graph.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from roampub.errors import AssemblyError, GraphLookupError
from roampub.graph import ATTR_STRING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from roampub.graph import Block, RoamGraph

logger = logging.getLogger("roampub.document")


@dataclass
class DocumentNode:
    uid: str
    text: str
    order: int = 0
    children: list[DocumentNode] = field(default_factory=list)

    def sorted_children(self) -> list[DocumentNode]:
        """Children by ascending order; equal orders keep insertion order."""
        return sorted(self.children, key=lambda n: n.order)


def publish_marker(tag: str) -> str:
    return f"#{tag} "


def is_post(block: Block, tag: str) -> bool:
    """True if the block text starts with the marker; blocks without text never match."""
    texts = block.attr(ATTR_STRING)
    return bool(texts) and isinstance(texts[0], str) and texts[0].startswith(publish_marker(tag))


def candidates(graph: RoamGraph, tag: str) -> Iterator[Block]:
    """Yield each distinct block that references the tag page.

    Raises GraphLookupError if the tag page does not exist.
    """
    seen: set[str] = set()
    for ref in graph.page_block(tag).incoming_refs:
        if ref.id in seen:
            continue
        seen.add(ref.id)
        texts = ref.attr(ATTR_STRING)
        logger.info("%s %s", ref.id, texts[0] if texts else "")
        yield ref


def find_posts(graph: RoamGraph, tag: str) -> Iterator[Block]:
    """Yield the candidates whose text starts with the publish marker."""
    return (ref for ref in candidates(graph, tag) if is_post(ref, tag))


def assemble(root: Block, marker: str = "") -> DocumentNode:
    """Build the tree for ``root``, stripping ``marker`` from its text.

    Raises AssemblyError when a node's direct parent is outside the post,
    when a node has no ancestors, or when nodes form a cycle.
    """
    title = root.text
    if marker and title.startswith(marker):
        title = title[len(marker):]
    root_node = DocumentNode(uid=root.uid, text=title)
    nodes: dict[str, DocumentNode] = {root_node.uid: root_node}
    blocks: dict[str, Block] = {}

    for child in root.children:
        uid = child.uid
        if uid in nodes:
            # Listed twice when the ancestor chain repeats the root.
            continue
        nodes[uid] = DocumentNode(uid=uid, text=child.text, order=child.order)
        blocks[uid] = child

    for uid, block in blocks.items():
        try:
            direct = block.direct_parent
        except GraphLookupError as exc:
            msg = f"block {uid} has an unresolvable direct parent: {exc}"
            raise AssemblyError(msg, root_uid=root_node.uid, node_uid=uid) from exc
        if direct is None:
            msg = "block has no ancestors"
            raise AssemblyError(msg, root_uid=root_node.uid, node_uid=uid)
        parent_uid = direct.id
        parent = nodes.get(parent_uid)
        if parent is None:
            msg = f"block {uid} has direct parent {parent_uid} outside the post"
            raise AssemblyError(msg, root_uid=root_node.uid, node_uid=uid)
        if parent_uid == uid:
            msg = f"block {uid} is its own parent"
            raise AssemblyError(msg, root_uid=root_node.uid, node_uid=uid)
        parent.children.append(nodes[uid])

    _check_reachable(root_node, nodes)
    return root_node


def _check_reachable(root: DocumentNode, nodes: dict[str, DocumentNode]) -> None:
    # Every non-root node has exactly one parent, so anything not reached
    # from the root sits on a parent cycle.
    seen: set[str] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        seen.add(node.uid)
        stack.extend(node.children)
    for uid in nodes:
        if uid not in seen:
            msg = f"block {uid} is on a parent cycle"
            raise AssemblyError(msg, root_uid=root.uid, node_uid=uid)
