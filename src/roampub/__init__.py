"""Publish tagged blocks from a Roam Research EDN export as Markdown posts.

Pipeline:
    decoder   #datascript/DB EDN text -> Snapshot(schema, datoms)
    graph     datoms -> RoamGraph (entities, blocks, pages, children, refs)
    document  post root block -> DocumentNode tree
    render    DocumentNode tree -> Markdown
    publish   every post under a tag -> output/post_<uid>.md

A post is any block that references the tag page and whose text starts
with ``#<tag> `` (``#publish `` by default).
"""

from roampub.config import RoamPubConfig, init_config, load_config
from roampub.decoder import Datom, Keyword, SchemaEntry, Snapshot, decode_snapshot, read_snapshot
from roampub.document import DocumentNode, assemble, find_posts
from roampub.errors import AssemblyError, DuplicateUidError, GraphLookupError, ParseError, RenderError, RoamPubError
from roampub.graph import Block, Entity, Fact, Page, RoamGraph, build_graph
from roampub.publish import PublishReport, publish_posts, render_post
from roampub.render import process_text, render_document, render_node

__all__ = [
    "AssemblyError",
    "Block",
    "Datom",
    "DocumentNode",
    "DuplicateUidError",
    "Entity",
    "Fact",
    "GraphLookupError",
    "Keyword",
    "Page",
    "ParseError",
    "PublishReport",
    "RenderError",
    "RoamGraph",
    "RoamPubConfig",
    "RoamPubError",
    "SchemaEntry",
    "Snapshot",
    "assemble",
    "build_graph",
    "decode_snapshot",
    "find_posts",
    "init_config",
    "load_config",
    "process_text",
    "publish_posts",
    "read_snapshot",
    "render_document",
    "render_node",
    "render_post",
]
