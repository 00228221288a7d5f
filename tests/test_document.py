"""Tests for roampub.document: post discovery and tree assembly."""

from __future__ import annotations

import pytest

from conftest import block, page
from roampub.document import assemble, candidates, find_posts, is_post, publish_marker
from roampub.errors import AssemblyError, GraphLookupError


def test_find_posts(make_graph, blog_datoms):
    g = make_graph(blog_datoms)
    assert [b.uid for b in find_posts(g, "publish")] == ["post"]
    assert [b.uid for b in candidates(g, "publish")] == ["post", "draft"]


def test_candidates_are_distinct(make_graph):
    datoms = page(1, "tag", "publish") + block(2, "x", "#publish twice", 0, (1,))
    datoms += [(2, "block/refs", 1), (2, "block/refs", 1)]
    g = make_graph(datoms)
    assert [b.uid for b in candidates(g, "publish")] == ["x"]


def test_missing_tag_page(make_graph, blog_datoms):
    g = make_graph(blog_datoms)
    with pytest.raises(GraphLookupError):
        list(find_posts(g, "nope"))


def test_marker(make_graph, blog_datoms):
    g = make_graph(blog_datoms)
    assert publish_marker("publish") == "#publish "
    assert is_post(g.block("post"), "publish")
    assert not is_post(g.block("draft"), "publish")


def test_assemble_tree(make_graph, blog_datoms):
    g = make_graph(blog_datoms)
    root = assemble(g.block("post"), publish_marker("publish"))

    assert root.uid == "post"
    assert root.text == "My [[Roam]] post"
    assert [c.uid for c in root.sorted_children()] == ["intro", "body"]
    body = root.sorted_children()[1]
    assert body.order == 1
    assert [c.uid for c in body.children] == ["detail"]


def test_multi_level_chain_attaches_to_last_ancestor(make_graph):
    datoms = page(1, "page", "Page")
    datoms += block(2, "rootUid", "#publish Root", 0, (1,))
    datoms += block(3, "midUid", "mid", 0, (1, 2))
    datoms += block(4, "leafUid", "leaf", 0, (1, 2, 3))
    datoms += block(5, "deep", "deep", 0, (1, 2, 3, 4))
    g = make_graph(datoms)

    root = assemble(g.block("rootUid"), "#publish ")
    mid = root.children[0]
    leaf = mid.children[0]
    assert root.text == "Root"
    assert [c.uid for c in root.children] == ["midUid"]
    assert [c.uid for c in mid.children] == ["leafUid"]
    assert [c.uid for c in leaf.children] == ["deep"]


def test_marker_not_present_keeps_text(make_graph):
    g = make_graph(block(1, "solo", "plain title"))
    root = assemble(g.block("solo"), "#publish ")
    assert root.text == "plain title"
    assert root.children == []


def test_parent_outside_post(make_graph):
    datoms = page(1, "page", "Page")
    datoms += block(2, "root", "#publish Root", 0, (1,))
    datoms += block(3, "other", "other", 0, (1,))
    # Claims the post root as ancestor but its direct parent is elsewhere.
    datoms += block(4, "stray", "stray", 0, (2, 3))
    g = make_graph(datoms)

    with pytest.raises(AssemblyError) as excinfo:
        assemble(g.block("root"), "#publish ")
    assert excinfo.value.root_uid == "root"
    assert excinfo.value.node_uid == "stray"


def test_parent_cycle(make_graph):
    datoms = page(1, "root", "#publish Root")
    datoms += [(1, "block/string", "#publish Root")]
    datoms += block(2, "a", "a", 0, (1, 3))
    datoms += block(3, "b", "b", 0, (1, 2))
    g = make_graph(datoms)

    with pytest.raises(AssemblyError, match="cycle"):
        assemble(g.block("root"), "#publish ")


def test_refs_from_entities_without_uid_are_skipped(make_graph, blog_datoms):
    g = make_graph(blog_datoms + [(41, "block/refs", 1), (41, "block/string", "#publish orphan")])
    assert [b.uid for b in g.page_block("publish").incoming_refs] == ["post", "draft"]
    assert [b.uid for b in find_posts(g, "publish")] == ["post"]


def test_textless_candidate_is_not_a_post(make_graph, blog_datoms):
    g = make_graph(blog_datoms + page(40, "pg", "ideas") + [(40, "block/refs", 1)])
    assert not is_post(g.block("pg"), "publish")
    assert [b.uid for b in candidates(g, "publish")] == ["post", "draft", "pg"]


def test_only_direct_parent_is_resolved(make_graph):
    datoms = page(1, "page", "Page")
    datoms += block(2, "root", "#publish Root", 0, (1,))
    # Entity 99 never appears, so the first ancestor cannot be resolved.
    datoms += block(3, "kid", "kid", 0, (99, 2))
    g = make_graph(datoms)

    root = assemble(g.block("root"), "#publish ")
    assert [c.uid for c in root.children] == ["kid"]
    assert g.block("kid").direct_parent.uid == "root"


def test_unresolvable_direct_parent(make_graph):
    datoms = page(1, "page", "Page")
    datoms += block(2, "root", "#publish Root", 0, (1,))
    datoms += block(3, "lost", "lost", 0, (2, 98))
    g = make_graph(datoms)

    with pytest.raises(AssemblyError) as excinfo:
        assemble(g.block("root"), "#publish ")
    assert excinfo.value.node_uid == "lost"
