"""Shared fixtures: build small Roam EDN exports from Python tuples."""

from __future__ import annotations

import pytest

from roampub.decoder import Keyword, decode_snapshot
from roampub.graph import build_graph

SCHEMA = (
    "{:block/uid {:db/unique :db.unique/identity}"
    " :block/parents {:db/cardinality :db.cardinality/many, :db/valueType :db.type/ref}"
    " :block/refs {:db/cardinality :db.cardinality/many, :db/valueType :db.type/ref}"
    " :node/title {:db/unique :db.unique/identity}}"
)

TX = 536870913


def edn_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Keyword):
        return str(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'
    raise TypeError(value)


def export_text(datoms: list[tuple], schema: str = SCHEMA) -> str:
    rows = []
    for d in datoms:
        eid, attr, value = d[:3]
        tx = d[3] if len(d) > 3 else TX
        rows.append(f"[{eid} :{attr} {edn_value(value)} {tx}]")
    return f"#datascript/DB {{:schema {schema}, :datoms [{' '.join(rows)}]}}"


def block(eid: int, uid: str, text: str, order: int = 0, parents: tuple[int, ...] = ()) -> list[tuple]:
    facts: list[tuple] = [
        (eid, "block/uid", uid),
        (eid, "block/string", text),
        (eid, "block/order", order),
    ]
    facts.extend((eid, "block/parents", p) for p in parents)
    return facts


def page(eid: int, uid: str, title: str) -> list[tuple]:
    return [(eid, "block/uid", uid), (eid, "node/title", title)]


@pytest.fixture
def make_graph():
    def _make(datoms: list[tuple], **kwargs):
        return build_graph(decode_snapshot(export_text(datoms)), **kwargs)
    return _make


@pytest.fixture
def blog_datoms() -> list[tuple]:
    """A publish page, a daily page holding one post, and one unmarked reference.

    Post tree (order in parentheses):
        post "#publish My [[Roam]] post"
          intro (0)
          body (1)
            detail (0)
    """
    datoms: list[tuple] = []
    datoms += page(1, "publish-page", "publish")
    datoms += page(2, "daily", "October 19th, 2026")
    datoms += block(10, "post", "#publish My [[Roam]] post", 0, (2,))
    datoms.append((10, "block/refs", 1))
    datoms += block(12, "body", "Body with [[link]]\nsecond line", 1, (2, 10))
    datoms += block(13, "detail", "Detail", 0, (2, 10, 12))
    datoms += block(11, "intro", "Intro", 0, (2, 10))
    datoms += block(20, "draft", "#publish-later not yet", 1, (2,))
    datoms.append((20, "block/refs", 1))
    return datoms
