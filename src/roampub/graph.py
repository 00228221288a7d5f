"""Entity/block graph reconstructed from an ordered datom log.

Construction is two-phase:

    1. One pass over the datoms creates entities, appends facts, binds
       block uids and page titles, and records parent/ref edges as
       EdgeIntent data (targets may not exist yet).
    2. Every intent is resolved against the complete entity set and
       appended to the target block's children / incoming_refs.

All cross-links are ids into the graph's own dicts; a Block never holds
another Block. The graph is read-only once build() returns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from roampub.errors import DuplicateUidError, GraphLookupError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from roampub.decoder import Datom, FactValue, SchemaEntry, Snapshot

logger = logging.getLogger("roampub.graph")

ATTR_UID = "block/uid"
ATTR_STRING = "block/string"
ATTR_ORDER = "block/order"
ATTR_PARENTS = "block/parents"
ATTR_REFS = "block/refs"
ATTR_TITLE = "node/title"

EDGE_CHILD = "child"
EDGE_REF = "ref"


@dataclass(frozen=True)
class Fact:
    attribute: str
    value: FactValue
    tx: int

    def __str__(self) -> str:
        return f"{self.attribute}: {self.value!r}"


@dataclass
class Entity:
    id: int
    facts: list[Fact] = field(default_factory=list)
    block_id: str | None = None

    def values(self, attribute: str) -> list[FactValue]:
        return [f.value for f in self.facts if f.attribute == attribute]


@dataclass(frozen=True)
class EdgeIntent:
    """An unresolved edge: ``source`` names ``target`` as parent or ref."""

    kind: str
    source: int
    target: int


@dataclass
class UidConflict:
    uid: str
    entity_id: int
    existing: int | str


class Block:
    """View over one entity that carries a ``block/uid``."""

    def __init__(self, graph: RoamGraph, uid: str, entity_id: int) -> None:
        self._graph = graph
        self.id = uid
        self.entity_id = entity_id
        self._children: list[int] = []
        self._incoming_refs: list[int] = []

    def __repr__(self) -> str:
        return f"Block({self.id!r}, entity={self.entity_id})"

    @property
    def entity(self) -> Entity:
        return self._graph.entities[self.entity_id]

    def attr(self, attribute: str) -> list[FactValue]:
        """All values of ``attribute`` on this block, in fact order."""
        return self.entity.values(attribute)

    def _single(self, attribute: str) -> FactValue:
        values = self.attr(attribute)
        if not values:
            msg = f"block {self.id} has no {attribute}"
            raise GraphLookupError(msg)
        return values[0]

    @property
    def uid(self) -> str:
        return str(self._single(ATTR_UID))

    @property
    def text(self) -> str:
        value = self._single(ATTR_STRING)
        if not isinstance(value, str):
            msg = f"block {self.id} has non-string {ATTR_STRING}: {value!r}"
            raise GraphLookupError(msg)
        return value

    @property
    def order(self) -> int:
        value = self._single(ATTR_ORDER)
        if isinstance(value, bool) or not isinstance(value, int):
            msg = f"block {self.id} has non-integer {ATTR_ORDER}: {value!r}"
            raise GraphLookupError(msg)
        return value

    @property
    def title(self) -> str | None:
        values = self.attr(ATTR_TITLE)
        return str(values[0]) if values else None

    @property
    def parents(self) -> list[Block]:
        """Ancestor chain in fact order, root first; the last item is the direct parent."""
        return self._graph._blocks_for(self.attr(ATTR_PARENTS), self.id, ATTR_PARENTS)

    @property
    def outgoing_refs(self) -> list[Block]:
        return self._graph._blocks_for(self.attr(ATTR_REFS), self.id, ATTR_REFS)

    @property
    def children(self) -> list[Block]:
        """Every block naming this one in its ``block/parents``, in log order."""
        return [self._graph.block_of(eid) for eid in self._children]

    @property
    def incoming_refs(self) -> list[Block]:
        """Blocks whose ``block/refs`` name this one; sources without a uid are skipped."""
        blocks = []
        for eid in self._incoming_refs:
            source = self._graph.entities[eid]
            if source.block_id is None:
                logger.debug("skipping ref to %s from entity %d without %s", self.id, eid, ATTR_UID)
                continue
            blocks.append(self._graph.blocks[source.block_id])
        return blocks

    @property
    def direct_parent(self) -> Block | None:
        """The last ``block/parents`` entry, resolved without touching earlier ancestors."""
        values = self.attr(ATTR_PARENTS)
        if not values:
            return None
        return self._graph._blocks_for(values[-1:], self.id, ATTR_PARENTS)[0]


@dataclass
class Page:
    """A title alias that resolves to the block of the titled entity."""

    title: str
    entity_id: int


class RoamGraph:
    """Owns all entities, blocks and pages decoded from one snapshot."""

    def __init__(self, schema: dict[str, SchemaEntry] | None = None) -> None:
        self.schema: dict[str, SchemaEntry] = dict(schema or {})
        self.entities: dict[int, Entity] = {}
        self.blocks: dict[str, Block] = {}
        self.pages: dict[str, Page] = {}
        self.uid_conflicts: list[UidConflict] = []
        self.dangling_edges: list[EdgeIntent] = []
        self.fact_count = 0

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def build(cls, snapshot: Snapshot, *, strict: bool = False) -> RoamGraph:
        graph = cls(snapshot.schema)
        intents = graph._ingest(snapshot.datoms, strict=strict)
        graph._resolve(intents)
        logger.info(
            "graph built: %d entities, %d blocks, %d pages, %d dangling edges",
            len(graph.entities), len(graph.blocks), len(graph.pages), len(graph.dangling_edges),
        )
        return graph

    def _ingest(self, datoms: Iterable[Datom], *, strict: bool) -> list[EdgeIntent]:
        intents: list[EdgeIntent] = []
        for datom in datoms:
            entity = self.entities.get(datom.entity_id)
            if entity is None:
                entity = self.entities[datom.entity_id] = Entity(id=datom.entity_id)
            entity.facts.append(Fact(datom.attribute, datom.value, datom.tx))
            self.fact_count += 1

            attr, value = datom.attribute, datom.value
            if attr == ATTR_UID:
                self._bind_uid(entity, str(value), strict=strict)
            elif attr == ATTR_TITLE:
                self.pages[str(value)] = Page(title=str(value), entity_id=entity.id)
            elif attr in (ATTR_PARENTS, ATTR_REFS):
                kind = EDGE_CHILD if attr == ATTR_PARENTS else EDGE_REF
                if _is_ref(value):
                    intents.append(EdgeIntent(kind, entity.id, value))  # type: ignore[arg-type]
                else:
                    logger.debug("ignoring non-reference %s on entity %d: %r", attr, entity.id, value)
        return intents

    def _bind_uid(self, entity: Entity, uid: str, *, strict: bool) -> None:
        existing_block = self.blocks.get(uid)
        if existing_block is not None and existing_block.entity_id != entity.id:
            self._uid_conflict(uid, entity.id, existing_block.entity_id, strict=strict)
            return
        if entity.block_id is not None and entity.block_id != uid:
            self._uid_conflict(uid, entity.id, entity.block_id, strict=strict)
            return
        if existing_block is None:
            self.blocks[uid] = Block(self, uid, entity.id)
        entity.block_id = uid

    def _uid_conflict(self, uid: str, entity_id: int, existing: int | str, *, strict: bool) -> None:
        if strict:
            raise DuplicateUidError(uid, entity_id, existing)
        logger.warning("ignoring block uid %r on entity %d: already bound to %r", uid, entity_id, existing)
        self.uid_conflicts.append(UidConflict(uid, entity_id, existing))

    def _resolve(self, intents: list[EdgeIntent]) -> None:
        for intent in intents:
            target = self.entities.get(intent.target)
            if target is None or target.block_id is None:
                logger.debug("dropping dangling %s edge %d -> %d", intent.kind, intent.source, intent.target)
                self.dangling_edges.append(intent)
                continue
            block = self.blocks[target.block_id]
            if intent.kind == EDGE_CHILD:
                block._children.append(intent.source)
            else:
                block._incoming_refs.append(intent.source)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entity(self, entity_id: int) -> Entity:
        try:
            return self.entities[entity_id]
        except KeyError:
            msg = f"no entity with id {entity_id}"
            raise GraphLookupError(msg) from None

    def block(self, uid: str) -> Block:
        try:
            return self.blocks[uid]
        except KeyError:
            msg = f"no block with uid {uid!r}"
            raise GraphLookupError(msg) from None

    def block_of(self, entity_id: int) -> Block:
        entity = self.entity(entity_id)
        if entity.block_id is None:
            msg = f"entity {entity_id} has no {ATTR_UID}"
            raise GraphLookupError(msg)
        return self.blocks[entity.block_id]

    def page(self, title: str) -> Page:
        try:
            return self.pages[title]
        except KeyError:
            msg = f"no page titled {title!r}"
            raise GraphLookupError(msg) from None

    def page_block(self, title: str) -> Block:
        return self.block_of(self.page(title).entity_id)

    def _blocks_for(self, values: list[FactValue], owner: str, attribute: str) -> list[Block]:
        blocks = []
        for value in values:
            if not _is_ref(value):
                msg = f"block {owner} has non-reference {attribute}: {value!r}"
                raise GraphLookupError(msg)
            blocks.append(self.block_of(value))
        return blocks

    def stats(self) -> dict[str, int]:
        return {
            "entities": len(self.entities),
            "facts": self.fact_count,
            "blocks": len(self.blocks),
            "pages": len(self.pages),
            "dangling_edges": len(self.dangling_edges),
            "uid_conflicts": len(self.uid_conflicts),
        }


def _is_ref(value: FactValue) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def build_graph(snapshot: Snapshot, *, strict: bool = False) -> RoamGraph:
    """Build a read-only RoamGraph from a decoded snapshot."""
    return RoamGraph.build(snapshot, strict=strict)
