"""Decode a Roam Research EDN export into typed datoms.

The export is a datascript DB dump:

    #datascript/DB {:schema {:block/uid {:db/unique :db.unique/identity} ...}
                    :datoms [[1 :block/uid "abc" 536870913] ...]}

Keywords are stored without the leading colon (``block/uid``). Datom values
are limited to int, str, Keyword and bool; anything else is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import edn_format

from roampub.errors import ParseError

TYPE_TAG = "#datascript/DB"


@dataclass(frozen=True)
class Keyword:
    """A keyword-typed datom value, e.g. ``:db.cardinality/many``."""

    name: str

    def __str__(self) -> str:
        return f":{self.name}"


FactValue = Union[int, str, Keyword, bool]


@dataclass(frozen=True)
class SchemaEntry:
    cardinality: str | None = None
    value_type: str | None = None
    unique: str | None = None


@dataclass(frozen=True)
class Datom:
    entity_id: int
    attribute: str
    value: FactValue
    tx: int


@dataclass
class Snapshot:
    schema: dict[str, SchemaEntry] = field(default_factory=dict)
    datoms: list[Datom] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _keyword_name(obj: Any) -> str | None:
    if isinstance(obj, edn_format.Keyword):
        return obj.name
    return None


def _is_int(obj: Any) -> bool:
    return isinstance(obj, int) and not isinstance(obj, bool)


def _convert_value(obj: Any) -> FactValue | None:
    name = _keyword_name(obj)
    if name is not None:
        return Keyword(name)
    if isinstance(obj, (bool, int, str)):
        return obj
    return None


def _map_get(mapping: Any, key: str) -> Any:
    return mapping.get(edn_format.Keyword(key))


def _decode_schema(raw: Any) -> dict[str, SchemaEntry]:
    if raw is None:
        return {}
    if not hasattr(raw, "items"):
        raise ParseError(f"schema must be a map, got {type(raw).__name__}")

    schema: dict[str, SchemaEntry] = {}
    for key, props in raw.items():
        attr = _keyword_name(key)
        if attr is None:
            raise ParseError(f"schema key {key!r} is not a keyword")
        if not hasattr(props, "get"):
            raise ParseError(f"schema entry for {attr} must be a map")
        schema[attr] = SchemaEntry(
            cardinality=_keyword_name(_map_get(props, "db/cardinality")),
            value_type=_keyword_name(_map_get(props, "db/valueType")),
            unique=_keyword_name(_map_get(props, "db/unique")),
        )
    return schema


def _decode_datom(index: int, record: Any) -> Datom:
    if isinstance(record, (str, bytes)) or not hasattr(record, "__len__"):
        raise ParseError("not a sequence", index=index, record=record)
    if len(record) != 4:
        raise ParseError(f"expected 4 elements, got {len(record)}", index=index, record=record)

    entity_id, attribute, value, tx = record
    if not _is_int(entity_id):
        raise ParseError("entity id is not an integer", index=index, record=record)
    attr = _keyword_name(attribute)
    if not attr:
        raise ParseError("attribute is not a keyword", index=index, record=record)
    converted = _convert_value(value)
    if converted is None:
        raise ParseError(f"unsupported value type {type(value).__name__}", index=index, record=record)
    if not _is_int(tx):
        raise ParseError("transaction id is not an integer", index=index, record=record)
    return Datom(entity_id=entity_id, attribute=attr, value=converted, tx=tx)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_snapshot(text: str) -> Snapshot:
    """Parse export text into a Snapshot. Raises ParseError on any bad record."""
    body = text.lstrip()
    if body.startswith(TYPE_TAG):
        body = body[len(TYPE_TAG):]

    try:
        root = edn_format.loads(body)
    except Exception as exc:
        raise ParseError(f"invalid EDN: {exc}") from exc

    if not hasattr(root, "get"):
        raise ParseError(f"expected a map at top level, got {type(root).__name__}")

    raw_datoms = _map_get(root, "datoms")
    if raw_datoms is None:
        raise ParseError("missing :datoms")
    if isinstance(raw_datoms, (str, bytes)) or not hasattr(raw_datoms, "__iter__"):
        raise ParseError(":datoms must be a sequence")

    return Snapshot(
        schema=_decode_schema(_map_get(root, "schema")),
        datoms=[_decode_datom(i, rec) for i, rec in enumerate(raw_datoms)],
    )


def read_snapshot(path: Path | str) -> Snapshot:
    """Read and decode an export file."""
    return decode_snapshot(Path(path).read_text(encoding="utf-8"))
