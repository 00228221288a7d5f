"""Exception hierarchy for roampub.

Decode and graph errors are fatal for a whole run; assembly and render
errors are scoped to a single post.
"""

from __future__ import annotations

from typing import Any


class RoamPubError(Exception):
    """Base class for every error raised by roampub."""


class ParseError(RoamPubError, ValueError):
    """The snapshot text or one of its datom records is malformed."""

    def __init__(self, message: str, *, index: int | None = None, record: Any = None) -> None:
        if index is not None:
            message = f"datom #{index} {record!r}: {message}"
        super().__init__(message)
        self.index = index
        self.record = record


class GraphLookupError(RoamPubError, LookupError):
    """A page, block, entity or required attribute does not exist."""


class DuplicateUidError(RoamPubError):
    """A block uid was bound more than once."""

    def __init__(self, uid: str, entity_id: int, existing: int | str) -> None:
        super().__init__(f"block uid {uid!r} on entity {entity_id} conflicts with existing binding {existing!r}")
        self.uid = uid
        self.entity_id = entity_id
        self.existing = existing


class AssemblyError(RoamPubError):
    """A post's descendants cannot be arranged into a tree."""

    def __init__(self, message: str, *, root_uid: str, node_uid: str | None = None) -> None:
        super().__init__(f"post {root_uid}: {message}")
        self.root_uid = root_uid
        self.node_uid = node_uid


class RenderError(RoamPubError):
    """A document tree exceeded the configured nesting depth."""
