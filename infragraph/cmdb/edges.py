"""Structured edge references.

Edge routing records are keyed by a textual edge id that the canvas client
builds from the endpoint kinds and ids::

    e{item}-{item}            item -> item
    e{item}-group{group}      item -> group
    group{group}-e{item}      group -> item
    group-e{group}-{group}    group -> group

Inside the service an edge is always an :class:`EdgeRef`.  The string form is
only produced or parsed at the API boundary.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from infragraph.cmdb.models.enums import ConnectionShape

_PATTERNS: dict[ConnectionShape, re.Pattern[str]] = {
    ConnectionShape.ITEM_ITEM: re.compile(r"e(\d+)-(\d+)"),
    ConnectionShape.ITEM_GROUP: re.compile(r"e(\d+)-group(\d+)"),
    ConnectionShape.GROUP_ITEM: re.compile(r"group(\d+)-e(\d+)"),
    ConnectionShape.GROUP_GROUP: re.compile(r"group-e(\d+)-(\d+)"),
}

_FORMATS: dict[ConnectionShape, str] = {
    ConnectionShape.ITEM_ITEM: "e{a}-{b}",
    ConnectionShape.ITEM_GROUP: "e{a}-group{b}",
    ConnectionShape.GROUP_ITEM: "group{a}-e{b}",
    ConnectionShape.GROUP_GROUP: "group-e{a}-{b}",
}


class EdgeIdError(ValueError):
    """Raised when an edge id matches none of the known shapes."""


@dataclass(frozen=True, slots=True)
class EdgeRef:
    """A directed edge identified by its shape and endpoint ids.

    ``a`` is the source endpoint, ``b`` the target; whether each is an item or
    a group follows from ``kind``.
    """

    kind: ConnectionShape
    a: int
    b: int

    @classmethod
    def parse(cls, edge_id: str) -> EdgeRef:
        """Parse the textual edge id.  Raises ``EdgeIdError`` if it is not recognised."""
        for kind, pattern in _PATTERNS.items():
            match = pattern.fullmatch(edge_id)
            if match:
                return cls(kind, int(match.group(1)), int(match.group(2)))
        msg = f"Unrecognised edge id: {edge_id!r}"
        raise EdgeIdError(msg)

    def __str__(self) -> str:
        return _FORMATS[self.kind].format(a=self.a, b=self.b)

    def involves_item(self, item_id: int) -> bool:
        return (not self.kind.source_is_group and self.a == item_id) or (
            not self.kind.target_is_group and self.b == item_id
        )

    def involves_group(self, group_id: int) -> bool:
        return (self.kind.source_is_group and self.a == group_id) or (self.kind.target_is_group and self.b == group_id)

    def remap(self, item_map: Mapping[int, int], group_map: Mapping[int, int]) -> EdgeRef | None:
        """Substitute both endpoint ids.  Returns ``None`` if either has no mapping."""
        a = (group_map if self.kind.source_is_group else item_map).get(self.a)
        b = (group_map if self.kind.target_is_group else item_map).get(self.b)
        if a is None or b is None:
            return None
        return EdgeRef(self.kind, a, b)
