"""Messages exchanged with the host runtime."""

from __future__ import annotations

import dataclasses
from typing import Any

import wattpy.types as t


@dataclasses.dataclass(frozen=True)
class AttributePath:
    """An attribute on one endpoint, or on every endpoint when `endpoint_id` is None"""

    endpoint_id: int | None
    cluster_id: t.ClusterId
    attribute_id: t.AttributeId

    def __post_init__(self) -> None:
        object.__setattr__(self, "cluster_id", t.ClusterId(self.cluster_id))
        object.__setattr__(self, "attribute_id", t.AttributeId(self.attribute_id))

    def __repr__(self) -> str:
        endpoint = "*" if self.endpoint_id is None else self.endpoint_id
        return f"<AttributePath {endpoint}/{self.cluster_id}/{self.attribute_id}>"


@dataclasses.dataclass
class _PathRequest:
    paths: list[AttributePath] = dataclasses.field(default_factory=list)

    def add(self, path: AttributePath) -> None:
        if path not in self.paths:
            self.paths.append(path)

    def merge(self, other: _PathRequest) -> None:
        for path in other.paths:
            self.add(path)

    def __len__(self) -> int:
        return len(self.paths)

    def __bool__(self) -> bool:
        return bool(self.paths)


@dataclasses.dataclass
class ReadRequest(_PathRequest):
    """A single read of one or more attributes, possibly on several endpoints"""


@dataclasses.dataclass
class SubscribeRequest(_PathRequest):
    """Subscription to reports of one or more attributes"""


@dataclasses.dataclass(frozen=True)
class AttributeReport:
    """A decoded attribute value delivered by the host, from a report or a read"""

    endpoint_id: int
    cluster_id: int
    attribute_id: int
    value: Any = None
