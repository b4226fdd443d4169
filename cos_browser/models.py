from __future__ import annotations
"""Data models describing listing state."""
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ListingCounts:
    """Directory and file counts reported by the most recent page."""

    dir_count: int = 0
    file_count: int = 0

    @property
    def total(self) -> int:
        return self.dir_count + self.file_count


@dataclass
class ListingCursor:
    """Continuation state of a paged listing."""

    base_path: str
    options: dict[str, Any] = field(default_factory=dict)
    context: Optional[str] = None
    has_more: bool = True
    buffer: deque = field(default_factory=deque)
    dir_count: int = 0
    file_count: int = 0

    def request_options(self, bucket_name: str) -> dict[str, Any]:
        options = dict(self.options)
        options["bucket"] = bucket_name
        if self.context:
            options["context"] = self.context
        else:
            options.pop("context", None)
        return options


@dataclass
class ResourceTree:
    """A directory resource together with its nested children."""

    resource: Any
    children: list[ResourceTree] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource": self.resource.to_dict(),
            "children": [child.to_dict() for child in self.children],
        }
