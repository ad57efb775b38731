"""Failure taxonomy shared by the viewer components.

`NotFound` and `TransportError` are returned as values by the detail client;
`LayerNotReady` and `GeometryError` are raised by the canvas and geometry
helpers and caught at the selection controller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


class ViewerError(Exception):
    """Base class for raised viewer failures."""


class LayerNotReady(ViewerError):
    """A map layer or source was used before the style finished loading."""

    def __init__(self, name: str) -> None:
        super().__init__(f"layer or source not ready: {name}")
        self.name = name


class GeometryError(ViewerError):
    """Malformed or missing geometry for bbox/intersection computation."""


@dataclass(frozen=True)
class Found:
    record: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound:
    identifier: str
    note: Optional[str] = None

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class TransportError:
    """Network or HTTP failure; status is 0 when no response arrived."""

    status: int
    message: str
    body: Any = None

    @property
    def ok(self) -> bool:
        return False
