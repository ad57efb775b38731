from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from texas_parcel_viewer.api.schemas import ParcelDetail
from texas_parcel_viewer.viewer.overlays import OverlayHit


@dataclass(frozen=True)
class Selection:
    """The parcel currently highlighted on the map.

    Addressable selections carry an identifier and are highlighted through
    feature state; ephemeral ones carry only the raw geometry.
    """

    identifier: Any = None
    source: str = "parcels"
    source_layer: Optional[str] = None
    geometry: Optional[Dict[str, Any]] = None

    @property
    def ephemeral(self) -> bool:
        return self.identifier is None

    @classmethod
    def addressable(cls, identifier: Any, source: str, source_layer: Optional[str]) -> "Selection":
        return cls(identifier=identifier, source=source, source_layer=source_layer)

    @classmethod
    def geometry_only(cls, geometry: Optional[Dict[str, Any]], source: str = "parcels") -> "Selection":
        return cls(identifier=None, source=source, geometry=geometry)


class PendingFetch:
    """Token for the latest requested detail fetch.

    Results are applied only while their token is still the controller's
    current one; identity comparison keeps two requests for the same
    identifier distinct.
    """

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier

    def __repr__(self) -> str:
        return f"PendingFetch({self.identifier!r})"


@dataclass
class ViewerState:
    status: str = "Initializing..."
    panel_open: bool = False
    detail: Optional[ParcelDetail] = None
    overlay_info: List[OverlayHit] = field(default_factory=list)
    popup_label: Optional[str] = None
    fetching: bool = False
    busy: bool = False
