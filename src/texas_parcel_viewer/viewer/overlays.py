from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from texas_parcel_viewer.errors import LayerNotReady


logger = logging.getLogger("tpv.overlays")


@dataclass
class Overlay:
    id: str
    title: str
    opacity: float
    color: str
    enabled: bool = False

    @property
    def fill_layer(self) -> str:
        return f"{self.id}-fill"

    @property
    def line_layer(self) -> str:
        return f"{self.id}-line"


@dataclass(frozen=True)
class OverlayHit:
    layer: str
    properties: Dict[str, Any] = field(default_factory=dict)


def default_overlays() -> List[Overlay]:
    return [
        Overlay("build_insp", "Building Inspections", 0.4, "#FF9800"),
        Overlay("envi_insp", "Environmental Inspections", 0.4, "#4CAF50"),
        Overlay("board_adjustment_review", "Board Adjustment Review", 0.35, "#673AB7"),
        Overlay("communityRegistry", "Community Registry", 0.35, "#3F51B5"),
        Overlay("roadnetwork", "Road Network", 0.35, "#795548"),
        Overlay("demographicData", "Demographic Data", 0.35, "#E91E63"),
    ]


class OverlayRegistry:
    """Auxiliary overlay datasets and their enabled/opacity state."""

    def __init__(self, overlays: Optional[List[Overlay]] = None) -> None:
        self._overlays = list(overlays if overlays is not None else default_overlays())

    def __iter__(self):
        return iter(self._overlays)

    def __len__(self) -> int:
        return len(self._overlays)

    def get(self, overlay_id: str) -> Overlay:
        for ov in self._overlays:
            if ov.id == overlay_id:
                return ov
        raise KeyError(overlay_id)

    def enabled(self) -> List[Overlay]:
        return [ov for ov in self._overlays if ov.enabled]

    def toggle(self, overlay_id: str, canvas=None) -> bool:
        ov = self.get(overlay_id)
        ov.enabled = not ov.enabled
        if canvas is not None:
            visibility = "visible" if ov.enabled else "none"
            for layer_id in (ov.fill_layer, ov.line_layer):
                try:
                    canvas.set_layout_property(layer_id, "visibility", visibility)
                except LayerNotReady:
                    logger.debug("overlay layer not ready: %s", layer_id)
        return ov.enabled

    def set_opacity(self, overlay_id: str, opacity: float, canvas=None) -> float:
        ov = self.get(overlay_id)
        ov.opacity = min(1.0, max(0.0, float(opacity)))
        if canvas is not None:
            try:
                canvas.set_paint_property(ov.fill_layer, "fill-opacity", ov.opacity)
            except LayerNotReady:
                logger.debug("overlay layer not ready: %s", ov.fill_layer)
        return ov.opacity

    def hits_at(self, canvas, point: Tuple[float, float]) -> List[OverlayHit]:
        """Features of every enabled overlay under the point."""

        hits: List[OverlayHit] = []
        for ov in self.enabled():
            if not canvas.has_layer(ov.fill_layer):
                continue
            try:
                found = canvas.query_rendered_features(point, layers=[ov.fill_layer])
            except LayerNotReady:
                continue
            for feat in found:
                hits.append(OverlayHit(layer=ov.id, properties=dict(feat.get("properties") or {})))
        return hits
