from __future__ import annotations

import logging
from typing import Protocol

from texas_parcel_viewer.errors import LayerNotReady
from texas_parcel_viewer.selection.state import Selection
from texas_parcel_viewer.viewer.style import HIGHLIGHT_SOURCE


logger = logging.getLogger("tpv.highlight")


class HighlightRenderer(Protocol):
    def apply_highlight(self, selection: Selection) -> None: ...

    def release_highlight(self, selection: Selection) -> None: ...


class MapHighlightRenderer:
    """Feature-state highlight for addressable selections, overlay source otherwise."""

    def __init__(self, canvas, source_id: str = HIGHLIGHT_SOURCE) -> None:
        self.canvas = canvas
        self.source_id = source_id

    @staticmethod
    def _target(selection: Selection) -> dict:
        target = {"source": selection.source, "id": selection.identifier}
        if selection.source_layer:
            target["sourceLayer"] = selection.source_layer
        return target

    def _set_overlay(self, geometry) -> None:
        features = []
        if geometry is not None:
            features.append({"type": "Feature", "properties": {}, "geometry": geometry})
        self.canvas.set_geojson_data(
            self.source_id, {"type": "FeatureCollection", "features": features}
        )

    def apply_highlight(self, selection: Selection) -> None:
        try:
            if selection.ephemeral:
                self._set_overlay(selection.geometry)
            else:
                self.canvas.set_feature_state(self._target(selection), {"selected": True})
        except LayerNotReady as exc:
            logger.debug("highlight skipped: %s", exc)

    def release_highlight(self, selection: Selection) -> None:
        try:
            if selection.ephemeral:
                self._set_overlay(None)
            else:
                self.canvas.set_feature_state(self._target(selection), {"selected": False})
        except LayerNotReady as exc:
            logger.debug("highlight release skipped: %s", exc)
