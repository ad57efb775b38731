from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from texas_parcel_viewer.errors import LayerNotReady
from texas_parcel_viewer.geometry import Bounds, bounds_of
from texas_parcel_viewer.viewer.style import PARCEL_FILL


logger = logging.getLogger("tpv.locator")

IDENTIFIER_PROPERTIES = ("master_id", "MASTER_ID", "masterId", "id", "__id")

SEARCH_PROPERTIES = (
    ("master_id", "MASTER_ID", "masterId"),
    ("prop_id", "Prop_Id", "propId"),
    ("parcel_id", "parcelId"),
)


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _first_present(props: Dict[str, Any], names) -> Any:
    for name in names:
        if _present(props.get(name)):
            return props[name]
    return None


class FeatureLocator:
    """Queries rendered features of the parcel layer.

    Queries never raise; a layer that is not installed yet yields no features.
    """

    def __init__(self, canvas, layer: str = PARCEL_FILL) -> None:
        self.canvas = canvas
        self.layer = layer

    def is_ready(self, layer: Optional[str] = None) -> bool:
        return self.canvas.has_layer(layer or self.layer)

    def features_at(self, point: Tuple[float, float], layer: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            return self.canvas.query_rendered_features(point, layers=[layer or self.layer])
        except LayerNotReady:
            logger.debug("point query before layer ready: %s", layer or self.layer)
            return []

    def rendered_features(self, layer: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            return self.canvas.query_rendered_features(None, layers=[layer or self.layer])
        except LayerNotReady:
            logger.debug("rendered query before layer ready: %s", layer or self.layer)
            return []

    def find_rendered(self, text: str, layer: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """First rendered feature whose id-like properties match text, ignoring case."""

        needle = str(text).strip().lower()
        if not needle:
            return None
        for feat in self.rendered_features(layer):
            props = feat.get("properties") or {}
            for names in SEARCH_PROPERTIES:
                value = _first_present(props, names)
                if _present(value) and str(value).lower() == needle:
                    return feat
        return None

    def find_by_master_id(self, master_id: Any, layer: Optional[str] = None) -> Optional[Dict[str, Any]]:
        target = str(master_id).lower()
        for feat in self.rendered_features(layer):
            props = feat.get("properties") or {}
            value = _first_present(props, SEARCH_PROPERTIES[0])
            if _present(value) and str(value).lower() == target:
                return feat
        return None

    @staticmethod
    def identifier_of(feature: Dict[str, Any]) -> Any:
        """Explicit feature id, else the first id-like property, else None."""

        if _present(feature.get("id")):
            return feature["id"]
        return _first_present(feature.get("properties") or {}, IDENTIFIER_PROPERTIES)

    @staticmethod
    def bounds_of(feature: Dict[str, Any]) -> Bounds:
        return bounds_of(feature.get("geometry"))
