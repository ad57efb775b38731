"""Map canvas capability used by the selection controller.

`MapCanvas` lists the MapLibre-like operations the viewer relies on.
`InMemoryMapCanvas` implements them over plain GeoJSON so the viewer runs
headless in the CLI and in tests. Rendering order follows style order:
later layers, and later features within a layer, are on top.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from texas_parcel_viewer.errors import GeometryError, LayerNotReady
from texas_parcel_viewer.geometry import Bounds, contains_point


logger = logging.getLogger("tpv.canvas")

Point = Tuple[float, float]


class MapCanvas(Protocol):
    def has_source(self, source_id: str) -> bool: ...

    def add_source(self, source_id: str, spec: Dict[str, Any]) -> None: ...

    def set_geojson_data(self, source_id: str, data: Dict[str, Any]) -> None: ...

    def has_layer(self, layer_id: str) -> bool: ...

    def add_layer(self, spec: Dict[str, Any]) -> None: ...

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None: ...

    def set_paint_property(self, layer_id: str, name: str, value: Any) -> None: ...

    def set_feature_state(self, target: Dict[str, Any], state: Dict[str, Any]) -> None: ...

    def query_rendered_features(
        self, point: Optional[Point] = None, layers: Optional[Sequence[str]] = None
    ) -> List[Dict[str, Any]]: ...

    def fit_bounds(self, bounds: Bounds, padding: int = 40) -> None: ...


class InMemoryMapCanvas:
    def __init__(self, center: Point = (-99.5, 31.25), zoom: float = 8.5) -> None:
        self.center = center
        self.zoom = zoom
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.layers: List[Dict[str, Any]] = []
        self.feature_states: Dict[Tuple[str, Optional[str], str], Dict[str, Any]] = {}
        self.fitted: List[Bounds] = []
        # vector tile features keyed by (source, source-layer)
        self._tiles: Dict[Tuple[str, Optional[str]], List[Dict[str, Any]]] = {}

    def has_source(self, source_id: str) -> bool:
        return source_id in self.sources

    def add_source(self, source_id: str, spec: Dict[str, Any]) -> None:
        if source_id in self.sources:
            raise ValueError(f"source already exists: {source_id}")
        self.sources[source_id] = copy.deepcopy(spec)

    def _source(self, source_id: str) -> Dict[str, Any]:
        src = self.sources.get(source_id)
        if src is None:
            raise LayerNotReady(source_id)
        return src

    def set_geojson_data(self, source_id: str, data: Dict[str, Any]) -> None:
        src = self._source(source_id)
        if src.get("type") != "geojson":
            raise ValueError(f"source is not geojson: {source_id}")
        src["data"] = copy.deepcopy(data)

    def load_tile_features(
        self, source_id: str, features: List[Dict[str, Any]], source_layer: Optional[str] = None
    ) -> None:
        """Stand-in for tiles arriving from the tile server."""

        self._source(source_id)
        self._tiles[(source_id, source_layer)] = copy.deepcopy(features)

    def has_layer(self, layer_id: str) -> bool:
        return any(layer["id"] == layer_id for layer in self.layers)

    def get_layer(self, layer_id: str) -> Dict[str, Any]:
        for layer in self.layers:
            if layer["id"] == layer_id:
                return layer
        raise LayerNotReady(layer_id)

    def add_layer(self, spec: Dict[str, Any]) -> None:
        if self.has_layer(spec["id"]):
            raise ValueError(f"layer already exists: {spec['id']}")
        if "source" in spec:
            self._source(spec["source"])
        layer = copy.deepcopy(spec)
        layer.setdefault("layout", {})
        layer.setdefault("paint", {})
        self.layers.append(layer)

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None:
        self.get_layer(layer_id)["layout"][name] = value

    def set_paint_property(self, layer_id: str, name: str, value: Any) -> None:
        self.get_layer(layer_id)["paint"][name] = value

    def set_feature_state(self, target: Dict[str, Any], state: Dict[str, Any]) -> None:
        source_id = target["source"]
        self._source(source_id)
        key = (source_id, target.get("sourceLayer"), str(target["id"]))
        self.feature_states.setdefault(key, {}).update(state)

    def get_feature_state(self, target: Dict[str, Any]) -> Dict[str, Any]:
        key = (target["source"], target.get("sourceLayer"), str(target["id"]))
        return dict(self.feature_states.get(key, {}))

    def _features_for(self, layer: Dict[str, Any]) -> List[Dict[str, Any]]:
        source_id = layer.get("source")
        if source_id is None:
            return []
        src = self._source(source_id)
        source_layer = layer.get("source-layer")
        if src.get("type") == "geojson":
            data = src.get("data") or {}
            if isinstance(data, dict) and data.get("type") == "FeatureCollection":
                raw = data.get("features") or []
            elif isinstance(data, dict) and data.get("type") == "Feature":
                raw = [data]
            else:
                raw = []
        else:
            raw = self._tiles.get((source_id, source_layer), [])
        promote = src.get("promoteId")
        if isinstance(promote, dict):
            promote = promote.get(source_layer)
        out = []
        for feat in raw:
            props = dict(feat.get("properties") or {})
            fid = feat.get("id")
            if promote and props.get(promote) is not None:
                fid = props.get(promote)
            out.append(
                {
                    "type": "Feature",
                    "id": fid,
                    "properties": props,
                    "geometry": feat.get("geometry"),
                    "source": source_id,
                    "sourceLayer": source_layer,
                    "layer": {"id": layer["id"]},
                }
            )
        return out

    def query_rendered_features(
        self, point: Optional[Point] = None, layers: Optional[Sequence[str]] = None
    ) -> List[Dict[str, Any]]:
        if layers is None:
            targets = list(self.layers)
        else:
            targets = [self.get_layer(name) for name in layers]
        hits: List[Dict[str, Any]] = []
        for layer in reversed(targets):
            if layer["layout"].get("visibility") == "none":
                continue
            for feat in reversed(self._features_for(layer)):
                if point is not None:
                    try:
                        if not contains_point(feat["geometry"], point):
                            continue
                    except GeometryError:
                        logger.debug("skipping feature with bad geometry id=%s", feat["id"])
                        continue
                hits.append(feat)
        return hits

    def fit_bounds(self, bounds: Bounds, padding: int = 40) -> None:
        (minx, miny), (maxx, maxy) = bounds
        self.fitted.append(bounds)
        self.center = ((minx + maxx) / 2.0, (miny + maxy) / 2.0)
