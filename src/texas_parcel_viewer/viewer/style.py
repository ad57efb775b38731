"""Base map style, TileJSON helpers and idempotent layer installation."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from texas_parcel_viewer.errors import GeometryError, LayerNotReady
from texas_parcel_viewer.viewer.overlays import OverlayRegistry


logger = logging.getLogger("tpv.style")

TEXAS_CENTER = (-99.5, 31.25)
TEXAS_ZOOM = 8.5

PARCEL_SOURCE = "parcels"
PARCEL_FILL = "parcels-fill"
PARCEL_OUTLINE = "parcels-outline"
HIGHLIGHT_SOURCE = "highlight-source"

BASEMAP_LAYERS = {"osm": "osm-basemap", "sat": "satellite-basemap"}

ID_PROPERTY_CANDIDATES = (
    "master_id",
    "MASTER_ID",
    "masterId",
    "id",
    "gid",
    "fid",
    "parcel_id",
    "parcelId",
    "COUNTY_ID",
)

SAMPLE_PARCELS_GEOJSON: Dict[str, Any] = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {
                "parcel_id": "P-100",
                "prop_id": "PROP-100",
                "owner": "Alice",
                "market_value": 125000,
                "master_id": "00000000-0000-0000-0000-000000000100",
            },
            "geometry": {
                "type": "Polygon",
                "coordinates": [
                    [
                        [-97.75, 30.27],
                        [-97.745, 30.27],
                        [-97.745, 30.274],
                        [-97.75, 30.274],
                        [-97.75, 30.27],
                    ]
                ],
            },
        }
    ],
}

_EMPTY_FC = {"type": "FeatureCollection", "features": []}


def _selected(on: Any, off: Any) -> list:
    return ["case", ["boolean", ["feature-state", "selected"], False], on, off]


def pick_id_property(tilejson: Optional[Dict[str, Any]]) -> str:
    if not tilejson:
        return "master_id"
    layers = tilejson.get("vector_layers")
    if isinstance(layers, list) and layers:
        fields = layers[0].get("fields") if isinstance(layers[0], dict) else None
        if isinstance(fields, dict):
            for name in ID_PROPERTY_CANDIDATES:
                if name in fields:
                    return name
    return "master_id"


def source_layer_from_tilejson(tilejson: Optional[Dict[str, Any]], fallback: str) -> str:
    if not tilejson:
        return fallback
    layers = tilejson.get("vector_layers")
    if isinstance(layers, list) and layers and isinstance(layers[0], dict):
        return layers[0].get("id") or fallback
    return fallback


def tilejson_bounds(tilejson: Optional[Dict[str, Any]]):
    bounds = (tilejson or {}).get("bounds")
    if isinstance(bounds, list) and len(bounds) == 4:
        w, s, e, n = (float(v) for v in bounds)
        return ((w, s), (e, n))
    return None


def parcel_source(
    tile_base: str, dataset: str, tilejson: Optional[Dict[str, Any]]
) -> Tuple[Dict[str, Any], Optional[str]]:
    """Return (source spec, source layer) for the parcel layer.

    Without a tile base the sample GeoJSON is served and there is no source layer.
    """

    if not tile_base:
        return {"type": "geojson", "data": SAMPLE_PARCELS_GEOJSON}, None
    default_tiles = [f"{tile_base}/data/{dataset}/{{z}}/{{x}}/{{y}}.pbf"]
    if tilejson:
        source_layer = source_layer_from_tilejson(tilejson, dataset)
        tiles = tilejson.get("tiles") or default_tiles
        id_prop = pick_id_property(tilejson)
    else:
        source_layer = dataset
        tiles = default_tiles
        id_prop = "master_id"
    spec = {
        "type": "vector",
        "tiles": list(tiles),
        "maxzoom": 14,
        "promoteId": {source_layer: id_prop},
    }
    return spec, source_layer


def install_base_style(canvas) -> None:
    if not canvas.has_source("osm"):
        canvas.add_source(
            "osm",
            {
                "type": "raster",
                "tiles": ["https://tile.openstreetmap.org/{z}/{x}/{y}.png"],
                "tileSize": 256,
            },
        )
    if not canvas.has_source("satellite"):
        canvas.add_source(
            "satellite",
            {
                "type": "raster",
                "tiles": [
                    "https://services.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}"
                ],
                "tileSize": 256,
            },
        )
    if not canvas.has_layer("osm-basemap"):
        canvas.add_layer({"id": "osm-basemap", "type": "raster", "source": "osm"})
    if not canvas.has_layer("satellite-basemap"):
        canvas.add_layer(
            {
                "id": "satellite-basemap",
                "type": "raster",
                "source": "satellite",
                "layout": {"visibility": "none"},
            }
        )


def set_basemap(canvas, basemap: str) -> None:
    if basemap not in BASEMAP_LAYERS:
        raise ValueError(f"unknown basemap: {basemap}")
    for name, layer_id in BASEMAP_LAYERS.items():
        canvas.set_layout_property(layer_id, "visibility", "visible" if name == basemap else "none")


def install_parcel_layers(canvas, source_spec: Dict[str, Any], source_layer: Optional[str]) -> None:
    if not canvas.has_source(PARCEL_SOURCE):
        canvas.add_source(PARCEL_SOURCE, source_spec)
    if not canvas.has_layer(PARCEL_FILL):
        layer = {
            "id": PARCEL_FILL,
            "type": "fill",
            "source": PARCEL_SOURCE,
            "paint": {
                "fill-color": _selected("#2563eb", "#cbd5e1"),
                "fill-opacity": _selected(0.75, 0.55),
            },
        }
        if source_layer:
            layer["source-layer"] = source_layer
        canvas.add_layer(layer)
    if not canvas.has_layer(PARCEL_OUTLINE):
        outline = {
            "id": PARCEL_OUTLINE,
            "type": "line",
            "source": PARCEL_SOURCE,
            "paint": {"line-color": _selected("#1e3a8a", "#64748b"), "line-width": 1},
        }
        if source_layer:
            outline["source-layer"] = source_layer
        canvas.add_layer(outline)


def install_highlight_layers(canvas) -> None:
    if not canvas.has_source(HIGHLIGHT_SOURCE):
        canvas.add_source(HIGHLIGHT_SOURCE, {"type": "geojson", "data": _EMPTY_FC})
    if not canvas.has_layer("highlight-fill"):
        canvas.add_layer(
            {
                "id": "highlight-fill",
                "type": "fill",
                "source": HIGHLIGHT_SOURCE,
                "paint": {"fill-color": "#3b82f6", "fill-opacity": 0.25},
            }
        )
    if not canvas.has_layer("highlight-line"):
        canvas.add_layer(
            {
                "id": "highlight-line",
                "type": "line",
                "source": HIGHLIGHT_SOURCE,
                "paint": {"line-color": "#1e40af", "line-width": 2},
            }
        )


def install_overlay_layers(canvas, overlays: OverlayRegistry, tile_base: str) -> None:
    for ov in overlays:
        visibility = "visible" if ov.enabled else "none"
        try:
            if not canvas.has_source(ov.id):
                canvas.add_source(
                    ov.id,
                    {
                        "type": "vector",
                        "tiles": [f"{tile_base}/data/{ov.id}/{{z}}/{{x}}/{{y}}.pbf"],
                        "maxzoom": 14,
                    },
                )
            if not canvas.has_layer(ov.fill_layer):
                canvas.add_layer(
                    {
                        "id": ov.fill_layer,
                        "type": "fill",
                        "source": ov.id,
                        "source-layer": ov.id,
                        "paint": {"fill-color": ov.color or "#0088ff", "fill-opacity": ov.opacity},
                        "layout": {"visibility": visibility},
                    }
                )
            if not canvas.has_layer(ov.line_layer):
                canvas.add_layer(
                    {
                        "id": ov.line_layer,
                        "type": "line",
                        "source": ov.id,
                        "source-layer": ov.id,
                        "paint": {"line-color": "#222", "line-width": 1},
                        "layout": {"visibility": visibility},
                    }
                )
        except (LayerNotReady, ValueError) as exc:
            logger.debug("overlay add failed id=%s error=%s", ov.id, exc)


def install_style(
    canvas,
    *,
    tile_base: str,
    dataset: str,
    tilejson: Optional[Dict[str, Any]],
    overlays: OverlayRegistry,
) -> Optional[str]:
    """Install every source and layer the viewer needs; returns the parcel source layer.

    Safe to call more than once.
    """

    install_base_style(canvas)
    bounds = tilejson_bounds(tilejson)
    if bounds is not None:
        try:
            canvas.fit_bounds(bounds, padding=40)
        except (GeometryError, LayerNotReady) as exc:
            logger.debug("tilejson bounds fit failed: %s", exc)
    spec, source_layer = parcel_source(tile_base, dataset, tilejson)
    install_parcel_layers(canvas, spec, source_layer)
    install_highlight_layers(canvas)
    install_overlay_layers(canvas, overlays, tile_base)
    return source_layer
