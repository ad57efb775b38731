import pytest

from conftest import square

from texas_parcel_viewer.errors import LayerNotReady
from texas_parcel_viewer.viewer import style
from texas_parcel_viewer.viewer.canvas import InMemoryMapCanvas
from texas_parcel_viewer.viewer.overlays import OverlayRegistry


TILEJSON = {
    "tiles": ["http://tiles.test/data/tx/{z}/{x}/{y}.pbf"],
    "bounds": [-106.6, 25.8, -93.5, 36.5],
    "vector_layers": [{"id": "counties", "fields": {"NAME": "String", "COUNTY_ID": "Number"}}],
}


def test_pick_id_property_prefers_candidate_order():
    assert style.pick_id_property(TILEJSON) == "COUNTY_ID"
    fields = {"gid": "Number", "master_id": "String"}
    assert style.pick_id_property({"vector_layers": [{"id": "x", "fields": fields}]}) == "master_id"
    assert style.pick_id_property(None) == "master_id"
    assert style.pick_id_property({"vector_layers": []}) == "master_id"


def test_source_layer_from_tilejson():
    assert style.source_layer_from_tilejson(TILEJSON, "fallback") == "counties"
    assert style.source_layer_from_tilejson({}, "fallback") == "fallback"


def test_parcel_source_variants():
    sample, layer = style.parcel_source("", "Texas_Counties_Baselayer", None)
    assert sample["type"] == "geojson"
    assert layer is None

    vector, layer = style.parcel_source("http://tiles.test", "tx", TILEJSON)
    assert layer == "counties"
    assert vector["promoteId"] == {"counties": "COUNTY_ID"}
    assert vector["tiles"] == TILEJSON["tiles"]

    guessed, layer = style.parcel_source("http://tiles.test", "tx", None)
    assert layer == "tx"
    assert guessed["tiles"] == ["http://tiles.test/data/tx/{z}/{x}/{y}.pbf"]


def test_install_style_is_idempotent():
    canvas = InMemoryMapCanvas()
    overlays = OverlayRegistry()
    for _ in range(2):
        style.install_style(canvas, tile_base="", dataset="tx", tilejson=None, overlays=overlays)
    ids = [layer["id"] for layer in canvas.layers]
    assert len(ids) == len(set(ids))
    assert {"osm-basemap", "satellite-basemap", "parcels-fill", "parcels-outline", "highlight-fill"} <= set(ids)
    assert "roadnetwork-fill" in ids and "roadnetwork-line" in ids
    assert canvas.get_layer("satellite-basemap")["layout"]["visibility"] == "none"


def test_install_style_fits_tilejson_bounds():
    canvas = InMemoryMapCanvas()
    source_layer = style.install_style(
        canvas, tile_base="http://tiles.test", dataset="tx", tilejson=TILEJSON, overlays=OverlayRegistry()
    )
    assert source_layer == "counties"
    assert canvas.fitted == [((-106.6, 25.8), (-93.5, 36.5))]
    assert canvas.get_layer("parcels-fill")["source-layer"] == "counties"


def test_sample_parcel_is_queryable():
    canvas = InMemoryMapCanvas()
    style.install_style(canvas, tile_base="", dataset="tx", tilejson=None, overlays=OverlayRegistry())
    hits = canvas.query_rendered_features((-97.747, 30.272), layers=["parcels-fill"])
    assert [h["properties"]["parcel_id"] for h in hits] == ["P-100"]


def test_set_basemap():
    canvas = InMemoryMapCanvas()
    style.install_base_style(canvas)
    style.set_basemap(canvas, "sat")
    assert canvas.get_layer("osm-basemap")["layout"]["visibility"] == "none"
    assert canvas.get_layer("satellite-basemap")["layout"]["visibility"] == "visible"
    with pytest.raises(ValueError):
        style.set_basemap(canvas, "terrain")


def test_promote_id_sets_feature_id():
    canvas = InMemoryMapCanvas()
    canvas.add_source("parcels", {"type": "vector", "tiles": [], "promoteId": {"counties": "COUNTY_ID"}})
    canvas.add_layer({"id": "parcels-fill", "type": "fill", "source": "parcels", "source-layer": "counties"})
    canvas.load_tile_features(
        "parcels",
        [{"type": "Feature", "properties": {"COUNTY_ID": 227}, "geometry": square(0, 0, 1, 1)}],
        source_layer="counties",
    )
    hit = canvas.query_rendered_features((0.5, 0.5), layers=["parcels-fill"])[0]
    assert hit["id"] == 227
    assert hit["sourceLayer"] == "counties"


def test_query_missing_layer_raises():
    with pytest.raises(LayerNotReady):
        InMemoryMapCanvas().query_rendered_features((0, 0), layers=["parcels-fill"])
