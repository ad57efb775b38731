from conftest import MASTER_A, square

from texas_parcel_viewer.selection.highlight import MapHighlightRenderer
from texas_parcel_viewer.selection.locator import FeatureLocator
from texas_parcel_viewer.selection.state import Selection
from texas_parcel_viewer.viewer.canvas import InMemoryMapCanvas


def test_addressable_highlight_uses_feature_state(parcel_canvas):
    renderer = MapHighlightRenderer(parcel_canvas)
    selection = Selection.addressable(MASTER_A, "parcels", "counties")
    target = {"source": "parcels", "sourceLayer": "counties", "id": MASTER_A}

    renderer.apply_highlight(selection)
    assert parcel_canvas.get_feature_state(target) == {"selected": True}
    assert parcel_canvas.sources["highlight-source"]["data"]["features"] == []

    renderer.release_highlight(selection)
    assert parcel_canvas.get_feature_state(target) == {"selected": False}


def test_ephemeral_highlight_writes_overlay_source(parcel_canvas):
    renderer = MapHighlightRenderer(parcel_canvas)
    selection = Selection.geometry_only(square(4, 0, 5, 1))

    renderer.apply_highlight(selection)
    features = parcel_canvas.sources["highlight-source"]["data"]["features"]
    assert [f["geometry"] for f in features] == [square(4, 0, 5, 1)]
    assert parcel_canvas.feature_states == {}

    renderer.release_highlight(selection)
    assert parcel_canvas.sources["highlight-source"]["data"]["features"] == []


def test_highlight_before_sources_exist_is_noop():
    renderer = MapHighlightRenderer(InMemoryMapCanvas())
    renderer.apply_highlight(Selection.addressable("x", "parcels", None))
    renderer.apply_highlight(Selection.geometry_only(square(0, 0, 1, 1)))


def test_identifier_resolution_order():
    assert FeatureLocator.identifier_of({"id": 7, "properties": {"master_id": "m"}}) == 7
    assert FeatureLocator.identifier_of({"id": None, "properties": {"MASTER_ID": "M", "id": "i"}}) == "M"
    assert FeatureLocator.identifier_of({"properties": {"__id": "z"}}) == "z"
    assert FeatureLocator.identifier_of({"properties": {"master_id": "", "masterId": "mm"}}) == "mm"
    assert FeatureLocator.identifier_of({"properties": {"parcel_id": "P"}}) is None


def test_locator_before_layer_ready_returns_nothing():
    locator = FeatureLocator(InMemoryMapCanvas())
    assert locator.features_at((0, 0)) == []
    assert locator.rendered_features() == []
    assert locator.find_rendered("anything") is None
    assert locator.is_ready() is False


def test_point_query_is_topmost_first(parcel_canvas):
    parcel_canvas.sources["parcels"]["data"]["features"].append(
        {"type": "Feature", "properties": {"master_id": "top"}, "geometry": square(0, 0, 2, 2)}
    )
    hits = FeatureLocator(parcel_canvas).features_at((0.5, 0.5))
    assert [h["properties"]["master_id"] for h in hits] == ["top", MASTER_A]


def test_find_rendered_matches_prop_id(parcel_canvas):
    found = FeatureLocator(parcel_canvas).find_rendered("prop-a")
    assert found["properties"]["master_id"] == MASTER_A
