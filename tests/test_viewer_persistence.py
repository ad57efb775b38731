from texas_parcel_viewer.viewer.persistence import UrlState, ViewerStateSQLite


def test_bbox_cache_round_trip(tmp_path):
    store = ViewerStateSQLite(str(tmp_path / "state.sqlite"))
    try:
        store.save_bbox("abc", ((-97.75, 30.27), (-97.745, 30.274)))
        store.save_bbox("abc", ((1, 2), (3, 4)))
        assert store.load_bbox("abc") == ((1.0, 2.0), (3.0, 4.0))
        assert store.load_bbox("missing") is None
    finally:
        store.close()


def test_entered_flag_persists(tmp_path):
    path = str(tmp_path / "state.sqlite")
    store = ViewerStateSQLite(path)
    assert store.is_entered() is False
    store.set_entered(True)
    store.close()

    reopened = ViewerStateSQLite(path)
    try:
        assert reopened.is_entered() is True
    finally:
        reopened.close()


def test_url_state_keeps_other_params():
    url = UrlState("http://viewer.test/map?basemap=sat&id=old")
    assert url.get_id() == "old"
    url.set_id("new id")
    assert url.get_id() == "new id"
    assert "basemap=sat" in url.url
    url.remove_id()
    assert url.get_id() is None
    assert url.url == "http://viewer.test/map?basemap=sat"
