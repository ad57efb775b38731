import asyncio
import os
import socket
import sys
import urllib.request
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0]
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point every TPV_* path at tmp_path and reset process caches."""

    from texas_parcel_viewer.cache import cache_clear
    from texas_parcel_viewer.config import reset_settings_cache

    monkeypatch.setenv("TPV_DB_PATH", str(tmp_path / "parcels.sqlite"))
    monkeypatch.setenv("TPV_STATE_PATH", str(tmp_path / "viewer_state.sqlite"))
    monkeypatch.setenv("TPV_API_BASE", "http://api.test")
    monkeypatch.delenv("TPV_TILE_BASE", raising=False)
    monkeypatch.delenv("TPV_LOG_FORMAT", raising=False)
    monkeypatch.delenv("TPV_CACHE", raising=False)
    reset_settings_cache()
    cache_clear()
    yield
    reset_settings_cache()
    cache_clear()


def square(minx, miny, maxx, maxy):
    return {
        "type": "Polygon",
        "coordinates": [
            [[minx, miny], [maxx, miny], [maxx, maxy], [minx, maxy], [minx, miny]]
        ],
    }


class RecordingRenderer:
    """Highlight renderer that records apply/release calls."""

    def __init__(self):
        self.calls = []
        self.active = []

    def apply_highlight(self, selection):
        self.calls.append(("apply", selection))
        self.active.append(selection)

    def release_highlight(self, selection):
        self.calls.append(("release", selection))
        if selection in self.active:
            self.active.remove(selection)


class FakeDetailClient:
    """Detail client with scripted results; `gate` futures hold responses back."""

    def __init__(self, details=None, parcels=None):
        self.details = dict(details or {})
        self.parcels = dict(parcels or {})
        self.detail_calls = []
        self.parcel_calls = []
        self.gates = {}

    def hold(self, identifier):
        fut = asyncio.get_running_loop().create_future()
        self.gates[identifier] = fut
        return fut

    async def _result(self, table, identifier):
        from texas_parcel_viewer.errors import NotFound

        gate = self.gates.pop(identifier, None)
        if gate is not None:
            await gate
        result = table.get(identifier)
        if result is None:
            return NotFound(identifier=identifier, note="no_match")
        return result

    async def fetch_details(self, identifier):
        self.detail_calls.append(identifier)
        return await self._result(self.details, identifier)

    async def fetch_parcel(self, text):
        self.parcel_calls.append(text)
        return await self._result(self.parcels, text)

    async def fetch_tilejson(self, name):
        return None

    async def aclose(self):
        return None


@pytest.fixture
def recording_renderer():
    return RecordingRenderer()


@pytest.fixture
def fake_client():
    return FakeDetailClient()


MASTER_A = "aaaaaaaa-0000-0000-0000-000000000001"
MASTER_B = "bbbbbbbb-0000-0000-0000-000000000002"


def parcel_collection():
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"master_id": MASTER_A, "prop_id": "PROP-A", "parcel_id": "P-A"},
                "geometry": square(0, 0, 1, 1),
            },
            {
                "type": "Feature",
                "properties": {"master_id": MASTER_B, "prop_id": "PROP-B", "parcel_id": "P-B"},
                "geometry": square(2, 0, 3, 1),
            },
            {
                "type": "Feature",
                "properties": {"owner": "nobody"},
                "geometry": square(4, 0, 5, 1),
            },
        ],
    }


@pytest.fixture
def parcel_canvas():
    from texas_parcel_viewer.viewer import style
    from texas_parcel_viewer.viewer.canvas import InMemoryMapCanvas

    canvas = InMemoryMapCanvas()
    style.install_parcel_layers(canvas, {"type": "geojson", "data": parcel_collection()}, None)
    style.install_highlight_layers(canvas)
    return canvas


@pytest.fixture
def make_controller(parcel_canvas, recording_renderer, fake_client, tmp_path):
    from texas_parcel_viewer.selection.controller import SelectionController
    from texas_parcel_viewer.selection.locator import FeatureLocator
    from texas_parcel_viewer.viewer.overlays import OverlayRegistry
    from texas_parcel_viewer.viewer.persistence import UrlState, ViewerStateSQLite

    stores = []

    def _make(url="http://localhost/", overlays=None, delay=1.4):
        store = ViewerStateSQLite(str(tmp_path / "state.sqlite"))
        stores.append(store)
        notes = []
        controller = SelectionController(
            canvas=parcel_canvas,
            locator=FeatureLocator(parcel_canvas),
            renderer=recording_renderer,
            client=fake_client,
            url_state=UrlState(url),
            state_store=store,
            overlays=overlays if overlays is not None else OverlayRegistry(),
            notify=notes.append,
            status_reset_delay=delay,
        )
        controller.notes = notes
        return controller

    yield _make
    for store in stores:
        store.close()
