from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

from texas_parcel_viewer.config import ViewerSettings, get_settings
from texas_parcel_viewer.details.client import DetailStoreClient
from texas_parcel_viewer.errors import LayerNotReady
from texas_parcel_viewer.export.csv_export import write_csv
from texas_parcel_viewer.export.pdf_report import write_pdf
from texas_parcel_viewer.selection.controller import STATUS_READY, SelectionController
from texas_parcel_viewer.selection.highlight import MapHighlightRenderer
from texas_parcel_viewer.selection.locator import FeatureLocator
from texas_parcel_viewer.selection.state import ViewerState
from texas_parcel_viewer.viewer import style
from texas_parcel_viewer.viewer.canvas import InMemoryMapCanvas
from texas_parcel_viewer.viewer.overlays import OverlayRegistry
from texas_parcel_viewer.viewer.persistence import UrlState, ViewerStateSQLite


logger = logging.getLogger("tpv.viewer")

MSG_NO_SELECTION = "No parcel selected to export."
MSG_CSV_FAILED = "Failed to export CSV."
MSG_PDF_FAILED = "Failed to export PDF."


class ParcelViewer:
    """Composition root: wires canvas, client, persisted state and the controller."""

    def __init__(
        self,
        settings: Optional[ViewerSettings] = None,
        *,
        canvas=None,
        client: Optional[DetailStoreClient] = None,
        state_store: Optional[ViewerStateSQLite] = None,
        url: str = "http://localhost/",
        overlays: Optional[OverlayRegistry] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.settings = settings or get_settings()
        self.canvas = canvas if canvas is not None else InMemoryMapCanvas(
            center=style.TEXAS_CENTER, zoom=style.TEXAS_ZOOM
        )
        self.client = client or DetailStoreClient(
            self.settings.api_base,
            tile_base=self.settings.tile_base,
            timeout=self.settings.http_timeout,
        )
        self.state_store = state_store or ViewerStateSQLite(self.settings.state_path)
        self.url_state = UrlState(url)
        self.overlays = overlays or OverlayRegistry()
        self.notifications: List[str] = []
        self._notify_hook = notify
        self.state = ViewerState()
        self.controller = SelectionController(
            canvas=self.canvas,
            locator=FeatureLocator(self.canvas),
            renderer=MapHighlightRenderer(self.canvas),
            client=self.client,
            url_state=self.url_state,
            state_store=self.state_store,
            overlays=self.overlays,
            notify=self.notify,
            state=self.state,
            status_reset_delay=self.settings.status_reset_delay,
        )
        self._entered_this_session = False
        self.source_layer: Optional[str] = None

    def notify(self, message: str) -> None:
        logger.info("notify: %s", message)
        self.notifications.append(message)
        if self._notify_hook is not None:
            self._notify_hook(message)

    # enter gate

    @property
    def entered(self) -> bool:
        if self._entered_this_session:
            return True
        return self.settings.remember_entry and self.state_store.is_entered()

    def enter(self, remember: bool = True) -> None:
        self._entered_this_session = True
        if remember:
            self.state_store.set_entered(True)

    # map lifecycle

    async def on_map_load(self) -> None:
        self.state.status = "Map loaded - preparing data..."
        tilejson = None
        if self.settings.tile_base:
            tilejson = await self.client.fetch_tilejson(self.settings.vector_dataset)
        self.source_layer = style.install_style(
            self.canvas,
            tile_base=self.settings.tile_base,
            dataset=self.settings.vector_dataset,
            tilejson=tilejson,
            overlays=self.overlays,
        )
        self.state.status = STATUS_READY
        await self.controller.restore_from_url()

    def set_basemap(self, basemap: str) -> None:
        try:
            style.set_basemap(self.canvas, basemap)
        except LayerNotReady as exc:
            logger.debug("set_basemap skipped: %s", exc)

    def toggle_overlay(self, overlay_id: str) -> bool:
        return self.overlays.toggle(overlay_id, self.canvas)

    def set_overlay_opacity(self, overlay_id: str, opacity: float) -> float:
        return self.overlays.set_opacity(overlay_id, opacity, self.canvas)

    # user actions

    async def click(self, lon: float, lat: float) -> None:
        await self.controller.select_from_point((lon, lat))

    async def search(self, text: str) -> None:
        await self.controller.select_from_search(text)

    def draw(self, polygon: dict) -> list:
        return self.controller.select_from_drawn_polygon(polygon)

    def clear_selection(self) -> None:
        self.controller.clear_selection()

    # exports

    def export_csv(self, path: Union[str, Path]) -> Optional[Path]:
        detail = self.state.detail
        if detail is None:
            self.notify(MSG_NO_SELECTION)
            return None
        try:
            return write_csv(detail, path)
        except OSError:
            logger.exception("CSV export failed")
            self.notify(MSG_CSV_FAILED)
            return None

    async def export_pdf(self, path: Union[str, Path]) -> Optional[Path]:
        detail = self.state.detail
        if detail is None:
            self.notify(MSG_NO_SELECTION)
            return None
        self.state.busy = True
        try:
            return await asyncio.to_thread(write_pdf, detail, path)
        except Exception:
            logger.exception("PDF export failed")
            self.notify(MSG_PDF_FAILED)
            return None
        finally:
            self.state.busy = False

    async def close(self) -> None:
        self.controller.close()
        await self.client.aclose()
        self.state_store.close()
