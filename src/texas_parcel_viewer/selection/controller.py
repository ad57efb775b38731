"""Parcel selection and detail synchronization.

One `SelectionController` owns what is selected. Clicks, searches and
drawn polygons all funnel through it; it drives the highlight renderer,
the detail client, the URL state and the panel state.

Stale results are discarded by token identity: each fetch holds the
`PendingFetch` it created and applies its result only if that token is
still `self.pending` when the response arrives. Searches hold their own
token in `self.search_pending` and only replace the detail fetch once they
resolve a record, so an unmatched search leaves an in-flight click alone.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from texas_parcel_viewer.api.schemas import ParcelDetail
from texas_parcel_viewer.errors import Found, GeometryError, LayerNotReady, NotFound, TransportError
from texas_parcel_viewer.geometry import Bounds, geometry_of, selected_by_polygon
from texas_parcel_viewer.selection.state import PendingFetch, Selection, ViewerState


logger = logging.getLogger("tpv.selection")

Point = Tuple[float, float]

STATUS_READY = "Ready"
STATUS_NO_SELECTION = "No selection"
STATUS_DETAILS_LOADED = "Parcel details loaded"
STATUS_ENTER_ID = "Enter parcel id"
STATUS_SEARCHING = "Searching..."
STATUS_FOUND_SERVER = "Parcel found (server)"
STATUS_FOUND_RENDERED = "Parcel found (rendered)"
STATUS_NOT_FOUND = "Parcel not found"
STATUS_DRAW_NOT_READY = "Draw: layer not ready"
STATUS_DRAW_ACTIVE = "Draw: polygon tool active - click map to draw"
STATUS_SELECTION_CLEARED = "Selection cleared"
STATUS_DRAW_CLEARED = "Draw cleared"
STATUS_LOADED_FROM_LINK = "Loaded from link"

MSG_FETCH_DETAILS_FAILED = "Error fetching parcel details."
MSG_SEARCH_FAILED = "Failed to fetch parcel."


def popup_label(properties: Dict[str, Any]) -> str:
    for name in ("parcel_id", "master_id", "MASTER_ID", "COUNTY"):
        value = properties.get(name)
        if value not in (None, ""):
            return str(value)
    return "N/A"


class SelectionController:
    def __init__(
        self,
        *,
        canvas,
        locator,
        renderer,
        client,
        url_state,
        state_store=None,
        overlays=None,
        notify: Optional[Callable[[str], None]] = None,
        state: Optional[ViewerState] = None,
        status_reset_delay: float = 1.4,
        source: str = "parcels",
    ):
        self.canvas = canvas
        self.locator = locator
        self.renderer = renderer
        self.client = client
        self.url_state = url_state
        self.state_store = state_store
        self.overlays = overlays
        self.notify = notify or (lambda message: None)
        self.state = state or ViewerState()
        self.status_reset_delay = status_reset_delay
        self.source = source
        self.selection: Optional[Selection] = None
        self.pending: Optional[PendingFetch] = None
        self.search_pending: Optional[PendingFetch] = None
        self._status_timer: Optional[asyncio.TimerHandle] = None

    # status

    def set_status(self, text: str) -> None:
        self.state.status = text

    def _revert_status_later(self, expected: str) -> None:
        if self._status_timer is not None:
            self._status_timer.cancel()

        def _revert() -> None:
            self._status_timer = None
            if self.state.status == expected:
                self.state.status = STATUS_READY

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._status_timer = loop.call_later(self.status_reset_delay, _revert)

    # highlight

    def _release_selection(self) -> None:
        if self.selection is not None:
            self.renderer.release_highlight(self.selection)
            self.selection = None

    def _select_feature(self, feature: Dict[str, Any]) -> Selection:
        self._release_selection()
        identifier = self.locator.identifier_of(feature)
        if identifier is not None:
            selection = Selection.addressable(
                identifier, feature.get("source") or self.source, feature.get("sourceLayer")
            )
        else:
            selection = Selection.geometry_only(feature.get("geometry"), source=self.source)
        self.renderer.apply_highlight(selection)
        self.selection = selection
        return selection

    def _fit_feature(self, feature: Dict[str, Any], identifier: Any = None, padding: int = 60) -> Optional[Bounds]:
        try:
            bounds = self.locator.bounds_of(feature)
        except GeometryError as exc:
            logger.debug("no bbox for feature: %s", exc)
            return None
        try:
            self.canvas.fit_bounds(bounds, padding=padding)
        except (GeometryError, LayerNotReady) as exc:
            logger.debug("fit_bounds skipped: %s", exc)
        if identifier is not None and self.state_store is not None:
            self.state_store.save_bbox(str(identifier), bounds)
        return bounds

    def _supersede_detail_fetch(self) -> None:
        self.pending = None
        self.state.fetching = False

    def _clear_panel(self) -> None:
        self.state.detail = None
        self.state.overlay_info = []
        self.state.popup_label = None
        self.state.panel_open = False

    # operations

    async def select_from_point(self, point: Point) -> None:
        """Handle a map click at `point` (lon, lat)."""

        self.search_pending = None
        overlay_hits = self.overlays.hits_at(self.canvas, point) if self.overlays is not None else []
        features = self.locator.features_at(point)
        if not features:
            self.clear_selection(status=STATUS_NO_SELECTION)
            self.state.overlay_info = overlay_hits
            return

        feature = features[0]
        identifier = self.locator.identifier_of(feature)
        self._fit_feature(feature, identifier)
        self._select_feature(feature)
        self.state.popup_label = popup_label(feature.get("properties") or {})
        self.state.overlay_info = overlay_hits

        if identifier is None:
            self.state.detail = ParcelDetail.missing("N/A")
            self.state.panel_open = True
            return

        key = str(identifier)
        if self.pending is not None and self.pending.identifier == key:
            self.state.panel_open = True
            return

        token = PendingFetch(key)
        self.pending = token
        self.url_state.set_id(key)
        self.state.fetching = True
        result = await self.client.fetch_details(key)
        if self.pending is not token:
            logger.debug("discarding stale detail result for %s", key)
            return
        self.state.fetching = False

        if isinstance(result, Found):
            detail = ParcelDetail.from_properties(result.record)
        elif isinstance(result, TransportError):
            logger.warning("detail fetch failed id=%s status=%s: %s", key, result.status, result.message)
            detail = ParcelDetail.missing(key, error=result.message)
            self.pending = None
            self.notify(MSG_FETCH_DETAILS_FAILED)
        else:
            detail = ParcelDetail.missing(key)
        self.state.detail = detail
        self.state.panel_open = True
        self.set_status(STATUS_DETAILS_LOADED)

    async def select_from_search(self, text: str) -> None:
        query = (text or "").strip()
        if not query:
            self.set_status(STATUS_ENTER_ID)
            return
        self.set_status(STATUS_SEARCHING)

        token = PendingFetch(query)
        self.search_pending = token
        result = await self.client.fetch_parcel(query)
        if self.search_pending is not token:
            logger.debug("discarding stale search result for %r", query)
            return
        self.search_pending = None

        if isinstance(result, Found):
            self._supersede_detail_fetch()
            detail = ParcelDetail.from_properties(result.record)
            self.state.detail = detail
            self.state.panel_open = True
            if detail.master_id is not None:
                self.url_state.set_id(detail.master_id)
                feature = self.locator.find_by_master_id(detail.master_id)
                if feature is not None:
                    self._fit_feature(feature, self.locator.identifier_of(feature), padding=80)
                    self._select_feature(feature)
            self.set_status(STATUS_FOUND_SERVER)
            return

        feature = self.locator.find_rendered(query)
        if feature is not None:
            self._supersede_detail_fetch()
            identifier = self.locator.identifier_of(feature)
            self._fit_feature(feature, identifier, padding=80)
            self._select_feature(feature)
            self.state.detail = ParcelDetail.from_properties(feature.get("properties"))
            self.state.panel_open = True
            if identifier is not None:
                self.url_state.set_id(identifier)
            self.set_status(STATUS_FOUND_RENDERED)
            return

        self.set_status(STATUS_NOT_FOUND)
        self._revert_status_later(STATUS_NOT_FOUND)
        if isinstance(result, TransportError):
            logger.warning("parcel search failed q=%r status=%s: %s", query, result.status, result.message)
            self.notify(MSG_SEARCH_FAILED)

    def select_from_drawn_polygon(self, polygon: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Select rendered parcels hit by a drawn polygon; returns the matches."""

        if not self.locator.is_ready():
            self.set_status(STATUS_DRAW_NOT_READY)
            return []
        try:
            geometry_of(polygon)
        except GeometryError as exc:
            logger.warning("ignoring drawn shape: %s", exc)
            return []

        self._supersede_detail_fetch()
        self.search_pending = None
        matches: List[Dict[str, Any]] = []
        for feature in self.locator.rendered_features():
            try:
                if selected_by_polygon(polygon, feature.get("geometry")):
                    matches.append(feature)
            except GeometryError:
                logger.debug("skipping feature with bad geometry id=%s", feature.get("id"))
        self.set_status(f"{len(matches)} features selected")
        if matches:
            self.state.detail = ParcelDetail.from_properties(matches[0].get("properties"))
        else:
            self.state.detail = None
        self.state.panel_open = True
        return matches

    def start_drawing(self) -> None:
        self.set_status(STATUS_DRAW_ACTIVE)
        self.state.panel_open = False

    def clear_drawings(self) -> None:
        self._supersede_detail_fetch()
        self.state.detail = None
        self.state.panel_open = False
        self.set_status(STATUS_DRAW_CLEARED)

    def clear_selection(self, status: str = STATUS_SELECTION_CLEARED) -> None:
        self._release_selection()
        self._clear_panel()
        self._supersede_detail_fetch()
        self.search_pending = None
        self.url_state.remove_id()
        self.set_status(status)

    async def restore_from_url(self) -> bool:
        """Load the parcel named by the URL `id` parameter, if any.

        Failures are logged only; a deep link never raises a notification.
        """

        identifier = self.url_state.get_id()
        if not identifier:
            return False
        token = PendingFetch(identifier)
        self.pending = token
        result = await self.client.fetch_details(identifier)
        if self.pending is not token:
            return False
        if isinstance(result, TransportError):
            logger.warning("deep link fetch failed id=%s: %s", identifier, result.message)
            self.pending = None
            self.state.panel_open = False
            return False
        if isinstance(result, NotFound):
            self.pending = None
            self.state.panel_open = False
            return False

        self.pending = None
        self.state.detail = ParcelDetail.from_properties(result.record)
        self.state.panel_open = True
        self.set_status(STATUS_LOADED_FROM_LINK)
        if self.state_store is not None:
            bounds = self.state_store.load_bbox(identifier)
            if bounds is not None:
                try:
                    self.canvas.fit_bounds(bounds, padding=60)
                except (GeometryError, LayerNotReady) as exc:
                    logger.debug("restore fit skipped: %s", exc)
        return True

    def close(self) -> None:
        if self._status_timer is not None:
            self._status_timer.cancel()
            self._status_timer = None
