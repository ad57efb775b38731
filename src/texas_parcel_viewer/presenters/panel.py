"""Side panel content for the selected parcel."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from texas_parcel_viewer.api.schemas import ParcelDetail
from texas_parcel_viewer.presenters.formatting import (
    money,
    money_or_dash,
    num,
    num_or_dash,
    text_or_dash,
)
from texas_parcel_viewer.viewer.overlays import OverlayHit


Row = Tuple[str, str]


@dataclass
class PanelView:
    heading: str
    address: str
    geo_id: Optional[str]
    not_found: bool
    error: Optional[str]
    stats: List[Row] = field(default_factory=list)
    legal: List[Row] = field(default_factory=list)
    land: List[List[str]] = field(default_factory=list)
    improvements: List[List[str]] = field(default_factory=list)
    overlays: List[Row] = field(default_factory=list)


LAND_COLUMNS = ["Type", "Acres", "Area Factor", "Seg Market Val", "Year"]
IMPROVEMENT_COLUMNS = ["Type", "Year", "Area", "Value", "Prop Num"]


def address_line(detail: ParcelDetail) -> str:
    parts = [
        detail.situs_street_num,
        detail.situs_street_name or detail.address,
        detail.city,
        detail.zip,
    ]
    return ", ".join(str(p) for p in parts if p)


def heading_for(detail: ParcelDetail) -> str:
    value = detail.prop_id or detail.master_id
    return str(value) if value else "N/A"


def overlay_summary(hit: OverlayHit, limit: int = 4) -> Row:
    pairs = list(hit.properties.items())[:limit]
    return hit.layer, " • ".join(f"{k}: {v}" for k, v in pairs)


def build_panel(detail: ParcelDetail, overlay_info: Optional[List[OverlayHit]] = None) -> PanelView:
    view = PanelView(
        heading=heading_for(detail),
        address=address_line(detail),
        geo_id=detail.geo_id,
        not_found=detail.not_found,
        error=detail.error,
    )
    view.overlays = [overlay_summary(hit) for hit in overlay_info or []]
    if detail.not_found:
        return view

    view.stats = [
        ("Market Value", money(detail.market_value)),
        ("Assessed (All)", money_or_dash(detail.assessed_val)),
        ("Curr Land Value", money_or_dash(detail.curr_land_val)),
        ("Curr Imprv Value", money_or_dash(detail.curr_imprv_val)),
        ("Area (acres)", num_or_dash(detail.area_acres)),
        ("Land Acres", num_or_dash(detail.land_acres)),
    ]
    view.legal = [
        ("Property Type", text_or_dash(detail.prop_type_cd)),
        ("Legal Desc", text_or_dash(detail.legal_desc)),
        ("Legal Loc Desc", text_or_dash(detail.legal_loc_desc)),
        ("Legal Acreage", num_or_dash(detail.legal_acreage)),
        ("Block", text_or_dash(detail.block)),
        ("Tract/Lot", text_or_dash(detail.tract_or_lot)),
    ]
    for seg in detail.land_segments_list:
        view.land.append(
            [
                seg.land_type_desc or seg.land_type_cd or "-",
                num(seg.size_acres),
                "-" if seg.land_area_factor is None else str(seg.land_area_factor),
                money(seg.land_seg_mkt_val),
                "-" if seg.prop_val_yr is None else str(seg.prop_val_yr),
            ]
        )
    for imp in detail.improvements_list:
        view.improvements.append(
            [
                imp.imprv_type_desc or "-",
                "-" if imp.yr_built is None else str(imp.yr_built),
                num(imp.imprv_det_area, 0),
                money(imp.imprv_val),
                "-" if imp.prop_num is None else str(imp.prop_num),
            ]
        )
    return view


def render_text(view: PanelView) -> str:
    """Plain-text rendering used by the CLI."""

    lines = [f"Parcel {view.heading}"]
    if view.address:
        lines.append(view.address)
    if view.geo_id:
        lines.append(f"Geo ID: {view.geo_id}")
    if view.not_found:
        lines.append("No matching record in the database for this ID.")
        if view.error:
            lines.append(f"Error: {view.error}")
    for label, value in view.stats + view.legal:
        lines.append(f"  {label}: {value}")
    if view.land:
        lines.append("Land Segments")
        lines.append("  " + " | ".join(LAND_COLUMNS))
        lines.extend("  " + " | ".join(row) for row in view.land)
    if view.improvements:
        lines.append("Improvements")
        lines.append("  " + " | ".join(IMPROVEMENT_COLUMNS))
        lines.extend("  " + " | ".join(row) for row in view.improvements)
    if view.overlays:
        lines.append("Active Overlays")
        lines.extend(f"  {layer}: {summary}" for layer, summary in view.overlays)
    return "\n".join(lines)
