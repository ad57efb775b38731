from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from texas_parcel_viewer.api.schemas import ParcelDetail
from texas_parcel_viewer.presenters.formatting import (
    money,
    money_or_dash,
    num,
    num_or_dash,
    text_or_dash,
)
from texas_parcel_viewer.presenters.panel import (
    IMPROVEMENT_COLUMNS,
    LAND_COLUMNS,
    address_line,
    build_panel,
)


HEADER_BLUE = colors.HexColor("#1e3a8a")
CARD_BORDER = colors.HexColor("#e2e8f0")
CARD_FILL = colors.HexColor("#fbfbfb")
MUTED = colors.HexColor("#64748b")

MARGIN = 36
CONTENT_WIDTH = A4[0] - 2 * MARGIN


def _p(text: Any, style) -> Paragraph:
    return Paragraph(escape(str(text)), style)


def _card_grid(cards: List[tuple], styles) -> Table:
    """Three-column grid of label/value cards."""

    cells = [
        [_p(label, styles["k"]), _p(value, styles["v"])] for label, value in cards
    ]
    rows = []
    for i in range(0, len(cells), 3):
        chunk = cells[i : i + 3]
        while len(chunk) < 3:
            chunk.append("")
        rows.append(chunk)
    grid = Table(rows, colWidths=[CONTENT_WIDTH / 3.0] * 3, hAlign="LEFT")
    grid.setStyle(
        TableStyle(
            [
                ("BOX", (0, 0), (-1, -1), 0.5, CARD_BORDER),
                ("INNERGRID", (0, 0), (-1, -1), 0.5, CARD_BORDER),
                ("BACKGROUND", (0, 0), (-1, -1), CARD_FILL),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    return grid


def _data_table(columns: List[str], rows: List[List[str]]) -> Table:
    table = Table([columns] + rows, repeatRows=1, hAlign="LEFT")
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f1f5f9")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#334155")),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("GRID", (0, 0), (-1, -1), 0.25, CARD_BORDER),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#fafafa")]),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )
    return table


def _styles() -> dict:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            name="ReportTitle", parent=base["Heading1"], textColor=colors.white, fontSize=18, leading=22
        ),
        "badge": ParagraphStyle(name="Badge", parent=base["BodyText"], textColor=colors.white, fontSize=9),
        "subtle": ParagraphStyle(name="Subtle", parent=base["BodyText"], textColor=MUTED),
        "parcel": ParagraphStyle(name="ParcelId", parent=base["Heading2"], fontSize=18, leading=22),
        "section": ParagraphStyle(
            name="Section", parent=base["Heading3"], textColor=colors.HexColor("#334155"), spaceBefore=14
        ),
        "k": ParagraphStyle(name="CardKey", parent=base["BodyText"], fontSize=8, textColor=MUTED),
        "v": ParagraphStyle(name="CardValue", parent=base["BodyText"], fontName="Helvetica-Bold", fontSize=11),
        "body": base["BodyText"],
    }


def build_story(detail: ParcelDetail, generated_at: Optional[datetime] = None) -> list:
    stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M")
    styles = _styles()
    view = build_panel(detail)

    header = Table(
        [[_p("Parcel Report", styles["title"]), _p(f"Generated {stamp}", styles["badge"])]],
        colWidths=[CONTENT_WIDTH * 0.7, CONTENT_WIDTH * 0.3],
    )
    header.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), HEADER_BLUE),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("ALIGN", (1, 0), (1, 0), "RIGHT"),
                ("TOPPADDING", (0, 0), (-1, -1), 10),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 10),
            ]
        )
    )

    story: list = [header, Spacer(1, 14)]
    story.append(_p("Selected Parcel", styles["subtle"]))
    story.append(_p(view.heading, styles["parcel"]))
    story.append(_p(address_line(detail) or "Address: N/A", styles["subtle"]))
    story.append(Spacer(1, 10))

    story.append(
        _card_grid(
            [
                ("Property ID", detail.prop_id if detail.prop_id is not None else "N/A"),
                ("Market Value", money(detail.market_value)),
                ("Area (acres)", num(detail.area_acres)),
                ("Curr Land Value", money_or_dash(detail.curr_land_val)),
                ("Curr Imprv Value", money_or_dash(detail.curr_imprv_val)),
                ("Assessed (Current)", money_or_dash(detail.curr_assessed_val)),
            ],
            styles,
        )
    )

    story.append(_p("Property & Legal", styles["section"]))
    story.append(
        _card_grid(
            [
                ("Property Type", text_or_dash(detail.prop_type_cd)),
                ("Geo ID", text_or_dash(detail.geo_id)),
                ("Block", text_or_dash(detail.block)),
                ("Tract/Lot", text_or_dash(detail.tract_or_lot)),
                ("Legal Acreage", num_or_dash(detail.legal_acreage)),
                ("Land Acres", num_or_dash(detail.land_acres)),
            ],
            styles,
        )
    )
    story.append(Spacer(1, 8))
    story.append(_card_grid([("Legal Description", text_or_dash(detail.legal_desc))], styles))
    story.append(Spacer(1, 4))
    story.append(_card_grid([("Legal Location", text_or_dash(detail.legal_loc_desc))], styles))

    story.append(_p("Valuation (All)", styles["section"]))
    story.append(
        _card_grid(
            [
                ("Market (All)", money_or_dash(detail.market_val)),
                ("Assessed (All)", money_or_dash(detail.assessed_val)),
            ],
            styles,
        )
    )

    if view.land:
        story.append(_p("Land Segments", styles["section"]))
        story.append(_data_table(LAND_COLUMNS, view.land))
    else:
        story.append(Spacer(1, 10))
        story.append(_p("No land segment records.", styles["subtle"]))

    if view.improvements:
        story.append(_p("Improvements", styles["section"]))
        story.append(_data_table(IMPROVEMENT_COLUMNS, view.improvements))
    else:
        story.append(Spacer(1, 10))
        story.append(_p("No improvement records.", styles["subtle"]))

    story.append(Spacer(1, 18))
    year = (generated_at or datetime.now()).year
    story.append(_p(f"© {year} Parcel Viewer · Auto-generated", styles["subtle"]))
    return story


def write_pdf(
    detail: ParcelDetail, path: Union[str, Path], generated_at: Optional[datetime] = None
) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    doc = SimpleDocTemplate(
        str(out),
        pagesize=A4,
        title=f"Parcel Report {build_panel(detail).heading}",
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
    )
    doc.build(build_story(detail, generated_at))
    return out
