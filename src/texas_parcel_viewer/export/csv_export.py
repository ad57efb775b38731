from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, List, Union

from texas_parcel_viewer.api.schemas import ParcelDetail
from texas_parcel_viewer.security import neutralize_csv_field


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def detail_to_rows(detail: ParcelDetail) -> List[List[str]]:
    """Field/Value rows: base fields, then land[i].* and impr[i].* rows."""

    rows: List[List[str]] = [["Field", "Value"]]
    base = detail.model_dump(mode="json", exclude={"not_found", "error"})
    for key, value in base.items():
        if key.endswith("_list"):
            continue
        rows.append([key, _cell(value)])
    for i, seg in enumerate(detail.land_segments_list):
        rows.append([f"land[{i}].type", seg.land_type_desc or seg.land_type_cd or ""])
        rows.append([f"land[{i}].acres", _cell(seg.size_acres)])
        rows.append([f"land[{i}].value", _cell(seg.land_val)])
        rows.append([f"land[{i}].year", _cell(seg.prop_val_yr)])
    for i, imp in enumerate(detail.improvements_list):
        rows.append([f"impr[{i}].type", imp.imprv_type_desc or ""])
        rows.append([f"impr[{i}].year", _cell(imp.yr_built)])
        rows.append([f"impr[{i}].area", _cell(imp.imprv_det_area)])
        rows.append([f"impr[{i}].value", _cell(imp.imprv_val)])
    return rows


def render_csv(detail: ParcelDetail) -> str:
    handle = io.StringIO()
    writer = csv.writer(handle, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for key, value in detail_to_rows(detail):
        writer.writerow([neutralize_csv_field(key), neutralize_csv_field(value)])
    return handle.getvalue()


def export_filename(detail: ParcelDetail, suffix: str) -> str:
    ident = detail.master_id if detail.master_id is not None else detail.prop_id
    if ident is None:
        ident = getattr(detail, "parcel_id", None) or "export"
    return f"parcel_{ident}.{suffix}"


def write_csv(detail: ParcelDetail, path: Union[str, Path]) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_csv(detail), encoding="utf-8")
    return out
