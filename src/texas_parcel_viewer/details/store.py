from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional


UUID_RX = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

_PROPERTY_COLUMNS = (
    "master_id",
    "prop_id",
    "legal_desc",
    "legal_loc_desc",
    "legal_acreage",
    "curr_assessed_val",
    "curr_land_val",
    "curr_imprv_val",
    "market_val",
    "assessed_val",
    "situs_address",
    "situs_street_num",
    "situs_street_name",
    "situs_city",
    "situs_zip",
    "prop_type_cd",
    "geo_id",
    "block",
    "tract_or_lot",
    "land_acres",
    "curr_market_val",
)

_LAND_COLUMNS = (
    "land_seg_id",
    "land_type_cd",
    "land_type_desc",
    "size_acres",
    "land_area_factor",
    "land_seg_mkt_val",
    "land_val",
    "prop_val_yr",
)

_IMPROVEMENT_COLUMNS = (
    "improvement_id",
    "imprv_type_desc",
    "imprv_val",
    "yr_built",
    "imprv_det_area",
    "prop_num",
)


def to_payload(
    base: Dict[str, Any],
    land: List[Dict[str, Any]],
    improvements: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """Map property/land/improvement rows onto the API detail record."""

    market_value = base.get("curr_market_val")
    if market_value is None:
        market_value = base.get("market_val")
    area = sum(float(seg.get("size_acres") or 0) for seg in land)
    return {
        "master_id": base.get("master_id"),
        "prop_id": base.get("prop_id"),
        "address": base.get("situs_address"),
        "city": base.get("situs_city"),
        "zip": base.get("situs_zip"),
        "situs_street_num": base.get("situs_street_num"),
        "situs_street_name": base.get("situs_street_name"),
        "geo_id": base.get("geo_id"),
        "block": base.get("block"),
        "tract_or_lot": base.get("tract_or_lot"),
        "prop_type_cd": base.get("prop_type_cd"),
        "legal_desc": base.get("legal_desc"),
        "legal_loc_desc": base.get("legal_loc_desc"),
        "legal_acreage": base.get("legal_acreage"),
        "land_acres": base.get("land_acres"),
        "market_value": market_value if market_value is not None else 0,
        "curr_assessed_val": base.get("curr_assessed_val"),
        "curr_land_val": base.get("curr_land_val"),
        "curr_imprv_val": base.get("curr_imprv_val"),
        "market_val": base.get("market_val"),
        "assessed_val": base.get("assessed_val"),
        "area_acres": area,
        "land_segments": len(land),
        "improvements": len(improvements),
        "land_segments_list": land,
        "improvements_list": improvements,
    }


class SQLiteDetailStore:
    """SQLite-backed parcel attribute store.

    Tables mirror the county appraisal extract: property_master (one row per
    property), land_master and improvement_master (sub-records keyed by
    master_id).
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _init_schema(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS property_master (
                master_id TEXT,
                prop_id TEXT,
                legal_desc TEXT,
                legal_loc_desc TEXT,
                legal_acreage REAL,
                curr_assessed_val REAL,
                curr_land_val REAL,
                curr_imprv_val REAL,
                market_val REAL,
                assessed_val REAL,
                situs_address TEXT,
                situs_street_num TEXT,
                situs_street_name TEXT,
                situs_city TEXT,
                situs_zip TEXT,
                prop_type_cd TEXT,
                geo_id TEXT,
                block TEXT,
                tract_or_lot TEXT,
                land_acres REAL,
                curr_market_val REAL
            )
            """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS land_master (
                master_id TEXT NOT NULL,
                land_seg_id INTEGER,
                land_type_cd TEXT,
                land_type_desc TEXT,
                size_acres REAL,
                land_area_factor REAL,
                land_seg_mkt_val REAL,
                land_val REAL,
                prop_val_yr INTEGER
            )
            """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS improvement_master (
                master_id TEXT NOT NULL,
                improvement_id INTEGER,
                imprv_type_desc TEXT,
                imprv_val REAL,
                yr_built INTEGER,
                imprv_det_area REAL,
                prop_num TEXT
            )
            """
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_property_master_id ON property_master(master_id)"
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_property_prop_id ON property_master(prop_id)"
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_land_master_id ON land_master(master_id)"
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_improvement_master_id ON improvement_master(master_id)"
        )
        self.conn.commit()

    def ping(self) -> None:
        self.conn.execute("SELECT 1").fetchone()

    def _land_for(self, master_id: Any) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            f"SELECT {', '.join(_LAND_COLUMNS)} FROM land_master WHERE LOWER(master_id) = LOWER(?) ORDER BY land_seg_id",
            (master_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    def _improvements_for(self, master_id: Any) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            f"SELECT {', '.join(_IMPROVEMENT_COLUMNS)} FROM improvement_master WHERE LOWER(master_id) = LOWER(?) ORDER BY improvement_id",
            (master_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    def details_by_master_id(self, master_id: str) -> Optional[Dict[str, Any]]:
        # A master id known only to the land or improvement tables still resolves;
        # property fields are then null.
        key = master_id.lower()
        exists = self.conn.execute(
            """
            SELECT 1 WHERE
                EXISTS (SELECT 1 FROM property_master WHERE LOWER(master_id) = ?)
                OR EXISTS (SELECT 1 FROM land_master WHERE LOWER(master_id) = ?)
                OR EXISTS (SELECT 1 FROM improvement_master WHERE LOWER(master_id) = ?)
            """,
            (key, key, key),
        ).fetchone()
        if not exists:
            return None
        row = self.conn.execute(
            f"SELECT {', '.join(_PROPERTY_COLUMNS)} FROM property_master WHERE LOWER(master_id) = ? LIMIT 1",
            (key,),
        ).fetchone()
        base = dict(row) if row else {}
        stored_id = base.get("master_id") or master_id
        base["master_id"] = stored_id
        return to_payload(base, self._land_for(stored_id), self._improvements_for(stored_id))

    def details_by_prop_id(self, prop_id: str) -> Optional[Dict[str, Any]]:
        row = self.conn.execute(
            f"""
            SELECT {', '.join(_PROPERTY_COLUMNS)} FROM property_master
            WHERE prop_id = ?
            ORDER BY master_id IS NULL, master_id
            LIMIT 1
            """,
            (prop_id,),
        ).fetchone()
        if not row:
            return None
        base = dict(row)
        master_id = base.get("master_id")
        if master_id is None:
            return to_payload(base, [], [])
        return to_payload(base, self._land_for(master_id), self._improvements_for(master_id))

    def lookup(self, identifier: str) -> Optional[Dict[str, Any]]:
        """Resolve a master id (UUID-shaped) first, then fall back to prop_id."""

        ident = (identifier or "").strip()
        if not ident:
            return None
        record = None
        if UUID_RX.match(ident):
            record = self.details_by_master_id(ident)
        if record is None:
            record = self.details_by_prop_id(ident)
        return record

    def upsert_property(
        self,
        prop: Dict[str, Any],
        land: Optional[List[Dict[str, Any]]] = None,
        improvements: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        master_id = prop.get("master_id")
        if master_id is not None:
            self.conn.execute("DELETE FROM property_master WHERE master_id = ?", (master_id,))
            self.conn.execute("DELETE FROM land_master WHERE master_id = ?", (master_id,))
            self.conn.execute("DELETE FROM improvement_master WHERE master_id = ?", (master_id,))
        self.conn.execute(
            f"INSERT INTO property_master ({', '.join(_PROPERTY_COLUMNS)}) VALUES ({', '.join('?' for _ in _PROPERTY_COLUMNS)})",
            tuple(prop.get(c) for c in _PROPERTY_COLUMNS),
        )
        for seg in land or []:
            self.conn.execute(
                f"INSERT INTO land_master (master_id, {', '.join(_LAND_COLUMNS)}) VALUES (?, {', '.join('?' for _ in _LAND_COLUMNS)})",
                (master_id,) + tuple(seg.get(c) for c in _LAND_COLUMNS),
            )
        for imp in improvements or []:
            self.conn.execute(
                f"INSERT INTO improvement_master (master_id, {', '.join(_IMPROVEMENT_COLUMNS)}) VALUES (?, {', '.join('?' for _ in _IMPROVEMENT_COLUMNS)})",
                (master_id,) + tuple(imp.get(c) for c in _IMPROVEMENT_COLUMNS),
            )
        self.conn.commit()


@contextmanager
def open_store(path: str) -> Iterator[SQLiteDetailStore]:
    store = SQLiteDetailStore(path)
    try:
        yield store
    finally:
        store.close()


DEMO_MASTER_ID = "00000000-0000-0000-0000-000000000100"


def seed_demo(store: SQLiteDetailStore) -> int:
    """Load a small Travis County demo parcel set; returns properties written."""

    store.upsert_property(
        {
            "master_id": DEMO_MASTER_ID,
            "prop_id": "PROP-100",
            "legal_desc": "LOT 4 BLK A BARTON HILLS SEC 2",
            "legal_loc_desc": "BARTON HILLS",
            "legal_acreage": 0.31,
            "curr_assessed_val": 412000,
            "curr_land_val": 250000,
            "curr_imprv_val": 175000,
            "market_val": 420000,
            "assessed_val": 405000,
            "situs_address": "1200 BARTON HILLS DR",
            "situs_street_num": "1200",
            "situs_street_name": "BARTON HILLS DR",
            "situs_city": "AUSTIN",
            "situs_zip": "78704",
            "prop_type_cd": "R",
            "geo_id": "0101080407",
            "block": "A",
            "tract_or_lot": "4",
            "land_acres": 0.31,
            "curr_market_val": 425000,
        },
        land=[
            {
                "land_seg_id": 1,
                "land_type_cd": "LAND",
                "land_type_desc": "Residential Lot",
                "size_acres": 0.31,
                "land_area_factor": 1.0,
                "land_seg_mkt_val": 250000,
                "land_val": 250000,
                "prop_val_yr": 2024,
            }
        ],
        improvements=[
            {
                "improvement_id": 1,
                "imprv_type_desc": "1 FAM DWELLING",
                "imprv_val": 165000,
                "yr_built": 1962,
                "imprv_det_area": 1640,
                "prop_num": "1",
            },
            {
                "improvement_id": 2,
                "imprv_type_desc": "DETACHED GARAGE",
                "imprv_val": 10000,
                "yr_built": 1975,
                "imprv_det_area": 420,
                "prop_num": "1",
            },
        ],
    )
    store.upsert_property(
        {
            "master_id": "00000000-0000-0000-0000-000000000200",
            "prop_id": "PROP-200",
            "legal_desc": "ABS 12 SUR 9 SMITH J ACR 5.000",
            "situs_address": "9800 FM 1826",
            "situs_city": "AUSTIN",
            "situs_zip": "78737",
            "prop_type_cd": "R",
            "land_acres": 5.0,
            "market_val": 610000,
        },
        land=[
            {
                "land_seg_id": 1,
                "land_type_cd": "AG",
                "land_type_desc": "Native Pasture",
                "size_acres": 5.0,
                "land_seg_mkt_val": 390000,
                "land_val": 2100,
                "prop_val_yr": 2024,
            }
        ],
    )
    return 2
