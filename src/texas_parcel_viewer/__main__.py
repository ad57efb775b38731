from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from texas_parcel_viewer.api.schemas import ParcelDetail
from texas_parcel_viewer.config import get_settings
from texas_parcel_viewer.details.client import DetailStoreClient
from texas_parcel_viewer.details.store import open_store, seed_demo
from texas_parcel_viewer.errors import Found, TransportError
from texas_parcel_viewer.export.csv_export import write_csv
from texas_parcel_viewer.export.pdf_report import write_pdf
from texas_parcel_viewer.log import configure_logging
from texas_parcel_viewer.presenters.panel import build_panel, render_text
from texas_parcel_viewer.security import sanitize_export_path


logger = logging.getLogger("tpv.cli")


async def _fetch_remote(identifier: str, api_base: str, timeout: float):
    client = DetailStoreClient(api_base, timeout=timeout)
    try:
        return await client.fetch_details(identifier)
    finally:
        await client.aclose()


def _load_detail(identifier: str, db: Optional[str]) -> Optional[ParcelDetail]:
    """Look a parcel up in a local SQLite store, or through the detail API."""

    if db:
        with open_store(db) as store:
            record = store.lookup(identifier)
        return ParcelDetail.from_properties(record) if record else None
    settings = get_settings()
    result = asyncio.run(_fetch_remote(identifier, settings.api_base, settings.http_timeout))
    if isinstance(result, TransportError):
        raise RuntimeError(f"detail API error ({result.status}): {result.message}")
    if isinstance(result, Found):
        return ParcelDetail.from_properties(result.record)
    return None


def _serve(args) -> int:
    import uvicorn

    uvicorn.run(
        "texas_parcel_viewer.api.app:app",
        host=args.host,
        port=args.port,
        reload=bool(args.reload),
        log_config=None,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="texas_parcel_viewer")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_serve = sub.add_parser("serve", help="Run the detail API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=3000)
    p_serve.add_argument("--reload", action="store_true")

    p_seed = sub.add_parser("seed-demo", help="Create a demo parcel database")
    p_seed.add_argument("--db", default=None, help="SQLite DB path (default: TPV_DB_PATH)")

    p_details = sub.add_parser("details", help="Show details for a master id or prop id")
    p_details.add_argument("identifier")
    p_details.add_argument("--db", default=None, help="Read a local SQLite store instead of the API")
    p_details.add_argument("--json", action="store_true", dest="as_json")

    p_export = sub.add_parser("export", help="Export a parcel as CSV and/or PDF")
    p_export.add_argument("identifier")
    p_export.add_argument("--db", default=None, help="Read a local SQLite store instead of the API")
    p_export.add_argument("--csv", default=None, help="CSV output path")
    p_export.add_argument("--pdf", default=None, help="PDF output path")

    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level, json_lines=bool(args.log_json or settings.log_json))

    if args.cmd == "serve":
        return _serve(args)

    if args.cmd == "seed-demo":
        db_path = args.db or settings.db_path
        with open_store(db_path) as store:
            count = seed_demo(store)
        print(f"Seeded {count} parcels into {db_path}")
        return 0

    try:
        detail = _load_detail(args.identifier, args.db)
    except RuntimeError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    if detail is None:
        print(f"No matching record for {args.identifier}", file=sys.stderr)
        return 1

    if args.cmd == "details":
        if args.as_json:
            print(json.dumps(detail.model_dump(mode="json", exclude={"not_found", "error"}), indent=2))
        else:
            print(render_text(build_panel(detail)))
        return 0

    if args.cmd == "export":
        if not args.csv and not args.pdf:
            parser.error("export requires --csv and/or --pdf")
        root = Path.cwd()
        try:
            if args.csv:
                out = write_csv(detail, sanitize_export_path(args.csv, root))
                print(f"Wrote {out}")
            if args.pdf:
                out = write_pdf(detail, sanitize_export_path(args.pdf, root))
                print(f"Wrote {out}")
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 2
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
