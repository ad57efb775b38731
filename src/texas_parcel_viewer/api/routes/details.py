from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from texas_parcel_viewer.api.schemas import DetailsResponse, ParcelDetail
from texas_parcel_viewer.cache import cached
from texas_parcel_viewer.config import get_settings
from texas_parcel_viewer.details.store import open_store


router = APIRouter(tags=["details"])
logger = logging.getLogger("tpv.api")

_SERVER_ERROR = {"error": "Internal server error"}


def _details_body(record: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if record is None:
        return DetailsResponse(details=None, note="no_match").model_dump(mode="json")
    detail = ParcelDetail.model_validate(record)
    return {"details": detail.model_dump(mode="json", exclude={"not_found", "error"})}


def _load_by_identifier(identifier: str) -> Optional[Dict[str, Any]]:
    with open_store(get_settings().db_path) as store:
        return store.lookup(identifier)


def _load_by_prop_id(prop_id: str) -> Optional[Dict[str, Any]]:
    with open_store(get_settings().db_path) as store:
        return store.details_by_prop_id(prop_id.strip())


@router.get("/details/{identifier}")
def details(identifier: str):
    """Resolve a UUID master id first, then a prop id."""

    try:
        record = cached(("details", identifier), lambda: _load_by_identifier(identifier))
    except Exception:
        logger.exception("details lookup failed", extra={"identifier": identifier})
        return JSONResponse(status_code=500, content=_SERVER_ERROR)
    return JSONResponse(_details_body(record))


@router.get("/parcels/{parcel_id}")
def parcel(parcel_id: str):
    try:
        record = cached(("parcels", parcel_id), lambda: _load_by_prop_id(parcel_id))
    except Exception:
        logger.exception("parcel lookup failed", extra={"identifier": parcel_id})
        return JSONResponse(status_code=500, content=_SERVER_ERROR)
    return JSONResponse(_details_body(record))
