"""Hospital endpoints (list with search/location filters, detail, register, edit)."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from ...algorithms import (
    InvalidLocation,
    NearbyMode,
    PostalCodeMode,
    filter_and_sort,
    mode_from_params,
)
from ..auth import AuthContext, require_owner
from ..helpers import checkin_url, maps_url, with_wait_level
from ..models import HospitalCreateRequest, HospitalUpdateRequest
from ..store import HospitalStore, get_store
from . import store_errors

logger = logging.getLogger(__name__)

router = APIRouter()


def _mode_name(mode) -> str:
    if isinstance(mode, NearbyMode):
        return "nearby"
    if isinstance(mode, PostalCodeMode):
        return "postal_code"
    return "all"


@router.get("/api/hospitals")
async def list_hospitals(
    q: str = Query("", description="Search name and address (case-insensitive)"),
    lat: float | None = Query(None, description="Visitor latitude — enables nearby mode with lon"),
    lon: float | None = Query(None, description="Visitor longitude — enables nearby mode with lat"),
    radius_km: float | None = Query(None, gt=0, le=20000, description="Nearby radius in km (default 50)"),
    postal_code: str | None = Query(None, description="Exact postal code match"),
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """List hospitals with their waiting counts, filtered and ordered for the visitor."""
    try:
        mode = mode_from_params(lat=lat, lon=lon, postal_code=postal_code, radius_km=radius_km)
    except InvalidLocation as e:
        raise HTTPException(status_code=422, detail=str(e))

    with store_errors():
        snapshot = store.fetch_hospitals_with_waiting_counts()

    results = filter_and_sort(snapshot, mode, q)

    meta: dict[str, Any] = {"total": len(results), "mode": _mode_name(mode), "query": q}
    if isinstance(mode, NearbyMode):
        meta["center"] = {"latitude": mode.origin.latitude, "longitude": mode.origin.longitude}
        meta["radius_km"] = mode.radius_km
    elif isinstance(mode, PostalCodeMode):
        meta["postal_code"] = mode.code

    return {"meta": meta, "data": [with_wait_level(h) for h in results]}


@router.get("/api/hospitals/mine")
async def my_hospital(
    auth: AuthContext = Depends(require_owner()),
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """The signed-in owner's hospital, as shown on the dashboard."""
    with store_errors():
        hospital = store.fetch_hospital_for_owner(auth.account_id)
    if hospital is None:
        raise HTTPException(status_code=404, detail="No hospital registered for this account")
    data = with_wait_level(hospital)
    data["checkin_url"] = checkin_url(hospital["id"])
    return {"data": data}


@router.get("/api/hospitals/{hospital_id}")
async def get_hospital(
    hospital_id: str,
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """Single hospital with waiting count, wait level and a maps link."""
    with store_errors():
        hospital = store.fetch_hospital(hospital_id)
    data = with_wait_level(hospital)
    data["maps_url"] = maps_url(hospital)
    return {"data": data}


@router.post("/api/hospitals", status_code=201)
async def create_hospital(
    req: HospitalCreateRequest,
    auth: AuthContext = Depends(require_owner()),
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """Register the owner's hospital together with its empty waiting list."""
    with store_errors():
        hospital = store.create_hospital(req.model_dump(), auth.account_id)
    logger.info("Hospital %s created by account %s", hospital["id"], auth.account_id)
    data = with_wait_level(hospital)
    data["checkin_url"] = checkin_url(hospital["id"])
    return {"data": data}


@router.patch("/api/hospitals/{hospital_id}")
async def update_hospital(
    hospital_id: str,
    req: HospitalUpdateRequest,
    auth: AuthContext = Depends(require_owner()),
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """Edit name, address, postal code, coordinates or contacts. Owner only."""
    changes = req.model_dump(exclude_unset=True)
    for required in ("name", "address"):
        if required in changes and changes[required] is None:
            raise HTTPException(status_code=422, detail=f"{required} cannot be cleared")

    with store_errors():
        hospital = store.update_hospital(hospital_id, changes, auth.account_id)
    logger.info("Hospital %s updated (%s)", hospital_id, ", ".join(sorted(changes)) or "no changes")
    return {"data": with_wait_level(hospital)}


@router.get("/api/hospitals/{hospital_id}/checkin-url")
async def get_checkin_url(
    hospital_id: str,
    auth: AuthContext = Depends(require_owner()),
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """Link to encode in the reception QR code. Owner only."""
    with store_errors():
        hospital = store.fetch_hospital(hospital_id)
    if hospital.get("owner_id") != auth.account_id:
        raise HTTPException(status_code=403, detail="Only the hospital's owner can do this")
    return {"hospital_id": hospital_id, "checkin_url": checkin_url(hospital_id)}
