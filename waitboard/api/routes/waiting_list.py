"""Waiting-list endpoints — public self-check-in and staff adjustments."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ...algorithms import CHECKIN_DELTA, WaitingListEntry, wait_level
from ..auth import AuthContext, require_owner
from ..models import WaitingCountAdjustRequest
from ..store import HospitalStore, get_store
from . import store_errors

logger = logging.getLogger(__name__)

router = APIRouter()


def _entry_response(entry: WaitingListEntry, hospital: dict[str, Any]) -> dict[str, Any]:
    return {
        "data": {
            **entry.to_dict(),
            "hospital_name": hospital.get("name"),
            "wait_level": wait_level(entry.count),
        }
    }


@router.get("/api/hospitals/{hospital_id}/waiting-count")
async def get_waiting_count(
    hospital_id: str,
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """Current waiting count — cheap endpoint for polling clients."""
    with store_errors():
        hospital = store.fetch_hospital(hospital_id)
    return {
        "data": {
            "hospital_id": hospital_id,
            "hospital_name": hospital["name"],
            "waiting_count": hospital["waiting_count"],
            "last_updated": hospital["last_updated"],
            "wait_level": wait_level(hospital["waiting_count"]),
        }
    }


@router.post("/api/hospitals/{hospital_id}/checkin")
async def self_checkin(
    hospital_id: str,
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """Public self-check-in (QR code scan): adds one patient to the waiting list."""
    with store_errors():
        hospital = store.fetch_hospital(hospital_id)
        entry = store.adjust_waiting_count(hospital_id, CHECKIN_DELTA)
    logger.info("Self-check-in at %s — waiting count now %d", hospital_id, entry.count)
    return _entry_response(entry, hospital)


@router.post("/api/hospitals/{hospital_id}/waiting-count")
async def adjust_waiting_count(
    hospital_id: str,
    req: WaitingCountAdjustRequest,
    auth: AuthContext = Depends(require_owner()),
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """Staff adjustment from the dashboard (+1 / -1, floored at zero). Owner only."""
    with store_errors():
        hospital = store.fetch_hospital(hospital_id)
        if hospital.get("owner_id") != auth.account_id:
            raise HTTPException(status_code=403, detail="Only the hospital's owner can do this")
        entry = store.adjust_waiting_count(hospital_id, req.delta)
    logger.info(
        "Staff adjustment %+d at %s by %s — waiting count now %d",
        req.delta,
        hospital_id,
        auth.account_id,
        entry.count,
    )
    return _entry_response(entry, hospital)
