"""HTTP routers for the Hospital Wait Board API."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException

from ..store import (
    DuplicateAccount,
    HospitalNotFound,
    NotOwner,
    OwnerHasHospital,
    PersistenceFailure,
)

logger = logging.getLogger(__name__)


@contextmanager
def store_errors() -> Iterator[None]:
    """Translate store exceptions into HTTP errors."""
    try:
        yield
    except HospitalNotFound:
        raise HTTPException(status_code=404, detail="Hospital not found")
    except NotOwner:
        raise HTTPException(status_code=403, detail="Only the hospital's owner can do this")
    except OwnerHasHospital:
        raise HTTPException(status_code=409, detail="This account already registered a hospital")
    except DuplicateAccount:
        raise HTTPException(status_code=409, detail="An account with this email already exists")
    except PersistenceFailure as e:
        logger.warning("Persistence failure surfaced to client: %s", e)
        raise HTTPException(status_code=503, detail="Database operation failed, try again shortly")
