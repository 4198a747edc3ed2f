"""
Print profile and GL code endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from check_ledger.api.deps import get_store
from check_ledger.exceptions import ProfileNotFoundError
from check_ledger.models.base import get_db
from check_ledger.schemas.profile import ProfileCreate, ProfileResponse
from check_ledger.services.gl_codes import GLCodeService
from check_ledger.services.ledger_store import LedgerStore

router = APIRouter(tags=["Profiles"])


@router.post("/profiles", response_model=ProfileResponse, status_code=201)
def create_profile(
    request: ProfileCreate,
    store: LedgerStore = Depends(get_store),
):
    return store.create_profile(request)


@router.get("/profiles/{profile_id}", response_model=ProfileResponse)
def get_profile(profile_id: str, store: LedgerStore = Depends(get_store)):
    try:
        return store.get_profile(profile_id)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/gl-codes")
def list_gl_codes(db: Session = Depends(get_db)):
    """GL codes learned from recorded checks, by code."""
    return [
        {"code": g.code, "description": g.description}
        for g in GLCodeService(db).list_codes()
    ]
