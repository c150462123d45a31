from typing import List, Optional

from fastapi import APIRouter, HTTPException
from loguru import logger
from sqlalchemy.exc import IntegrityError

import repository
from db import StoreDep, read_or
from schemas import FundraiserCreate, FundraiserRead, FundraiserUpdate
from .auth import AdminUserDep, CurrentUserDep

router = APIRouter(prefix="/fundraisers", tags=["fundraisers"])


@router.get("/", response_model=List[FundraiserRead])
def list_fundraisers(store: StoreDep, admin: AdminUserDep):
    """
    All fundraisers, newest first.
    """
    return read_or([], repository.list_fundraisers, store)


@router.get("/by-user/{user_id}", response_model=Optional[FundraiserRead])
def get_fundraiser_by_user(user_id: int, store: StoreDep, current: CurrentUserDep):
    return read_or(None, repository.get_fundraiser_by_user_id, store, user_id)


@router.get("/{fundraiser_id}", response_model=Optional[FundraiserRead])
def get_fundraiser(fundraiser_id: int, store: StoreDep, admin: AdminUserDep):
    return read_or(None, repository.get_fundraiser, store, fundraiser_id)


@router.post("/", response_model=FundraiserRead)
def create_fundraiser(data: FundraiserCreate, store: StoreDep, admin: AdminUserDep):
    try:
        fundraiser = repository.create_fundraiser(store, data.model_dump(exclude_none=True))
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Fundraiser conflicts with existing data")

    logger.info("Admin {} created fundraiser {}", admin.id, fundraiser.id)
    return fundraiser


@router.patch("/{fundraiser_id}", response_model=Optional[FundraiserRead])
def update_fundraiser(
    fundraiser_id: int,
    update: FundraiserUpdate,
    store: StoreDep,
    admin: AdminUserDep,
):
    """
    Change only the fields present in the body.
    """
    changes = update.changes()
    try:
        fundraiser = repository.update_fundraiser(store, fundraiser_id, changes)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Fundraiser conflicts with existing data")

    if fundraiser is not None:
        logger.info("Admin {} updated fundraiser {}: {}", admin.id, fundraiser_id, sorted(changes))
    return fundraiser
