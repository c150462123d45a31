from typing import List

from fastapi import APIRouter, HTTPException
from loguru import logger
from sqlalchemy.exc import IntegrityError

import repository
from db import StoreDep, read_or
from schemas import MachineLocationCreate, MachineLocationRead
from .auth import AdminUserDep

router = APIRouter(prefix="/machine-locations", tags=["machine-locations"])


@router.get("/", response_model=List[MachineLocationRead])
def list_machine_locations(store: StoreDep):
    """
    Public: the predefined places a machine can be kept.
    """
    return read_or([], repository.list_machine_locations, store)


@router.post("/", response_model=MachineLocationRead)
def create_machine_location(data: MachineLocationCreate, store: StoreDep, admin: AdminUserDep):
    try:
        location = repository.create_machine_location(store, data.model_dump(exclude_none=True))
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Location name already exists")

    logger.info("Admin {} created machine location {}", admin.id, location.name)
    return location
