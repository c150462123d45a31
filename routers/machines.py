from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException
from loguru import logger
from sqlalchemy.exc import IntegrityError

import repository
import settings
from db import StoreDep, read_or
from models import MachineStatus
from notifications import dispatch, notify_admin_machine_returned
from schemas import MachineCreate, MachineRead, MachineUpdate
from transitions import MACHINE_TRANSITIONS, transition_error
from .auth import AdminUserDep, CurrentUserDep

router = APIRouter(prefix="/machines", tags=["machines"])


@router.get("/", response_model=List[MachineRead])
def list_machines(store: StoreDep, admin: AdminUserDep):
    """
    All credit card machines, newest first.
    """
    return read_or([], repository.list_machines, store)


@router.get("/by-fundraiser/{fundraiser_id}", response_model=List[MachineRead])
def list_machines_by_fundraiser(fundraiser_id: int, store: StoreDep, current: CurrentUserDep):
    return read_or([], repository.list_machines_by_fundraiser, store, fundraiser_id)


@router.get("/{machine_id}", response_model=Optional[MachineRead])
def get_machine(machine_id: int, store: StoreDep, current: CurrentUserDep):
    return read_or(None, repository.get_machine, store, machine_id)


@router.post("/", response_model=MachineRead)
def create_machine(data: MachineCreate, store: StoreDep, admin: AdminUserDep):
    try:
        machine = repository.create_machine(store, data.model_dump(exclude_none=True))
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="Machine number already exists or a referenced record is missing",
        )

    logger.info("Admin {} created machine {} ({})", admin.id, machine.id, machine.machine_number)
    return machine


@router.patch("/{machine_id}", response_model=Optional[MachineRead])
def update_machine(
    machine_id: int,
    update: MachineUpdate,
    store: StoreDep,
    admin: AdminUserDep,
    background_tasks: BackgroundTasks,
):
    """
    Change only the fields present in the body.
    Sending "fundraiserId": null unassigns the machine and leaves the rest alone.
    """
    changes = update.changes()
    existing = repository.get_machine(store, machine_id)
    if existing is None:
        return None

    error = transition_error(MACHINE_TRANSITIONS, existing.status, changes.get("status"))
    if error:
        raise HTTPException(status_code=409, detail=error)

    try:
        machine = repository.update_machine(store, machine_id, changes)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="Machine number already exists or a referenced record is missing",
        )
    if machine is None:
        return None

    logger.info("Admin {} updated machine {}: {}", admin.id, machine_id, sorted(changes))

    if changes.get("status") == MachineStatus.returned and existing.status != MachineStatus.returned:
        fundraiser_id = existing.fundraiser_id or machine.fundraiser_id
        fundraiser = (
            read_or(None, repository.get_fundraiser, store, fundraiser_id)
            if fundraiser_id
            else None
        )
        background_tasks.add_task(
            dispatch,
            notify_admin_machine_returned,
            settings.ADMIN_EMAIL,
            fundraiser.display_name if fundraiser else "Unassigned",
            machine.machine_name,
            machine.batch_number or "",
        )

    return machine
