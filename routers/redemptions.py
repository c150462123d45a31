from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException
from loguru import logger
from sqlalchemy.exc import IntegrityError

import repository
import settings
from db import StoreDep, read_or
from models import RedemptionStatus
from notifications import (
    STATUS_MESSAGES,
    dispatch,
    notify_admin_new_redemption,
    notify_fundraiser_status_change,
)
from schemas import RedemptionCreate, RedemptionRead, RedemptionUpdate
from transitions import REDEMPTION_TRANSITIONS, transition_error
from .auth import AdminUserDep, CurrentUserDep

router = APIRouter(prefix="/redemptions", tags=["redemptions"])


@router.get("/", response_model=List[RedemptionRead])
def list_redemptions(store: StoreDep, admin: AdminUserDep):
    """
    All redemption requests, newest first.
    """
    return read_or([], repository.list_redemption_requests, store)


@router.get("/by-fundraiser/{fundraiser_id}", response_model=List[RedemptionRead])
def list_redemptions_by_fundraiser(fundraiser_id: int, store: StoreDep, current: CurrentUserDep):
    return read_or([], repository.list_redemption_requests_by_fundraiser, store, fundraiser_id)


@router.get("/{request_id}", response_model=Optional[RedemptionRead])
def get_redemption(request_id: int, store: StoreDep, current: CurrentUserDep):
    return read_or(None, repository.get_redemption_request, store, request_id)


@router.post("/", response_model=RedemptionRead)
def create_redemption(
    data: RedemptionCreate,
    store: StoreDep,
    current: CurrentUserDep,
    background_tasks: BackgroundTasks,
):
    """
    Ask to cash out funds. New requests always start out pending.
    """
    values = data.model_dump(exclude_none=True)
    values["status"] = RedemptionStatus.pending
    try:
        redemption = repository.create_redemption_request(store, values)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Fundraiser does not exist")

    logger.info(
        "User {} created redemption request {} for fundraiser {}",
        current.id, redemption.id, redemption.fundraiser_id,
    )

    fundraiser = read_or(None, repository.get_fundraiser, store, redemption.fundraiser_id)
    background_tasks.add_task(
        dispatch,
        notify_admin_new_redemption,
        settings.ADMIN_EMAIL,
        fundraiser.display_name if fundraiser else f"Fundraiser #{redemption.fundraiser_id}",
        str(redemption.amount),
        redemption.id,
    )
    return redemption


@router.patch("/{request_id}", response_model=Optional[RedemptionRead])
def update_redemption(
    request_id: int,
    update: RedemptionUpdate,
    store: StoreDep,
    admin: AdminUserDep,
    background_tasks: BackgroundTasks,
):
    """
    Change status and/or check details.
    Any status may be set from any other unless transition checks are enabled.
    """
    changes = update.changes()
    new_status = changes.get("status")

    if new_status is not None and settings.ENFORCE_STATUS_TRANSITIONS:
        existing = repository.get_redemption_request(store, request_id)
        if existing is None:
            return None
        error = transition_error(REDEMPTION_TRANSITIONS, existing.status, new_status)
        if error:
            raise HTTPException(status_code=409, detail=error)

    redemption = repository.update_redemption_request(store, request_id, changes)
    if redemption is None:
        return None

    logger.info("Admin {} updated redemption request {}: {}", admin.id, request_id, sorted(changes))

    if new_status is not None and new_status.value in STATUS_MESSAGES:
        fundraiser = read_or(None, repository.get_fundraiser, store, redemption.fundraiser_id)
        if fundraiser is None:
            logger.warning(
                "Redemption request {} has no fundraiser {}; skipping notification",
                request_id, redemption.fundraiser_id,
            )
        else:
            background_tasks.add_task(
                dispatch,
                notify_fundraiser_status_change,
                fundraiser.email,
                fundraiser.display_name,
                new_status.value,
                str(redemption.amount),
                redemption.id,
            )
    return redemption
