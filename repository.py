"""
Every query and mutation the application performs.

Each function takes the store as its first argument and raises
db.StoreUnavailable when there is no database behind it. Creates and updates
trust their input: validation happens in the routers.
"""
from typing import Any, List, Optional, Type, TypeVar

from loguru import logger
from sqlmodel import SQLModel, or_, select

import settings
from db import Store
from models import (
    CreditCardMachine,
    Fundraiser,
    MachineLocation,
    RedemptionRequest,
    Role,
    User,
    UserCredential,
    utcnow,
)

RowT = TypeVar("RowT", bound=SQLModel)

USER_UPSERT_FIELDS = ("name", "email", "login_method", "role", "last_signed_in")


def _get(store: Store, model: Type[RowT], row_id: int) -> Optional[RowT]:
    with store.session() as session:
        return session.get(model, row_id)


def _create(store: Store, model: Type[RowT], data: dict) -> RowT:
    row = model(**data)
    with store.session() as session:
        session.add(row)
        session.commit()
        session.refresh(row)
    return row


def _update(store: Store, model: Type[RowT], row_id: int, data: dict) -> Optional[RowT]:
    """Write only the given fields; returns None when the row does not exist."""
    with store.session() as session:
        row = session.get(model, row_id)
        if row is None:
            return None
        for field, value in data.items():
            setattr(row, field, value)
        session.add(row)
        session.commit()
        session.refresh(row)
    return row


# Users

def get_user_by_id(store: Store, user_id: int) -> Optional[User]:
    return _get(store, User, user_id)


def get_user_by_open_id(store: Store, open_id: str) -> Optional[User]:
    with store.session() as session:
        return session.exec(select(User).where(User.open_id == open_id)).first()


def get_user_by_username_or_email(store: Store, username_or_email: str) -> Optional[User]:
    with store.session() as session:
        return session.exec(
            select(User).where(
                or_(User.username == username_or_email, User.email == username_or_email)
            )
        ).first()


def get_credential(store: Store, user_id: int) -> Optional[UserCredential]:
    return _get(store, UserCredential, user_id)


def upsert_user(store: Store, open_id: str, **fields: Any) -> User:
    """
    Create or update the user identified by `open_id`.

    Only the keyword fields actually passed are written; everything else is
    left alone on update. The configured owner becomes admin unless a role is
    given explicitly. An upsert that changes nothing still bumps last_signed_in.
    """
    if not open_id:
        raise ValueError("User open_id is required for upsert")

    unknown = set(fields) - set(USER_UPSERT_FIELDS)
    if unknown:
        raise TypeError(f"Unsupported user fields: {', '.join(sorted(unknown))}")

    values = dict(fields)
    if "role" not in values and settings.OWNER_OPEN_ID and open_id == settings.OWNER_OPEN_ID:
        values["role"] = Role.admin

    with store.session() as session:
        user = session.exec(select(User).where(User.open_id == open_id)).first()
        if user is None:
            values.setdefault("last_signed_in", utcnow())
            user = User(open_id=open_id, **values)
            logger.info("Creating user {}", open_id)
        else:
            if not values:
                values["last_signed_in"] = utcnow()
            for field, value in values.items():
                setattr(user, field, value)

        session.add(user)
        session.commit()
        session.refresh(user)
    return user


def create_user(store: Store, user: User, password_hash: str) -> User:
    """Insert a user together with its local password credential."""
    with store.session() as session:
        session.add(user)
        session.flush()
        session.add(UserCredential(user_id=user.id, password_hash=password_hash))
        session.commit()
        session.refresh(user)
    return user


def update_user_last_signed_in(store: Store, user_id: int) -> Optional[User]:
    return _update(store, User, user_id, {"last_signed_in": utcnow()})


# Fundraisers

def list_fundraisers(store: Store) -> List[Fundraiser]:
    with store.session() as session:
        return list(session.exec(
            select(Fundraiser).order_by(Fundraiser.created_at.desc(), Fundraiser.id.desc())
        ).all())


def get_fundraiser(store: Store, fundraiser_id: int) -> Optional[Fundraiser]:
    return _get(store, Fundraiser, fundraiser_id)


def get_fundraiser_by_user_id(store: Store, user_id: int) -> Optional[Fundraiser]:
    with store.session() as session:
        return session.exec(select(Fundraiser).where(Fundraiser.user_id == user_id)).first()


def create_fundraiser(store: Store, data: dict) -> Fundraiser:
    return _create(store, Fundraiser, data)


def update_fundraiser(store: Store, fundraiser_id: int, data: dict) -> Optional[Fundraiser]:
    return _update(store, Fundraiser, fundraiser_id, data)


# Machine locations

def list_machine_locations(store: Store) -> List[MachineLocation]:
    with store.session() as session:
        return list(session.exec(select(MachineLocation).order_by(MachineLocation.id)).all())


def create_machine_location(store: Store, data: dict) -> MachineLocation:
    return _create(store, MachineLocation, data)


# Credit card machines

def list_machines(store: Store) -> List[CreditCardMachine]:
    with store.session() as session:
        return list(session.exec(
            select(CreditCardMachine).order_by(
                CreditCardMachine.created_at.desc(), CreditCardMachine.id.desc()
            )
        ).all())


def get_machine(store: Store, machine_id: int) -> Optional[CreditCardMachine]:
    return _get(store, CreditCardMachine, machine_id)


def list_machines_by_fundraiser(store: Store, fundraiser_id: int) -> List[CreditCardMachine]:
    with store.session() as session:
        return list(session.exec(
            select(CreditCardMachine)
            .where(CreditCardMachine.fundraiser_id == fundraiser_id)
            .order_by(CreditCardMachine.id)
        ).all())


def create_machine(store: Store, data: dict) -> CreditCardMachine:
    return _create(store, CreditCardMachine, data)


def update_machine(store: Store, machine_id: int, data: dict) -> Optional[CreditCardMachine]:
    return _update(store, CreditCardMachine, machine_id, data)


# Redemption requests

def list_redemption_requests(store: Store) -> List[RedemptionRequest]:
    with store.session() as session:
        return list(session.exec(
            select(RedemptionRequest).order_by(
                RedemptionRequest.created_at.desc(), RedemptionRequest.id.desc()
            )
        ).all())


def get_redemption_request(store: Store, request_id: int) -> Optional[RedemptionRequest]:
    return _get(store, RedemptionRequest, request_id)


def list_redemption_requests_by_fundraiser(
    store: Store, fundraiser_id: int
) -> List[RedemptionRequest]:
    with store.session() as session:
        return list(session.exec(
            select(RedemptionRequest)
            .where(RedemptionRequest.fundraiser_id == fundraiser_id)
            .order_by(RedemptionRequest.created_at.desc(), RedemptionRequest.id.desc())
        ).all())


def create_redemption_request(store: Store, data: dict) -> RedemptionRequest:
    return _create(store, RedemptionRequest, data)


def update_redemption_request(
    store: Store, request_id: int, data: dict
) -> Optional[RedemptionRequest]:
    return _update(store, RedemptionRequest, request_id, data)
