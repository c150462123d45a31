from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    user = "user"
    admin = "admin"


class FundraiserStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class MachineStatus(str, Enum):
    available = "available"
    assigned = "assigned"
    returned = "returned"
    inactive = "inactive"


class RedemptionStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    released = "released"
    rejected = "rejected"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    # External login id, or "local:<username>" for password accounts
    open_id: str = Field(max_length=128, unique=True, index=True)
    username: Optional[str] = Field(default=None, max_length=100, unique=True)
    name: Optional[str] = None
    email: Optional[str] = Field(default=None, max_length=320, index=True)
    login_method: Optional[str] = Field(default=None, max_length=64)
    role: Role = Role.user

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}
    )
    last_signed_in: datetime = Field(default_factory=utcnow)


class UserCredential(SQLModel, table=True):
    __tablename__ = "user_credentials"

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    password_hash: str

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}
    )


class Fundraiser(SQLModel, table=True):
    __tablename__ = "fundraisers"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    customer_phone_id: Optional[str] = Field(default=None, max_length=50)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    is_foundation: bool = False
    is_company: bool = False
    hebrew_name: Optional[str] = None
    email: str = Field(max_length=320, index=True)
    address2: Optional[str] = None
    address3: Optional[str] = None
    address4: Optional[str] = None
    status: FundraiserStatus = FundraiserStatus.active

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}
    )

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.hebrew_name or self.email


class MachineLocation(SQLModel, table=True):
    __tablename__ = "machine_locations"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, unique=True)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class CreditCardMachine(SQLModel, table=True):
    __tablename__ = "credit_card_machines"

    id: Optional[int] = Field(default=None, primary_key=True)
    fundraiser_id: Optional[int] = Field(
        default=None, foreign_key="fundraisers.id", index=True
    )

    machine_name: str = Field(max_length=100)
    machine_number: str = Field(max_length=50, unique=True, index=True)
    batch_number: Optional[str] = Field(default=None, max_length=50)
    location_id: Optional[int] = Field(default=None, foreign_key="machine_locations.id")
    status: MachineStatus = Field(default=MachineStatus.available, index=True)
    batch_date: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}
    )


class RedemptionRequest(SQLModel, table=True):
    __tablename__ = "redemption_requests"

    id: Optional[int] = Field(default=None, primary_key=True)
    fundraiser_id: int = Field(foreign_key="fundraisers.id", index=True)

    amount: Decimal = Field(max_digits=10, decimal_places=2)
    check_number: Optional[str] = Field(default=None, max_length=50)
    check_name: Optional[str] = Field(default=None, max_length=100)
    check_memo: Optional[str] = None
    status: RedemptionStatus = Field(default=RedemptionStatus.pending, index=True)
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}
    )
