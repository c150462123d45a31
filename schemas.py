from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from models import FundraiserStatus, MachineStatus, RedemptionStatus, Role


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names; snake_case is accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReadModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class PatchModel(CamelModel):
    """
    Partial update body.

    Only fields present in the request are written, so a missing field and an
    explicit null mean different things. Fields listed in `not_null` may be
    omitted but not cleared.
    """

    not_null: ClassVar[frozenset] = frozenset()

    @model_validator(mode="after")
    def reject_cleared_required_fields(self):
        for name in sorted(self.model_fields_set & self.not_null):
            if getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# Auth

class LoginData(CamelModel):
    username_or_email: str = Field(min_length=1)
    password: str = Field(min_length=6)


class SignupData(CamelModel):
    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    name: Optional[str] = None


class UserRead(ReadModel):
    id: int
    open_id: str
    username: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    login_method: Optional[str] = None
    role: Role
    created_at: datetime
    updated_at: datetime
    last_signed_in: datetime


class AuthResult(CamelModel):
    success: bool = True
    user: UserRead


# Fundraisers

class FundraiserCreate(CamelModel):
    user_id: int
    customer_phone_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_foundation: Optional[bool] = None
    is_company: Optional[bool] = None
    hebrew_name: Optional[str] = None
    email: EmailStr
    address2: Optional[str] = None
    address3: Optional[str] = None
    address4: Optional[str] = None
    status: Optional[FundraiserStatus] = None


class FundraiserUpdate(PatchModel):
    not_null: ClassVar[frozenset] = frozenset({"is_foundation", "is_company", "email", "status"})

    customer_phone_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_foundation: Optional[bool] = None
    is_company: Optional[bool] = None
    hebrew_name: Optional[str] = None
    email: Optional[EmailStr] = None
    address2: Optional[str] = None
    address3: Optional[str] = None
    address4: Optional[str] = None
    status: Optional[FundraiserStatus] = None


class FundraiserRead(ReadModel):
    id: int
    user_id: int
    customer_phone_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_foundation: Optional[bool] = None
    is_company: Optional[bool] = None
    hebrew_name: Optional[str] = None
    email: str
    address2: Optional[str] = None
    address3: Optional[str] = None
    address4: Optional[str] = None
    status: FundraiserStatus
    created_at: datetime
    updated_at: datetime


# Machine locations

class MachineLocationCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None


class MachineLocationRead(ReadModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime


# Machines

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored in UTC; a value without an offset is taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MachineCreate(CamelModel):
    fundraiser_id: Optional[int] = None
    machine_name: str = Field(min_length=1, max_length=100)
    machine_number: str = Field(min_length=1, max_length=50)
    batch_number: Optional[str] = None
    location_id: Optional[int] = None
    status: Optional[MachineStatus] = None
    batch_date: Optional[datetime] = None

    @field_validator("batch_date")
    @classmethod
    def batch_date_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class MachineUpdate(PatchModel):
    not_null: ClassVar[frozenset] = frozenset({"machine_name", "machine_number", "status"})

    # Nullable fields may be sent as null to clear them
    fundraiser_id: Optional[int] = None
    machine_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    machine_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    batch_number: Optional[str] = None
    location_id: Optional[int] = None
    status: Optional[MachineStatus] = None
    batch_date: Optional[datetime] = None

    @field_validator("batch_date")
    @classmethod
    def batch_date_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class MachineRead(ReadModel):
    id: int
    fundraiser_id: Optional[int] = None
    machine_name: str
    machine_number: str
    batch_number: Optional[str] = None
    location_id: Optional[int] = None
    status: MachineStatus
    batch_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# Redemption requests

class RedemptionCreate(CamelModel):
    """No status field: new requests always start out pending."""

    fundraiser_id: int
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    check_number: Optional[str] = Field(default=None, max_length=50)
    check_name: Optional[str] = Field(default=None, max_length=100)
    check_memo: Optional[str] = None
    notes: Optional[str] = None


class RedemptionUpdate(PatchModel):
    not_null: ClassVar[frozenset] = frozenset({"status"})

    status: Optional[RedemptionStatus] = None
    check_number: Optional[str] = Field(default=None, max_length=50)
    check_name: Optional[str] = Field(default=None, max_length=100)
    check_memo: Optional[str] = None
    notes: Optional[str] = None


class RedemptionRead(ReadModel):
    id: int
    fundraiser_id: int
    amount: Decimal
    check_number: Optional[str] = None
    check_name: Optional[str] = None
    check_memo: Optional[str] = None
    status: RedemptionStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
