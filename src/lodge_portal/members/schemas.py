"""
Pydantic schemas for member profiles.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MemberRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class MemberStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class MemberProfile(BaseModel):
    """One row of ``member_profiles``; 1:1 with an identity via ``user_id``."""

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    id: str = Field(..., description="Store-assigned primary key")
    user_id: str = Field(..., description="Identity this profile belongs to")
    full_name: str = Field(..., description="Display name")
    position: str | None = Field(None, description="Masonic office held")
    role: MemberRole = Field(MemberRole.MEMBER, description="Member role")
    status: MemberStatus = Field(MemberStatus.PENDING, description="Approval status")
    contact_email: str | None = None
    contact_phone: str | None = None
    share_contact_info: bool = Field(
        False, description="Whether contact fields are visible in the directory"
    )
    needs_password_reset: bool = False
    grand_lodge_rank: str | None = None
    notes: str | None = None
    email_verified: bool | None = None
    join_date: datetime | date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def default_missing_status(cls, v: Any) -> Any:
        return MemberStatus.PENDING if v is None or v == "" else v

    @field_validator("role", mode="before")
    @classmethod
    def default_missing_role(cls, v: Any) -> Any:
        return MemberRole.MEMBER if v is None or v == "" else v

    @field_validator("share_contact_info", "needs_password_reset", mode="before")
    @classmethod
    def null_is_false(cls, v: Any) -> Any:
        return False if v is None else v

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN and self.status == MemberStatus.ACTIVE


class MemberProfileCreate(BaseModel):
    """Insert payload for a new profile."""

    user_id: str
    full_name: str
    role: MemberRole = MemberRole.MEMBER
    status: MemberStatus = MemberStatus.PENDING
    position: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    share_contact_info: bool = False
    needs_password_reset: bool = False
    join_date: datetime | date | None = None


class MemberProfileUpdate(BaseModel):
    """Fields a member may change on their own profile."""

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    share_contact_info: bool | None = None


class MemberAdminUpdate(BaseModel):
    """Fields only an admin may change."""

    model_config = ConfigDict(extra="forbid")

    role: MemberRole | None = None
    status: MemberStatus | None = None
    position: str | None = None
    grand_lodge_rank: str | None = None
    notes: str | None = None
    needs_password_reset: bool | None = None


class DirectoryEntry(BaseModel):
    """A member as shown in the member directory."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    full_name: str
    position: str | None = None
    grand_lodge_rank: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None

    @classmethod
    def from_profile(cls, profile: MemberProfile) -> "DirectoryEntry":
        shared = profile.share_contact_info
        return cls(
            user_id=profile.user_id,
            full_name=profile.full_name,
            position=profile.position,
            grand_lodge_rank=profile.grand_lodge_rank,
            contact_email=profile.contact_email if shared else None,
            contact_phone=profile.contact_phone if shared else None,
        )
