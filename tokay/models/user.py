"""User data models for authentication"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

VERIFICATION_CODE_LENGTH = 6


class Identity(BaseModel):
    """The authenticated principal, as returned by the backend"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    phone_number: str = Field(alias="phoneNumber")
    full_name: Optional[str] = Field(default=None, alias="fullName")
    email: Optional[str] = None
    is_phone_verified: bool = Field(default=False, alias="isPhoneVerified")
    preferred_language: Optional[str] = Field(default=None, alias="preferredLanguage")
    role: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # backends may hand out integer or UUID ids
        return str(value) if value is not None else value

    @property
    def display_name(self) -> str:
        return self.full_name or self.phone_number


class PendingVerification(BaseModel):
    """A registered phone number awaiting its one-time code"""
    model_config = ConfigDict(frozen=True)

    phone_number: str
    code_length: int = VERIFICATION_CODE_LENGTH


class RegistrationData(BaseModel):
    """Fields submitted to /auth/register"""
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(alias="phoneNumber", min_length=1)
    full_name: Optional[str] = Field(default=None, alias="fullName")
    email: Optional[str] = None
    password: Optional[str] = None  # may also be set after verification
    preferred_language: str = Field(default="ms", alias="preferredLanguage")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RegistrationAck(BaseModel):
    """Backend acknowledgement of a registration"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: Optional[str] = Field(default=None, alias="userId")
    phone_number: str = Field(alias="phoneNumber")
    is_phone_verified: bool = Field(default=False, alias="isPhoneVerified")
    message: Optional[str] = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value):
        return str(value) if value is not None else value
