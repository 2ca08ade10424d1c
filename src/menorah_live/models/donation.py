import math
import re
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel


NAME_MAX_LENGTH = 100
REFERENCE_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 254
PHONE_MAX_LENGTH = 30

PHONE_PATTERN = re.compile(r"^\+?[0-9(][0-9 ().\-]{4,}[0-9]$")


def clean_name(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} must be a non-empty string")
    return value.strip()[:NAME_MAX_LENGTH]


def clean_amount(value) -> int:
    # bool is an int subclass and is never a valid amount
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("amount must be a positive number")
    if not math.isfinite(value):
        raise ValueError("amount must be a positive number")
    amount = math.floor(value)
    if amount <= 0:
        raise ValueError("amount must be a positive number")
    return amount


def clean_reference(value) -> str | None:
    if not value:
        return None
    reference = str(value).strip()[:REFERENCE_MAX_LENGTH]
    return reference or None


def clean_email(value) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("email must be a string")
    email = value.strip()
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError(f"email must be at most {EMAIL_MAX_LENGTH} characters")
    return email or None


def clean_phone(value) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("phone must be a string")
    phone = value.strip()
    if not phone:
        return None
    if len(phone) > PHONE_MAX_LENGTH or not PHONE_PATTERN.fullmatch(phone):
        raise ValueError("phone is not a valid phone number")
    return phone


def clean_word_id(value) -> str | None:
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError("premiumWordId must be a string")
    return value.strip() or None


class _DonationInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @field_validator("amount", mode="before", check_fields=False)
    @classmethod
    def check_amount(cls, value):
        return clean_amount(value)

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def check_email(cls, value):
        return clean_email(value)

    @field_validator("phone", mode="before", check_fields=False)
    @classmethod
    def check_phone(cls, value):
        return clean_phone(value)

    @field_validator("reference", mode="before", check_fields=False)
    @classmethod
    def check_reference(cls, value):
        return clean_reference(value)

    @field_validator("premium_word_id", mode="before", check_fields=False)
    @classmethod
    def check_premium_word_id(cls, value):
        return clean_word_id(value)


class DonationCreate(_DonationInput):
    first_name: str
    last_name: str
    amount: int
    email: EmailStr | None = None
    phone: str | None = None
    reference: str | None = None
    premium_word_id: str | None = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def check_names(cls, value, info):
        return clean_name(value, to_camel(info.field_name))


class DonationPatch(_DonationInput):
    """Partial update. Only fields present in the payload are applied."""

    first_name: str | None = None
    last_name: str | None = None
    amount: int | None = None
    email: EmailStr | None = None
    phone: str | None = None
    reference: str | None = None
    premium_word_id: str | None = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def check_names(cls, value, info):
        return clean_name(value, to_camel(info.field_name))

    def provided(self) -> set[str]:
        return set(self.model_fields_set)


class Donation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    first_name: str
    last_name: str
    amount: int
    email: str | None = None
    phone: str | None = None
    reference: str | None = None
    premium_word_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def donor_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_public(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
