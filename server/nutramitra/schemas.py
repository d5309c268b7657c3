"""
Request bodies.

Clients send camelCase keys (`healthBenefits`, `isOrganic`, ...); the models
expose snake_case attributes matching the table columns. Validators raise
plain ValueError with the message the client should see.
"""
from typing import Annotated, Dict, List, Optional

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from nutramitra.auth.passwords import password_problem

CATEGORIES = ("fruit", "vegetable")


def _check_email(value: str) -> str:
    value = value.strip()
    try:
        validate_email(value)
    except PydanticCustomError:
        raise ValueError("Invalid email address")
    return value.lower()


def _min_length(label: str, n: int):
    def check(value: str) -> str:
        value = value.strip()
        if len(value) < n:
            raise ValueError(f"{label} must be at least {n} characters")
        return value
    return AfterValidator(check)


Email = Annotated[str, AfterValidator(_check_email)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Auth ----------

class EmailBody(CamelModel):
    email: Email


class VerifyOtpBody(CamelModel):
    email: Email
    otp: str


class NewPasswordFields(CamelModel):
    password: str
    confirm_password: Optional[str] = None

    @field_validator("password")
    @classmethod
    def strong_password(cls, value):
        problem = password_problem(value)
        if problem:
            raise ValueError(problem)
        return value

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class RegisterBody(NewPasswordFields):
    name: Annotated[str, _min_length("Name", 2)]
    email: Email
    # Returned by PUT /auth/send-otp once the code checked out
    signup_token: Optional[str] = None
    # Accepted for compatibility; accounts are always created verified
    is_verified: bool = False


class LoginBody(CamelModel):
    email: str
    password: str


class ResetPasswordBody(NewPasswordFields):
    reset_token: str


# ---------- Catalog ----------

class FruitFields(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    calories: Optional[float] = None
    vitamins: Optional[List[str]] = None
    minerals: Optional[Dict[str, float]] = None
    health_benefits: Optional[List[str]] = None
    seasonal_availability: Optional[str] = None
    is_organic: Optional[bool] = None
    origin_story: Optional[str] = None
    # `image` is the legacy name of the same field
    image_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("imageUrl", "image", "image_url")
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if value is not None else value

    @field_validator("category")
    @classmethod
    def known_category(cls, value):
        if value is not None and value not in CATEGORIES:
            raise ValueError("Category must be either 'fruit' or 'vegetable'")
        return value

    @field_validator("image_url", mode="before")
    @classmethod
    def image_is_string(cls, value):
        if value is not None and not isinstance(value, str):
            raise ValueError("Image must be a valid URL string")
        return value


class FruitCreate(FruitFields):
    vitamins: List[str] = Field(default_factory=list)
    minerals: Dict[str, float] = Field(default_factory=dict)
    health_benefits: List[str] = Field(default_factory=list)
    is_organic: bool = False

    @model_validator(mode="after")
    def required_fields(self):
        if not self.name or not self.category:
            raise ValueError("Name and category are required fields")
        return self


class FruitUpdate(FruitFields):
    @field_validator("name", "category")
    @classmethod
    def not_cleared(cls, value, info):
        if not value:
            raise ValueError(f"{info.field_name.capitalize()} cannot be empty")
        return value

    @field_validator("vitamins", "health_benefits")
    @classmethod
    def list_default(cls, value):
        return value if value is not None else []

    @field_validator("minerals")
    @classmethod
    def minerals_default(cls, value):
        return value if value is not None else {}

    @field_validator("is_organic")
    @classmethod
    def organic_default(cls, value):
        return bool(value)

    def changes(self) -> dict:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class UpdateImageBody(CamelModel):
    fruit_id: Optional[str] = None
    image_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("imageUrl", "image", "image_url")
    )
    public_id: Optional[str] = None

    @model_validator(mode="after")
    def required_fields(self):
        if not self.fruit_id or not self.image_url:
            raise ValueError("Fruit ID and image URL are required")
        return self


# ---------- Contact ----------

class ContactBody(CamelModel):
    name: Annotated[str, _min_length("Name", 2)]
    email: Email
    subject: Annotated[str, _min_length("Subject", 5)]
    message: Annotated[str, _min_length("Message", 10)]
