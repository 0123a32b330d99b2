"""
Record models for the chat backend.

The backend speaks camelCase JSON; models accept either the wire alias or
the Python field name and dump by alias when sent back.
"""

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T", bound=BaseModel)

RecordId = Union[int, str]


class WireModel(BaseModel):
    """Base for models exchanged with the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def _check_email(v: str) -> str:
    v = v.strip()
    local, _, domain = v.partition("@")
    if not local or not domain:
        raise ValueError("must be a valid email address")
    return v.lower()


class User(WireModel):
    """A registered chat user. The password hash never leaves the backend."""

    id: RecordId
    email: str
    avatar: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @property
    def display_name(self) -> str:
        return self.email.split("@", 1)[0]


class UserCreate(WireModel):
    """Registration payload."""

    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class Message(WireModel):
    """A chat message. ``user`` is populated by the backend when available."""

    id: RecordId
    text: str
    user_id: RecordId = Field(alias="userId")
    user: Optional[User] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class MessageCreate(WireModel):
    """Payload for sending a message; the author comes from the session."""

    text: str

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("message text must not be empty")
        return v


class Page(WireModel, Generic[T]):
    """A page of records returned by ``find``."""

    total: int
    limit: int
    skip: int = 0
    data: List[T] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: Any, model: Type[T]) -> "Page[T]":
        """Build a page from a ``find`` result.

        A backend with pagination disabled answers with a bare list; it is
        normalized into a single page holding every record.
        """
        if isinstance(result, list):
            records = [model.model_validate(item) for item in result]
            return Page[model](total=len(records), limit=len(records), skip=0, data=records)
        if isinstance(result, dict) and "data" in result:
            records = [model.model_validate(item) for item in result.get("data") or []]
            return Page[model](
                total=result.get("total", len(records)),
                limit=result.get("limit", len(records)),
                skip=result.get("skip", 0),
                data=records,
            )
        raise ValueError(f"Unexpected find result: {type(result).__name__}")


class AuthResult(WireModel):
    """Successful authentication response."""

    access_token: str = Field(alias="accessToken")
    authentication: Dict[str, Any] = Field(default_factory=dict)
    user: Optional[User] = None


class LocalCredentials(WireModel):
    """Credentials for the ``local`` strategy."""

    email: str
    password: str
