"""Todo (task) domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from core.optional import OptionalField
from utils.timezone import ensure_utc

SUBJECT_MAX_LENGTH = 255


class TodoCreate(BaseModel):
    """Data required to create a todo. The owner comes from the request scope."""

    subject: str = Field(..., min_length=1, max_length=SUBJECT_MAX_LENGTH)
    description: str = ""
    priority: int = 0
    due_date: datetime | None = None
    completed: bool = False

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)


class TodoUpdate(BaseModel):
    """
    Partial update of a todo.

    Keys left out of the request keep their stored value. `due_date` may be
    sent as null to clear it; null is rejected for every other field.
    """

    subject: OptionalField[str] = Field(default_factory=OptionalField.undefined)
    description: OptionalField[str] = Field(default_factory=OptionalField.undefined)
    priority: OptionalField[int] = Field(default_factory=OptionalField.undefined)
    due_date: OptionalField[datetime | None] = Field(default_factory=OptionalField.undefined)
    completed: OptionalField[bool] = Field(default_factory=OptionalField.undefined)

    @field_validator("subject")
    @classmethod
    def subject_not_blank(cls, v: OptionalField[str]) -> OptionalField[str]:
        """Same rules as on create when the key is present."""
        if v.defined:
            if not v.value:
                raise ValueError("Cannot be blank")
            if len(v.value) > SUBJECT_MAX_LENGTH:
                raise ValueError(f"The length must be no more than {SUBJECT_MAX_LENGTH}")
        return v

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v: OptionalField[datetime | None]) -> OptionalField[datetime | None]:
        if v.defined:
            return OptionalField.of(ensure_utc(v.value))
        return v

    def defined_fields(self) -> set[str]:
        """Names of the fields whose keys were present."""
        return {name for name in type(self).model_fields if getattr(self, name).defined}


class TodoFilter(BaseModel):
    """
    Filter for listing todos, decoded from the URL query.

    Every filter is optional; `due_date=null` selects todos without a due
    date. `offset` and `limit` of 0 mean no pagination.
    """

    id: OptionalField[UUID] = Field(default_factory=OptionalField.undefined)
    priority: OptionalField[int] = Field(default_factory=OptionalField.undefined)
    due_date: OptionalField[datetime | None] = Field(default_factory=OptionalField.undefined)
    completed: OptionalField[bool] = Field(default_factory=OptionalField.undefined)
    offset: int = Field(0, ge=0)
    limit: int = Field(0, ge=0)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v: OptionalField[datetime | None]) -> OptionalField[datetime | None]:
        if v.defined:
            return OptionalField.of(ensure_utc(v.value))
        return v


class Todo(BaseModel):
    """Full todo entity as stored."""

    id: UUID
    user_id: UUID
    subject: str
    description: str
    priority: int
    due_date: datetime | None
    completed: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
