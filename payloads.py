"""
Request payloads, validated with pydantic.

JSON keys are camelCase; model fields are snake_case with the JSON name as
alias. Update payloads are partial: ``present`` lists the fields the client
actually sent, and only those are written back to the model.
"""

import re
from datetime import datetime
from typing import Annotated, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    field_validator,
)
from werkzeug.exceptions import BadRequest

from model import TaskPriority, TaskStatus

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"
PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _not_blank(value):
    if value is not None and not value.strip():
        raise ValueError("should not be empty")
    return value


def _date_part(value):
    return value.date() if isinstance(value, datetime) else value


# Plain dates or full ISO timestamps; only the date is kept
DueDate = Annotated[datetime, AfterValidator(_date_part)]
Title = Annotated[str, AfterValidator(_not_blank)]
Color = Annotated[str, Field(pattern=HEX_COLOR)]


def _describe(error):
    parts = []
    for e in error.errors():
        field = ".".join(str(p) for p in e["loc"]) or "body"
        parts.append(f"{field}: {e['msg']}")
    return "; ".join(parts)


class Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def from_json(cls, data):
        if not isinstance(data, dict):
            raise BadRequest("Request body must be a JSON object")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise BadRequest(_describe(exc))

    @property
    def present(self):
        return self.model_fields_set


class TaskCreate(Payload):
    # Completion fields are not part of a create payload and are ignored
    title: Title
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[DueDate] = Field(default=None, alias="dueDate")
    category_id: Optional[int] = Field(default=None, alias="categoryId")


class TaskUpdate(Payload):
    title: Optional[Title] = None
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[DueDate] = Field(default=None, alias="dueDate")
    category_id: Optional[int] = Field(default=None, alias="categoryId")
    completed: Optional[bool] = None

    @field_validator("title", "priority", "status", "completed")
    @classmethod
    def not_null(cls, value):
        # Runs only for keys that were sent; omitted keys keep their defaults
        if value is None:
            raise ValueError("cannot be null")
        return value


class CategoryCreate(Payload):
    name: Title
    description: Optional[str] = None
    color: Optional[Color] = None


class CategoryUpdate(Payload):
    name: Optional[Title] = None
    description: Optional[str] = None
    color: Optional[Color] = None

    @field_validator("name")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class SubtaskCreate(Payload):
    title: Title
    task_id: int = Field(alias="taskId")


class SubtaskUpdate(Payload):
    title: Optional[Title] = None
    completed: Optional[bool] = None

    @field_validator("title", "completed")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class UserUpdate(Payload):
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(default=None, min_length=3)

    @field_validator("email", "username")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class Registration(Payload):
    email: EmailStr
    username: str = Field(min_length=3)
    password: str = Field(min_length=8)
    password_confirm: str = Field(min_length=1, alias="passwordConfirm")

    @field_validator("password")
    @classmethod
    def password_strength(cls, value):
        if not PASSWORD_RULE.match(value):
            raise ValueError(
                "Password must contain at least one uppercase letter, "
                "one lowercase letter, and one number"
            )
        return value


class Login(Payload):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
