# portal/app/schema/forms.py
from __future__ import annotations

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from portal.app.models import BoardType, ColumnType, TaskStatus, UserRole

COLLEGE_ROLL_RE = re.compile(r"^[A-Z]{2}\d{2}[A-Z]{3}\d{3}$")  # e.g. BT23CSE012
SPECIAL_CHARS = '!@#$%^&*(),.?":{}|<>'

SuperpowerCategory = Literal["The Thinker", "The Brainiac", "The Strategist", "The Innovator"]
StaffRole = Literal["organizer", "event_representative", "overall_head", "admin"]


class FormModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrganizerSignup(FormModel):
    full_name: str = Field(min_length=3)
    email: EmailStr
    password: str = Field(min_length=8, repr=False)
    department: str = Field(min_length=2)
    phone_number: str = Field(min_length=10, max_length=15)
    college_roll_number: str = Field(min_length=10, max_length=10)
    role: StaffRole
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    additional_number: Optional[str] = None

    @field_validator("password")
    @classmethod
    def _password_strength(cls, v: str) -> str:
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter.")
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter.")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one digit.")
        if not any(c in SPECIAL_CHARS for c in v):
            raise ValueError("Password must contain at least one special character.")
        return v

    @field_validator("college_roll_number")
    @classmethod
    def _roll_number(cls, v: str) -> str:
        if not COLLEGE_ROLL_RE.match(v):
            raise ValueError("Invalid College Roll Number format (e.g., BT23CSE012).")
        return v

    @field_validator("photo_url", "additional_number")
    @classmethod
    def _blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("photo_url")
    @classmethod
    def _url(cls, v: Optional[str]) -> Optional[str]:
        if v and not re.match(r"^https?://\S+$", v):
            raise ValueError("Invalid URL format.")
        return v


class CreateEvent(FormModel):
    title: str = Field(min_length=5)
    superpower_category: SuperpowerCategory
    short_description: Optional[str] = Field(default=None, max_length=250)
    detailed_description: Optional[str] = None
    registration_fee: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[str] = None

    @field_validator("registration_fee", mode="before")
    @classmethod
    def _empty_fee(cls, v: Any) -> Any:
        return None if v == "" else v


class EventUpdate(FormModel):
    title: Optional[str] = Field(default=None, min_length=5)
    superpower_category: Optional[SuperpowerCategory] = None
    short_description: Optional[str] = Field(default=None, max_length=250)
    detailed_description: Optional[str] = None
    registration_fee: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[str] = None


class NewColumn(FormModel):
    name: str = Field(min_length=1)
    data_type: ColumnType = "text"
    options: Optional[str] = None  # comma separated, dropdown only


class ProfileUpdate(FormModel):
    phone_numbers: Optional[List[str]] = None
    additional_number: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    school_name: Optional[str] = None
    standard: Optional[str] = None
    division: Optional[str] = None
    department: Optional[str] = None


class StaffUpdate(FormModel):
    role: UserRole
    assigned_event_uids: List[str] = Field(default_factory=list)
    student_data_event_access: Dict[str, bool] = Field(default_factory=dict)
    points: int = 0


class RegistrationFieldUpdate(FormModel):
    field: str = Field(min_length=1)
    value: Any = None
    custom: bool = False


class NewTask(FormModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    sub_event_id: Optional[str] = None
    board_id: Optional[str] = None
    assigned_to_user_ids: List[str] = Field(default_factory=list)
    points_on_completion: Optional[int] = Field(default=None, ge=0)


class TaskUpdate(FormModel):
    """Edit of an existing task; only the fields sent are changed."""

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    sub_event_id: Optional[str] = None
    board_id: Optional[str] = None
    assigned_to_user_ids: Optional[List[str]] = None
    points_on_completion: Optional[int] = Field(default=None, ge=0)


class TaskStatusChange(FormModel):
    status: TaskStatus


class NewBoard(FormModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    type: BoardType = "general"
    event_id: Optional[str] = None
