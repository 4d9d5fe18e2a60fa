# portal/app/models.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UserRole = Literal[
    "student",
    "organizer",
    "event_representative",
    "overall_head",
    "admin",
    "test",
]
STAFF_ROLES: tuple[str, ...] = ("admin", "overall_head", "event_representative", "organizer")
STUDENT_ROLES: tuple[str, ...] = ("student", "test")
EVENT_MANAGER_ROLES: tuple[str, ...] = ("admin", "overall_head")

RegistrationStatus = Literal["pending", "approved", "declined", "cancelled"]
REGISTRATION_STATUSES: tuple[str, ...] = ("pending", "approved", "declined", "cancelled")

TaskStatus = Literal["Not Started", "In Progress", "Completed"]
BoardType = Literal["general", "event"]
ColumnType = Literal["text", "number", "checkbox", "dropdown"]


class CamelModel(BaseModel):
    """Documents are stored and served with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_doc(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Registration-form OCR ---------------------------------------------------


class StudentRecord(CamelModel):
    """One row recovered from a registration form. Fields are not validated."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    name: Optional[str] = None
    school: Optional[str] = None
    grade: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None


class OcrSuccess(BaseModel):
    success: Literal[True] = True
    data: List[StudentRecord] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "success": True,
            "data": [r.model_dump(by_alias=True) for r in self.data],
        }


class OcrFailure(BaseModel):
    success: Literal[False] = False
    error: str = Field(min_length=1)

    def to_wire(self) -> Dict[str, Any]:
        return {"success": False, "error": self.error}


OcrOutcome = Union[OcrSuccess, OcrFailure]


# --- Identity ----------------------------------------------------------------


class AuthUser(BaseModel):
    uid: str
    email: Optional[str] = None
    id_token: Optional[str] = Field(default=None, repr=False)


# --- Stored documents ---------------------------------------------------------


class UserProfile(CamelModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole = "student"
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    department: Optional[str] = None
    phone_numbers: List[str] = Field(default_factory=list)
    additional_number: Optional[str] = None
    college_roll_number: Optional[str] = None
    school_name: Optional[str] = None
    standard: Optional[str] = None
    division: Optional[str] = None
    school_verified_by_organizer: bool = False
    assigned_event_uids: List[str] = Field(default_factory=list)
    student_data_event_access: Dict[str, bool] = Field(default_factory=dict)
    points: int = 0
    credibility_score: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_student(self) -> bool:
        return self.role in STUDENT_ROLES

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class CustomColumn(CamelModel):
    id: str
    name: str
    data_type: ColumnType = "text"
    options: Optional[List[str]] = None


class SubEvent(CamelModel):
    id: str
    slug: str
    title: str
    superpower_category: Optional[str] = None
    short_description: Optional[str] = None
    detailed_description: Optional[str] = None
    registration_fee: Optional[float] = None
    deadline: Optional[str] = None
    event_reps: List[str] = Field(default_factory=list)
    organizer_uids: List[str] = Field(default_factory=list)
    custom_data: Dict[str, CustomColumn] = Field(default_factory=dict)
    created_at: Optional[str] = None


class EventRegistration(CamelModel):
    id: str
    sub_event_id: str
    user_id: str
    registration_status: RegistrationStatus = "pending"
    presentee: bool = False
    admit_card_url: Optional[str] = None
    custom_data: Dict[str, Any] = Field(default_factory=dict)
    registered_at: Optional[str] = None
    last_updated_at: Optional[str] = None


class Task(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus = "Not Started"
    sub_event_id: Optional[str] = None
    board_id: Optional[str] = None
    assigned_to_user_ids: List[str] = Field(default_factory=list)
    points_on_completion: Optional[int] = None
    completed_by_user_id: Optional[str] = None
    completed_at: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Notification(CamelModel):
    id: str
    user_id: str
    title: str
    message: str = ""
    read: bool = False
    created_at: Optional[str] = None


class Board(CamelModel):
    """A task board; staff join boards to share a task list."""

    id: str
    name: str
    description: Optional[str] = None
    type: BoardType = "general"
    event_id: Optional[str] = None
    member_uids: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_at: Optional[str] = None
