"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. JSON keys are camelCase on the wire and
snake_case in Python; responses can be built straight from ORM rows.
"""

from datetime import date
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import ExpenseCategory


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _iso_date(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return date.fromisoformat(value.strip()).isoformat()


IsoDate = Annotated[Optional[str], AfterValidator(_iso_date)]


# --- auth ---

class LoginIn(CamelModel):
    """Payload for the login endpoint."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshIn(CamelModel):
    refresh_token: str = Field(min_length=1)


class TokenOut(CamelModel):
    """Authentication response containing the token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"


class MeOut(CamelModel):
    id: int
    username: str
    roles: List[str]


# --- nested summaries ---

class CourseBrief(CamelModel):
    id: int
    name: str
    fee: float


class TeacherBrief(CamelModel):
    id: int
    name: str


class StudentBrief(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: str


# --- students ---

class StudentIn(CamelModel):
    """Create/update payload; courses are referenced by id only."""
    name: str = Field(min_length=1, max_length=100)
    email: Optional[str] = None
    phone: str = Field(min_length=1)
    enrollment_date: IsoDate = None
    course_ids: List[int] = Field(default_factory=list)


class StudentOut(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: str
    enrollment_date: str
    courses: List[CourseBrief] = []


# --- courses ---

class CourseIn(CamelModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = None
    fee: float = Field(gt=0)
    teacher_ids: Optional[List[int]] = None


class CourseOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    fee: float
    teachers: List[TeacherBrief] = []


# --- teachers ---

class TeacherCreateIn(CamelModel):
    """Creates both the login account and the teacher profile."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: str = Field(min_length=1)
    salary: float = Field(gt=0)


class TeacherUpdateIn(CamelModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: str = Field(min_length=1)
    salary: float = Field(gt=0)


class TeacherOut(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: str
    salary: float
    courses: List[CourseBrief] = []


# --- payments ---

class PaymentIn(CamelModel):
    student_id: int
    course_id: int
    amount: float = Field(gt=0)
    payment_date: IsoDate = None
    payment_month: Optional[str] = None
    student_name: Optional[str] = None
    course_name: Optional[str] = None


class PaymentOut(CamelModel):
    id: int
    student_id: int
    course_id: int
    amount: float
    payment_date: str
    payment_month: Optional[str] = None
    student_name: Optional[str] = None
    course_name: Optional[str] = None


# --- expenses ---

class ExpenseIn(CamelModel):
    name: str = Field(min_length=1)
    amount: float = Field(gt=0)
    expense_date: IsoDate = None
    expense_month: Optional[str] = None
    category: ExpenseCategory = ExpenseCategory.UTILITY
    teacher_id: Optional[int] = None
    description: Optional[str] = None


class ExpenseOut(CamelModel):
    id: int
    name: str
    amount: float
    expense_date: str
    expense_month: str
    category: ExpenseCategory
    teacher_id: Optional[int] = None
    teacher_name: Optional[str] = None
    description: Optional[str] = None


class SalaryPaymentIn(CamelModel):
    """Request to pay a teacher; unset fields are filled from the teacher record."""
    teacher_id: int
    month: Optional[str] = None
    amount: Optional[float] = Field(default=None, gt=0)
    payment_date: IsoDate = None
    description: Optional[str] = None
    payment_type: Optional[str] = None

