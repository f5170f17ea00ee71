"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table; many-to-many associations go through small
link tables so that both sides of a relationship stay in sync through
`back_populates`.
"""

import enum
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from typing import List


class RoleName(str, enum.Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"


class ExpenseCategory(str, enum.Enum):
    UTILITY = "UTILITY"
    SALARY = "SALARY"
    RENT = "RENT"
    SUPPLIES = "SUPPLIES"
    MARKETING = "MARKETING"
    OTHER = "OTHER"

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY_NAMES[self]


_CATEGORY_DISPLAY_NAMES = {
    ExpenseCategory.UTILITY: "Utility Bills",
    ExpenseCategory.SALARY: "Teacher Salary",
    ExpenseCategory.RENT: "Office Rent",
    ExpenseCategory.SUPPLIES: "Office Supplies",
    ExpenseCategory.MARKETING: "Marketing & Advertising",
    ExpenseCategory.OTHER: "Other Expenses",
}


class UserRoleLink(SQLModel, table=True):
    __tablename__ = "user_roles"
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", primary_key=True)
    role_id: Optional[int] = Field(default=None, foreign_key="roles.id", primary_key=True)


class StudentCourseLink(SQLModel, table=True):
    __tablename__ = "student_course"
    student_id: Optional[int] = Field(default=None, foreign_key="students.id", primary_key=True)
    course_id: Optional[int] = Field(default=None, foreign_key="courses.id", primary_key=True)


class CourseTeacherLink(SQLModel, table=True):
    __tablename__ = "course_teacher"
    course_id: Optional[int] = Field(default=None, foreign_key="courses.id", primary_key=True)
    teacher_id: Optional[int] = Field(default=None, foreign_key="teachers.id", primary_key=True)


class Role(SQLModel, table=True):
    __tablename__ = "roles"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)


class User(SQLModel, table=True):
    """A login account.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `roles`: ADMIN and/or TEACHER
    """
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    roles: List[Role] = Relationship(link_model=UserRoleLink)
    teacher: Optional["Teacher"] = Relationship(
        back_populates="user", sa_relationship_kwargs={"uselist": False}
    )

    @property
    def role_names(self) -> List[str]:
        return [r.name for r in self.roles]

    def has_role(self, name: str) -> bool:
        return name in self.role_names


class Course(SQLModel, table=True):
    """A course with a monthly fee, its teachers and enrolled students."""
    __tablename__ = "courses"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    fee: float
    teachers: List["Teacher"] = Relationship(back_populates="courses", link_model=CourseTeacherLink)
    students: List["Student"] = Relationship(back_populates="courses", link_model=StudentCourseLink)


class Student(SQLModel, table=True):
    """An enrolled student.

    `enrollment_date` is an ISO `YYYY-MM-DD` string. The `courses`
    collection is the owning side of the `student_course` link table.
    """
    __tablename__ = "students"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: Optional[str] = Field(default=None, index=True, unique=True)
    phone: str
    enrollment_date: str
    courses: List[Course] = Relationship(back_populates="students", link_model=StudentCourseLink)

    def add_course(self, course: Course) -> bool:
        """Enroll in `course`; returns False if already enrolled."""
        if any(c.id == course.id for c in self.courses):
            return False
        self.courses.append(course)
        return True

    def remove_course(self, course: Course) -> bool:
        """Drop `course`; returns False if the student was not enrolled."""
        for c in list(self.courses):
            if c.id == course.id:
                self.courses.remove(c)
                return True
        return False


class Teacher(SQLModel, table=True):
    """Teacher profile sharing its primary key with the owning `User`."""
    __tablename__ = "teachers"
    id: Optional[int] = Field(default=None, foreign_key="users.id", primary_key=True)
    name: str
    email: Optional[str] = None
    phone: str
    salary: float
    user: Optional[User] = Relationship(back_populates="teacher")
    courses: List[Course] = Relationship(back_populates="teachers", link_model=CourseTeacherLink)


class Payment(SQLModel, table=True):
    """A fee payment made by a student for a course.

    `payment_month` (`YYYY-MM`) is the aggregation key; older rows may
    have it unset, in which case the month is read from `payment_date`.
    Student and course names are cached for display.
    """
    __tablename__ = "payments"
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(index=True)
    course_id: int = Field(index=True)
    amount: float
    payment_date: str
    payment_month: Optional[str] = Field(default=None, index=True)
    student_name: Optional[str] = None
    course_name: Optional[str] = None


class Expense(SQLModel, table=True):
    """An operating expense; SALARY expenses reference a teacher."""
    __tablename__ = "expenses"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    amount: float
    expense_date: str
    expense_month: str = Field(index=True)
    category: ExpenseCategory = Field(default=ExpenseCategory.UTILITY)
    teacher_id: Optional[int] = Field(default=None, index=True)
    teacher_name: Optional[str] = None
    description: Optional[str] = None
