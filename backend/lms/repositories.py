"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
students, courses, teachers, payments, expenses). Repositories return
SQLModel objects and perform commits/refreshes where appropriate; the
month-scoped queries live here so services never build SQL themselves.
"""

from typing import Iterable, List, Optional, Sequence, Tuple
from sqlmodel import Session, select, col
from sqlalchemy import and_, func, or_
from . import models


def payment_in_month(month: str):
    """SQL condition matching payments that belong to `month`.

    Rows written before `payment_month` existed have it unset; those are
    matched on the `YYYY-MM` prefix of `payment_date` instead.
    """
    return or_(
        models.Payment.payment_month == month,
        and_(
            col(models.Payment.payment_month).is_(None),
            col(models.Payment.payment_date).like(f"{month}%"),
        ),
    )


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class RoleRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_name(self, name: str) -> Optional[models.Role]:
        stmt = select(models.Role).where(models.Role.name == name)
        return self.session.exec(stmt).first()


class StudentRepository:
    """CRUD operations for `Student` records and their enrollments."""
    def __init__(self, session: Session):
        self.session = session

    def list(self) -> List[models.Student]:
        return self.session.exec(select(models.Student).order_by(models.Student.id)).all()

    def get(self, student_id: int) -> Optional[models.Student]:
        return self.session.get(models.Student, student_id)

    def get_by_email(self, email: str) -> Optional[models.Student]:
        stmt = select(models.Student).where(models.Student.email == email)
        return self.session.exec(stmt).first()

    def save(self, student: models.Student) -> models.Student:
        """Insert or update a student together with its course links."""
        self.session.add(student)
        self.session.commit()
        self.session.refresh(student)
        return student

    def delete(self, student: models.Student) -> None:
        self.session.delete(student)
        self.session.commit()

    def list_by_course(self, course_id: int) -> List[models.Student]:
        """Return the students enrolled in `course_id`."""
        stmt = (
            select(models.Student)
            .join(models.StudentCourseLink, models.StudentCourseLink.student_id == models.Student.id)
            .where(models.StudentCourseLink.course_id == course_id)
            .order_by(models.Student.id)
        )
        return self.session.exec(stmt).all()

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(models.Student)).one()


class CourseRepository:
    """CRUD operations for `Course` records."""
    def __init__(self, session: Session):
        self.session = session

    def list(self) -> List[models.Course]:
        return self.session.exec(select(models.Course).order_by(models.Course.id)).all()

    def get(self, course_id: int) -> Optional[models.Course]:
        return self.session.get(models.Course, course_id)

    def list_by_ids(self, course_ids: Iterable[int]) -> List[models.Course]:
        """Fetch all courses whose id is in `course_ids` (missing ids are skipped)."""
        ids = list(course_ids)
        if not ids:
            return []
        stmt = select(models.Course).where(col(models.Course.id).in_(ids))
        return self.session.exec(stmt).all()

    def list_by_teacher(self, teacher_id: int) -> List[models.Course]:
        stmt = (
            select(models.Course)
            .join(models.CourseTeacherLink, models.CourseTeacherLink.course_id == models.Course.id)
            .where(models.CourseTeacherLink.teacher_id == teacher_id)
            .order_by(models.Course.id)
        )
        return self.session.exec(stmt).all()

    def save(self, course: models.Course) -> models.Course:
        self.session.add(course)
        self.session.commit()
        self.session.refresh(course)
        return course

    def delete(self, course: models.Course) -> None:
        self.session.delete(course)
        self.session.commit()

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(models.Course)).one()


class TeacherRepository:
    """CRUD operations for `Teacher` profiles and their login accounts."""
    def __init__(self, session: Session):
        self.session = session

    def list(self) -> List[models.Teacher]:
        return self.session.exec(select(models.Teacher).order_by(models.Teacher.id)).all()

    def get(self, teacher_id: int) -> Optional[models.Teacher]:
        return self.session.get(models.Teacher, teacher_id)

    def list_by_ids(self, teacher_ids: Iterable[int]) -> List[models.Teacher]:
        ids = list(teacher_ids)
        if not ids:
            return []
        stmt = select(models.Teacher).where(col(models.Teacher.id).in_(ids))
        return self.session.exec(stmt).all()

    def create_with_account(self, user: models.User, teacher: models.Teacher) -> models.Teacher:
        """Persist a user and its teacher profile in one transaction.

        The user is flushed first so the teacher can reuse its primary key.
        """
        self.session.add(user)
        self.session.flush()
        teacher.id = user.id
        teacher.user = user
        self.session.add(teacher)
        self.session.commit()
        self.session.refresh(teacher)
        return teacher

    def save(self, teacher: models.Teacher) -> models.Teacher:
        self.session.add(teacher)
        self.session.commit()
        self.session.refresh(teacher)
        return teacher

    def delete_with_account(self, teacher: models.Teacher) -> None:
        """Delete the teacher profile and the user account sharing its id."""
        user = teacher.user or self.session.get(models.User, teacher.id)
        self.session.delete(teacher)
        if user is not None:
            self.session.delete(user)
        self.session.commit()

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(models.Teacher)).one()

    def total_salaries(self) -> float:
        stmt = select(func.coalesce(func.sum(models.Teacher.salary), 0.0))
        return float(self.session.exec(stmt).one())

    def list_unpaid_in_month(self, month: str) -> List[models.Teacher]:
        """Teachers without any SALARY expense recorded for `month`."""
        paid = select(models.Expense.teacher_id).where(
            models.Expense.expense_month == month,
            models.Expense.category == models.ExpenseCategory.SALARY,
            col(models.Expense.teacher_id).is_not(None),
        )
        stmt = select(models.Teacher).where(col(models.Teacher.id).not_in(paid)).order_by(models.Teacher.id)
        return self.session.exec(stmt).all()


class PaymentRepository:
    """Persistence and month-scoped queries for `Payment` rows."""
    def __init__(self, session: Session):
        self.session = session

    def list(self) -> List[models.Payment]:
        return self.session.exec(select(models.Payment).order_by(models.Payment.id)).all()

    def get(self, payment_id: int) -> Optional[models.Payment]:
        return self.session.get(models.Payment, payment_id)

    def create(self, payment: models.Payment) -> models.Payment:
        self.session.add(payment)
        self.session.commit()
        self.session.refresh(payment)
        return payment

    def delete(self, payment: models.Payment) -> None:
        self.session.delete(payment)
        self.session.commit()

    def list_by_month(self, month: str) -> List[models.Payment]:
        stmt = select(models.Payment).where(payment_in_month(month)).order_by(models.Payment.id)
        return self.session.exec(stmt).all()

    def total_by_month(self, month: str) -> float:
        stmt = select(func.coalesce(func.sum(models.Payment.amount), 0.0)).where(payment_in_month(month))
        return float(self.session.exec(stmt).one())

    def count_by_month(self, month: str) -> int:
        stmt = select(func.count(models.Payment.id)).where(payment_in_month(month))
        return self.session.exec(stmt).one()

    def exists_for(self, student_id: int, course_id: int, month: str) -> bool:
        """Return True if the student already paid for the course in `month`."""
        stmt = select(models.Payment.id).where(
            models.Payment.student_id == student_id,
            models.Payment.course_id == course_id,
            payment_in_month(month),
        )
        return self.session.exec(stmt).first() is not None

    def list_by_teacher(self, teacher_id: int) -> List[models.Payment]:
        """Payments for any course taught by `teacher_id`."""
        taught = select(models.CourseTeacherLink.course_id).where(
            models.CourseTeacherLink.teacher_id == teacher_id
        )
        stmt = select(models.Payment).where(col(models.Payment.course_id).in_(taught)).order_by(models.Payment.id)
        return self.session.exec(stmt).all()

    def list_students_without_payment(self, course_id: int, month: str) -> List[models.Student]:
        """Students enrolled in `course_id` that have no payment for it in `month`."""
        paid = select(models.Payment.student_id).where(
            models.Payment.course_id == course_id,
            payment_in_month(month),
        )
        stmt = (
            select(models.Student)
            .join(models.StudentCourseLink, models.StudentCourseLink.student_id == models.Student.id)
            .where(
                models.StudentCourseLink.course_id == course_id,
                col(models.Student.id).not_in(paid),
            )
            .order_by(models.Student.id)
        )
        return self.session.exec(stmt).all()


class ExpenseRepository:
    """Persistence and month-scoped queries for `Expense` rows."""
    def __init__(self, session: Session):
        self.session = session

    def list(self) -> List[models.Expense]:
        return self.session.exec(select(models.Expense).order_by(models.Expense.id)).all()

    def get(self, expense_id: int) -> Optional[models.Expense]:
        return self.session.get(models.Expense, expense_id)

    def create(self, expense: models.Expense) -> models.Expense:
        self.session.add(expense)
        self.session.commit()
        self.session.refresh(expense)
        return expense

    def delete(self, expense: models.Expense) -> None:
        self.session.delete(expense)
        self.session.commit()

    def list_by_month(self, month: str) -> List[models.Expense]:
        stmt = select(models.Expense).where(models.Expense.expense_month == month).order_by(models.Expense.id)
        return self.session.exec(stmt).all()

    def total_by_month(self, month: str, category: Optional[models.ExpenseCategory] = None) -> float:
        stmt = select(func.coalesce(func.sum(models.Expense.amount), 0.0)).where(
            models.Expense.expense_month == month
        )
        if category is not None:
            stmt = stmt.where(models.Expense.category == category)
        return float(self.session.exec(stmt).one())

    def breakdown_by_month(self, month: str) -> Sequence[Tuple[models.ExpenseCategory, float]]:
        """Return `(category, total)` pairs for `month`."""
        stmt = (
            select(models.Expense.category, func.coalesce(func.sum(models.Expense.amount), 0.0))
            .where(models.Expense.expense_month == month)
            .group_by(models.Expense.category)
        )
        return self.session.exec(stmt).all()

    def list_salary_payments(self, teacher_id: int, month: Optional[str] = None) -> List[models.Expense]:
        """SALARY expenses of a teacher, optionally restricted to `month`."""
        stmt = select(models.Expense).where(
            models.Expense.category == models.ExpenseCategory.SALARY,
            models.Expense.teacher_id == teacher_id,
        )
        if month is not None:
            stmt = stmt.where(models.Expense.expense_month == month)
        return self.session.exec(stmt.order_by(models.Expense.expense_date, models.Expense.id)).all()

    def is_teacher_paid(self, teacher_id: int, month: str) -> bool:
        return len(self.list_salary_payments(teacher_id, month)) > 0
