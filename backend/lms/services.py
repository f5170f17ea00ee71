"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and domain rules. Services are intentionally thin: they validate input,
fill in defaults (dates, months, cached names), enforce the duplicate
checks and persist aggregates via repositories. Domain failures are
raised as `ResourceNotFoundError` or `BusinessRuleError` and translated
to HTTP responses by the application.
"""

from datetime import datetime, timedelta, timezone
import logging
from passlib.context import CryptContext
import jwt
from typing import Dict, Iterable, List, Optional
from sqlmodel import Session
from . import models, repositories, schemas
from .config import settings
from .exceptions import BusinessRuleError, ResourceNotFoundError
from .utils.months import month_of, resolve_month, today_iso

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

logger = logging.getLogger("lms.services")


def _money(value) -> float:
    return round(float(value or 0.0), 2)


def decode_token(token: str, expected_type: str) -> dict:
    """Verify a signed token and check its `type` claim.

    Raises `jwt.InvalidTokenError` (or its `ExpiredSignatureError`
    subclass) when the token cannot be trusted.
    """
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"expected a {expected_type} token")
    return payload


def token_matches_user(payload: dict, user: Optional[models.User]) -> bool:
    """True when `payload` was issued to this exact account.

    Ids are reused after deletes, so the username and the account's
    creation time must agree with the token as well.
    """
    if user is None or user.username != payload.get("sub"):
        return False
    created = user.created_at
    if created is None:
        return True
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return int(created.timestamp()) <= int(payload.get("iat", 0))


class AuthService:
    """Authentication related operations (accounts, login, token refresh)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.role_repo = repositories.RoleRepository(session)

    def create_user(self, username: str, password: str, role: models.RoleName, commit: bool = True) -> models.User:
        """Build a user with a hashed password and a single role.

        With `commit=False` the user is returned unsaved so callers can
        persist it together with dependent rows.
        """
        if self.user_repo.get_by_username(username):
            raise BusinessRuleError("Username is already taken!")
        db_role = self.role_repo.get_by_name(role.value)
        if db_role is None:
            raise RuntimeError(f"Role '{role.value}' not found!")
        user = models.User(username=username, password_hash=PWD_CTX.hash(password), roles=[db_role])
        if commit:
            return self.user_repo.create(user)
        return user

    def ensure_admin(self, username: str, password: str) -> models.User:
        """Create the bootstrap admin account unless it already exists."""
        existing = self.user_repo.get_by_username(username)
        if existing:
            return existing
        user = self.create_user(username, password, models.RoleName.ADMIN)
        logger.info("created bootstrap admin user %s", username)
        return user

    def _issue(self, user_id: int, username: str, roles: List[str], token_type: str) -> str:
        now = datetime.now(timezone.utc)
        if token_type == ACCESS_TOKEN:
            expire = now + timedelta(minutes=settings.ACCESS_TOKEN_MINUTES)
        else:
            expire = now + timedelta(days=settings.REFRESH_TOKEN_DAYS)
        payload = {
            "sub": username,
            "user_id": user_id,
            "roles": roles,
            "type": token_type,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    def authenticate(self, username: str, password: str) -> Optional[Dict[str, str]]:
        """Verify credentials and return an access/refresh token pair.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        roles = user.role_names
        return {
            "access_token": self._issue(user.id, user.username, roles, ACCESS_TOKEN),
            "refresh_token": self._issue(user.id, user.username, roles, REFRESH_TOKEN),
            "token_type": "Bearer",
        }

    def refresh(self, refresh_token: str) -> Dict[str, str]:
        """Exchange a valid refresh token for a new access token.

        The refresh token itself is returned unchanged. Raises
        `jwt.InvalidTokenError` for bad tokens or deleted users.
        """
        payload = decode_token(refresh_token, REFRESH_TOKEN)
        user = self.user_repo.get(payload.get("user_id"))
        if not token_matches_user(payload, user):
            raise jwt.InvalidTokenError("user no longer exists")
        return {
            "access_token": self._issue(user.id, user.username, user.role_names, ACCESS_TOKEN),
            "refresh_token": refresh_token,
            "token_type": "Bearer",
        }


class StudentService:
    """Student CRUD and course enrollment."""
    def __init__(self, session: Session):
        self.session = session
        self.student_repo = repositories.StudentRepository(session)
        self.course_repo = repositories.CourseRepository(session)

    def list(self) -> List[models.Student]:
        return self.student_repo.list()

    def get(self, student_id: int) -> models.Student:
        student = self.student_repo.get(student_id)
        if not student:
            raise ResourceNotFoundError(f"Student not found with id: {student_id}")
        return student

    def _resolve_courses(self, course_ids: Iterable[int]) -> List[models.Course]:
        """Load the requested courses, failing on the first request with unknown ids."""
        wanted = list(dict.fromkeys(course_ids))
        found = {c.id: c for c in self.course_repo.list_by_ids(wanted)}
        missing = [str(cid) for cid in wanted if cid not in found]
        if missing:
            raise BusinessRuleError(f"Course not found with id: {', '.join(missing)}")
        return [found[cid] for cid in wanted]

    def _check_email(self, email: Optional[str], student_id: Optional[int] = None):
        if not email:
            return
        other = self.student_repo.get_by_email(email)
        if other and other.id != student_id:
            raise BusinessRuleError(f"Email already in use: {email}")

    def create(self, data: schemas.StudentIn) -> models.Student:
        self._check_email(data.email, None)
        courses = self._resolve_courses(data.course_ids)
        student = models.Student(
            name=data.name,
            email=data.email or None,
            phone=data.phone,
            enrollment_date=data.enrollment_date or today_iso(),
        )
        student.courses = courses
        return self.student_repo.save(student)

    def update(self, student_id: int, data: schemas.StudentIn) -> models.Student:
        """Replace a student's profile and course set.

        The enrollment date is kept when the request leaves it blank.
        """
        student = self.get(student_id)
        self._check_email(data.email, student_id)
        courses = self._resolve_courses(data.course_ids)
        student.name = data.name
        student.email = data.email or None
        student.phone = data.phone
        if data.enrollment_date:
            student.enrollment_date = data.enrollment_date
        student.courses = courses
        return self.student_repo.save(student)

    def delete(self, student_id: int) -> None:
        student = self.get(student_id)
        self.student_repo.delete(student)
        logger.info("deleted student %s", student_id)

    def enroll(self, student_id: int, course_id: int) -> models.Student:
        student = self.get(student_id)
        course = self.course_repo.get(course_id)
        if not course:
            raise ResourceNotFoundError(f"Course not found with id: {course_id}")
        if student.add_course(course):
            student = self.student_repo.save(student)
        return student

    def unenroll(self, student_id: int, course_id: int) -> models.Student:
        student = self.get(student_id)
        course = self.course_repo.get(course_id)
        if not course:
            raise ResourceNotFoundError(f"Course not found with id: {course_id}")
        if student.remove_course(course):
            student = self.student_repo.save(student)
        return student


class CourseService:
    """Course CRUD and teacher assignment."""
    def __init__(self, session: Session):
        self.session = session
        self.course_repo = repositories.CourseRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.teacher_repo = repositories.TeacherRepository(session)

    def list(self) -> List[models.Course]:
        return self.course_repo.list()

    def get(self, course_id: int) -> models.Course:
        course = self.course_repo.get(course_id)
        if not course:
            raise ResourceNotFoundError(f"Course not found with id: {course_id}")
        return course

    def _resolve_teachers(self, teacher_ids: Iterable[int]) -> List[models.Teacher]:
        wanted = list(dict.fromkeys(teacher_ids))
        found = {t.id: t for t in self.teacher_repo.list_by_ids(wanted)}
        missing = [str(tid) for tid in wanted if tid not in found]
        if missing:
            raise BusinessRuleError(f"Teacher not found with id: {', '.join(missing)}")
        return [found[tid] for tid in wanted]

    def create(self, data: schemas.CourseIn) -> models.Course:
        course = models.Course(name=data.name, description=data.description, fee=data.fee)
        if data.teacher_ids:
            course.teachers = self._resolve_teachers(data.teacher_ids)
        return self.course_repo.save(course)

    def update(self, course_id: int, data: schemas.CourseIn) -> models.Course:
        """Update course fields; `teacher_ids`, when sent, replaces the teacher set."""
        course = self.get(course_id)
        course.name = data.name
        course.description = data.description
        course.fee = data.fee
        if data.teacher_ids is not None:
            course.teachers = self._resolve_teachers(data.teacher_ids)
        return self.course_repo.save(course)

    def delete(self, course_id: int) -> None:
        course = self.get(course_id)
        self.course_repo.delete(course)
        logger.info("deleted course %s", course_id)

    def students(self, course_id: int) -> List[models.Student]:
        self.get(course_id)
        return self.student_repo.list_by_course(course_id)

    def assign_teacher(self, course_id: int, teacher_id: int) -> models.Course:
        course = self.get(course_id)
        teacher = self.teacher_repo.get(teacher_id)
        if not teacher:
            raise ResourceNotFoundError(f"Teacher not found with id: {teacher_id}")
        if all(t.id != teacher_id for t in course.teachers):
            course.teachers.append(teacher)
            course = self.course_repo.save(course)
        return course

    def remove_teacher(self, course_id: int, teacher_id: int) -> models.Course:
        course = self.get(course_id)
        remaining = [t for t in course.teachers if t.id != teacher_id]
        if len(remaining) != len(course.teachers):
            course.teachers = remaining
            course = self.course_repo.save(course)
        return course


class TeacherService:
    """Teacher profiles; each one owns a TEACHER login account."""
    def __init__(self, session: Session):
        self.session = session
        self.teacher_repo = repositories.TeacherRepository(session)
        self.course_repo = repositories.CourseRepository(session)
        self.auth = AuthService(session)

    def list(self) -> List[models.Teacher]:
        return self.teacher_repo.list()

    def get(self, teacher_id: int) -> models.Teacher:
        teacher = self.teacher_repo.get(teacher_id)
        if not teacher:
            raise ResourceNotFoundError(f"Teacher not found with id: {teacher_id}")
        return teacher

    def create(self, data: schemas.TeacherCreateIn) -> models.Teacher:
        """Create the login account and the teacher profile together."""
        user = self.auth.create_user(data.username, data.password, models.RoleName.TEACHER, commit=False)
        teacher = models.Teacher(name=data.name, email=data.email, phone=data.phone, salary=data.salary)
        teacher = self.teacher_repo.create_with_account(user, teacher)
        logger.info("created teacher %s for user %s", teacher.id, data.username)
        return teacher

    def update(self, teacher_id: int, data: schemas.TeacherUpdateIn) -> models.Teacher:
        teacher = self.get(teacher_id)
        teacher.name = data.name
        teacher.email = data.email
        teacher.phone = data.phone
        teacher.salary = data.salary
        return self.teacher_repo.save(teacher)

    def delete(self, teacher_id: int) -> None:
        """Delete a teacher; the linked user account goes with it."""
        teacher = self.get(teacher_id)
        self.teacher_repo.delete_with_account(teacher)
        logger.info("deleted teacher %s and its user account", teacher_id)

    def courses(self, teacher_id: int) -> List[models.Course]:
        self.get(teacher_id)
        return self.course_repo.list_by_teacher(teacher_id)


class PaymentService:
    """Record student payments and answer who has not paid yet."""
    def __init__(self, session: Session):
        self.session = session
        self.payment_repo = repositories.PaymentRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.course_repo = repositories.CourseRepository(session)

    def list(self, month: Optional[str] = None) -> List[models.Payment]:
        if month is None or not month.strip():
            return self.payment_repo.list()
        return self.payment_repo.list_by_month(resolve_month(month))

    def create(self, data: schemas.PaymentIn) -> models.Payment:
        """Record a payment, filling date, month and cached names.

        A second payment by the same student for the same course in the
        same month is rejected.
        """
        student = self.student_repo.get(data.student_id)
        if not student:
            raise ResourceNotFoundError(f"Student not found with id: {data.student_id}")
        course = self.course_repo.get(data.course_id)
        if not course:
            raise ResourceNotFoundError(f"Course not found with id: {data.course_id}")
        payment_date = data.payment_date or today_iso()
        if data.payment_month:
            payment_month = resolve_month(data.payment_month)
        else:
            payment_month = month_of(payment_date)
        if self.payment_repo.exists_for(student.id, course.id, payment_month):
            logger.warning(
                "duplicate payment rejected student=%s course=%s month=%s", student.id, course.id, payment_month
            )
            raise BusinessRuleError(
                f"Payment already recorded for student {student.id} in course {course.id} for {payment_month}"
            )
        payment = models.Payment(
            student_id=student.id,
            course_id=course.id,
            amount=data.amount,
            payment_date=payment_date,
            payment_month=payment_month,
            student_name=data.student_name or student.name,
            course_name=data.course_name or course.name,
        )
        payment = self.payment_repo.create(payment)
        logger.info("payment recorded id=%s amount=%.2f month=%s", payment.id, payment.amount, payment_month)
        return payment

    def delete(self, payment_id: int) -> None:
        payment = self.payment_repo.get(payment_id)
        if not payment:
            raise ResourceNotFoundError(f"Payment not found with id: {payment_id}")
        self.payment_repo.delete(payment)

    def for_teacher(self, teacher_id: int) -> List[models.Payment]:
        return self.payment_repo.list_by_teacher(teacher_id)

    def unpaid_students(self, course_id: int, month: Optional[str] = None) -> List[models.Student]:
        """Students enrolled in the course with no payment for it in `month`."""
        if not self.course_repo.get(course_id):
            raise ResourceNotFoundError(f"Course not found with id: {course_id}")
        return self.payment_repo.list_students_without_payment(course_id, resolve_month(month))

    def unpaid_students_all(self, month: Optional[str] = None) -> List[dict]:
        """Per-course unpaid lists for every course, in course order."""
        month = resolve_month(month)
        out = []
        for course in self.course_repo.list():
            students = self.payment_repo.list_students_without_payment(course.id, month)
            out.append({
                'courseId': course.id,
                'courseName': course.name,
                'month': month,
                'count': len(students),
                'students': [schemas.StudentBrief.model_validate(s).model_dump(by_alias=True) for s in students],
            })
        return out


class ExpenseService:
    """Record and aggregate operating expenses."""
    def __init__(self, session: Session):
        self.session = session
        self.expense_repo = repositories.ExpenseRepository(session)
        self.teacher_repo = repositories.TeacherRepository(session)

    def list(self, month: Optional[str] = None) -> List[models.Expense]:
        if month is None or not month.strip():
            return self.expense_repo.list()
        return self.expense_repo.list_by_month(resolve_month(month))

    def create(self, data: schemas.ExpenseIn) -> models.Expense:
        """Record an expense, filling date and month.

        SALARY expenses may reference a teacher whose name is cached on
        the row; other categories cannot.
        """
        expense_date = data.expense_date or today_iso()
        expense_month = resolve_month(data.expense_month) if data.expense_month else month_of(expense_date)
        teacher_name = None
        if data.teacher_id is not None:
            if data.category != models.ExpenseCategory.SALARY:
                raise BusinessRuleError("teacherId is only allowed for SALARY expenses")
            teacher = self.teacher_repo.get(data.teacher_id)
            if not teacher:
                raise ResourceNotFoundError(f"Teacher not found with id: {data.teacher_id}")
            teacher_name = teacher.name
        expense = models.Expense(
            name=data.name,
            amount=data.amount,
            expense_date=expense_date,
            expense_month=expense_month,
            category=data.category,
            teacher_id=data.teacher_id,
            teacher_name=teacher_name,
            description=data.description,
        )
        return self.expense_repo.create(expense)

    def delete(self, expense_id: int) -> None:
        expense = self.expense_repo.get(expense_id)
        if not expense:
            raise ResourceNotFoundError(f"Expense not found with id: {expense_id}")
        self.expense_repo.delete(expense)

    def total(self, month: Optional[str] = None) -> dict:
        month = resolve_month(month)
        return {
            'month': month,
            'totalExpenses': _money(self.expense_repo.total_by_month(month)),
            'expenseCount': len(self.expense_repo.list_by_month(month)),
        }

    def breakdown(self, month: Optional[str] = None) -> Dict[str, float]:
        """Totals per category for `month`; categories without rows report 0."""
        month = resolve_month(month)
        out = {c.value: 0.0 for c in models.ExpenseCategory}
        for category, amount in self.expense_repo.breakdown_by_month(month):
            out[models.ExpenseCategory(category).value] = _money(amount)
        return out

    @staticmethod
    def categories() -> List[dict]:
        return [{'name': c.value, 'displayName': c.display_name} for c in models.ExpenseCategory]


SALARY_PAYMENT_TYPES = {
    "FULL_SALARY": ("Salary", "Full salary payment for {month}"),
    "PARTIAL_SALARY": ("Partial Salary", "Partial salary payment for {month}"),
    "BONUS": ("Bonus", "Bonus payment for {month}"),
    "ADVANCE": ("Salary Advance", "Salary advance for {month}"),
}


class SalaryService:
    """Turn teacher payments into SALARY expenses."""
    def __init__(self, session: Session):
        self.session = session
        self.teacher_repo = repositories.TeacherRepository(session)
        self.expense_repo = repositories.ExpenseRepository(session)

    def pay_teacher(self, data: schemas.SalaryPaymentIn) -> dict:
        """Record a salary payment and return teacher and payment details.

        Missing values default from the teacher record and the payment
        type. A FULL_SALARY payment is refused when the teacher already
        has a SALARY expense in the same month.
        """
        teacher = self.teacher_repo.get(data.teacher_id)
        if not teacher:
            raise ResourceNotFoundError(f"Teacher not found with id: {data.teacher_id}")
        payment_type = (data.payment_type or "FULL_SALARY").strip().upper()
        if payment_type not in SALARY_PAYMENT_TYPES:
            raise BusinessRuleError(
                f"Invalid payment type: {data.payment_type}. Use one of {', '.join(SALARY_PAYMENT_TYPES)}"
            )
        payment_date = data.payment_date or today_iso()
        month = resolve_month(data.month) if data.month else month_of(payment_date)
        if payment_type == "FULL_SALARY" and self.expense_repo.is_teacher_paid(teacher.id, month):
            logger.warning("duplicate salary rejected teacher=%s month=%s", teacher.id, month)
            raise BusinessRuleError(f"Teacher {teacher.name} has already been paid for {month}")
        amount = data.amount if data.amount is not None else teacher.salary
        label, description_tpl = SALARY_PAYMENT_TYPES[payment_type]
        expense = models.Expense(
            name=f"{label} - {teacher.name}",
            amount=amount,
            expense_date=payment_date,
            expense_month=month,
            category=models.ExpenseCategory.SALARY,
            teacher_id=teacher.id,
            teacher_name=teacher.name,
            description=data.description or description_tpl.format(month=month),
        )
        expense = self.expense_repo.create(expense)
        logger.info("salary paid teacher=%s type=%s amount=%.2f month=%s", teacher.id, payment_type, amount, month)
        return {
            'success': True,
            'message': f"{label} of {_money(amount):.2f} recorded for {teacher.name} ({month})",
            'teacher': {
                'id': teacher.id,
                'name': teacher.name,
                'email': teacher.email,
                'salary': teacher.salary,
            },
            'payment': {
                'expenseId': expense.id,
                'amount': _money(expense.amount),
                'month': month,
                'paymentDate': expense.expense_date,
                'paymentType': payment_type,
                'description': expense.description,
            },
        }

    def unpaid_teachers(self, month: Optional[str] = None) -> dict:
        month = resolve_month(month)
        teachers = self.teacher_repo.list_unpaid_in_month(month)
        return {
            'month': month,
            'count': len(teachers),
            'totalOutstanding': _money(sum(t.salary for t in teachers)),
            'teachers': [{'id': t.id, 'name': t.name, 'salary': t.salary} for t in teachers],
        }

    def salary_history(self, teacher_id: int) -> List[models.Expense]:
        if not self.teacher_repo.get(teacher_id):
            raise ResourceNotFoundError(f"Teacher not found with id: {teacher_id}")
        return self.expense_repo.list_salary_payments(teacher_id)

    def salary_overview(self) -> dict:
        """Every teacher with the configured monthly salary bill."""
        teachers = self.teacher_repo.list()
        return {
            'teachers': [schemas.TeacherOut.model_validate(t).model_dump(by_alias=True) for t in teachers],
            'teacherCount': len(teachers),
            'totalSalaries': _money(self.teacher_repo.total_salaries()),
        }


class FinanceService:
    """Monthly financial reporting.

    Revenue is what students paid in the month; expenses are what was
    recorded as Expense rows for the month. The teachers' configured
    salaries are reported for information only: a salary only reduces
    profit once it has been paid and recorded as a SALARY expense.
    """
    def __init__(self, session: Session):
        self.session = session
        self.payment_repo = repositories.PaymentRepository(session)
        self.expense_repo = repositories.ExpenseRepository(session)
        self.teacher_repo = repositories.TeacherRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.course_repo = repositories.CourseRepository(session)

    def monthly_summary(self, month: Optional[str] = None) -> dict:
        month = resolve_month(month)
        revenue = _money(self.payment_repo.total_by_month(month))
        recorded = _money(self.expense_repo.total_by_month(month))
        net_profit = _money(revenue - recorded)
        margin = _money(net_profit / revenue * 100) if revenue > 0 else 0.0
        breakdown = ExpenseService(self.session).breakdown(month)
        return {
            'month': month,
            'revenue': revenue,
            'recordedExpenses': recorded,
            'netProfit': net_profit,
            'profitMargin': margin,
            'paymentCount': self.payment_repo.count_by_month(month),
            'expenseCount': len(self.expense_repo.list_by_month(month)),
            'salaryExpenses': breakdown[models.ExpenseCategory.SALARY.value],
            'expenseBreakdown': breakdown,
            'teacherCount': self.teacher_repo.count(),
            'totalTeacherSalaries': _money(self.teacher_repo.total_salaries()),
        }

    def potential_revenue(self) -> dict:
        """Fees due if every enrolled student paid every course once."""
        courses = []
        total = 0.0
        for course in self.course_repo.list():
            enrolled = len(course.students)
            amount = course.fee * enrolled
            total += amount
            courses.append({
                'courseId': course.id,
                'courseName': course.name,
                'fee': course.fee,
                'enrolledStudents': enrolled,
                'potentialRevenue': _money(amount),
            })
        return {
            'totalPotentialRevenue': _money(total),
            'studentCount': self.student_repo.count(),
            'courses': courses,
        }

    def dashboard(self) -> dict:
        return {
            'studentCount': self.student_repo.count(),
            'teacherCount': self.teacher_repo.count(),
            'courseCount': self.course_repo.count(),
            'currentMonth': self.monthly_summary(None),
        }
