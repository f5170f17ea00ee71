"""Teacher endpoints.

`/teachers` is the admin-facing CRUD surface; `/api/teachers/me` lets a
logged-in teacher read their own profile, courses, course payments and
salary history.
"""

from typing import List
from fastapi import APIRouter, Depends, Response
from sqlmodel import Session
from ..auth import ensure_self_or_admin, require_admin, require_staff, require_teacher
from ..database import get_session
from .. import models, services
from ..schemas import (
    CourseOut,
    ExpenseOut,
    PaymentOut,
    TeacherCreateIn,
    TeacherOut,
    TeacherUpdateIn,
)

router = APIRouter(prefix="/teachers", tags=["Teachers"])
self_router = APIRouter(prefix="/api/teachers", tags=["Teachers"])


@router.get('', response_model=List[TeacherOut])
def list_teachers(db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.TeacherService(db).list()


@router.get('/{teacher_id}', response_model=TeacherOut)
def get_teacher(teacher_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    """Return a teacher profile; teachers may only read their own."""
    ensure_self_or_admin(user, teacher_id)
    return services.TeacherService(db).get(teacher_id)


@router.post('', response_model=TeacherOut, status_code=201)
def create_teacher(payload: TeacherCreateIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Create a TEACHER login account together with its profile."""
    return services.TeacherService(db).create(payload)


@router.put('/{teacher_id}', response_model=TeacherOut)
def update_teacher(teacher_id: int, payload: TeacherUpdateIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.TeacherService(db).update(teacher_id, payload)


@router.delete('/{teacher_id}', status_code=204)
def delete_teacher(teacher_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Delete the teacher and the user account linked to it."""
    services.TeacherService(db).delete(teacher_id)
    return Response(status_code=204)


@self_router.get('/me', response_model=TeacherOut)
def my_profile(db: Session = Depends(get_session), user: models.User = Depends(require_teacher)):
    return services.TeacherService(db).get(user.id)


@self_router.get('/me/courses', response_model=List[CourseOut])
def my_courses(db: Session = Depends(get_session), user: models.User = Depends(require_teacher)):
    return services.TeacherService(db).courses(user.id)


@self_router.get('/me/payments', response_model=List[PaymentOut])
def my_course_payments(db: Session = Depends(get_session), user: models.User = Depends(require_teacher)):
    """Student payments for the courses this teacher teaches."""
    services.TeacherService(db).get(user.id)
    return services.PaymentService(db).for_teacher(user.id)


@self_router.get('/me/salary', response_model=List[ExpenseOut])
def my_salary(db: Session = Depends(get_session), user: models.User = Depends(require_teacher)):
    return services.SalaryService(db).salary_history(user.id)
