"""Course endpoints under /courses."""

from typing import List
from fastapi import APIRouter, Depends, Response
from sqlmodel import Session
from ..auth import require_admin, require_staff
from ..database import get_session
from .. import models, services
from ..schemas import CourseIn, CourseOut, StudentBrief

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get('', response_model=List[CourseOut])
def list_courses(db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    return services.CourseService(db).list()


@router.get('/{course_id}', response_model=CourseOut)
def get_course(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    return services.CourseService(db).get(course_id)


@router.get('/{course_id}/students', response_model=List[StudentBrief])
def course_students(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    return services.CourseService(db).students(course_id)


@router.post('', response_model=CourseOut, status_code=201)
def create_course(payload: CourseIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.CourseService(db).create(payload)


@router.put('/{course_id}', response_model=CourseOut)
def update_course(course_id: int, payload: CourseIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Update a course. Sending `teacherIds` replaces the assigned teachers."""
    return services.CourseService(db).update(course_id, payload)


@router.delete('/{course_id}', status_code=204)
def delete_course(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    services.CourseService(db).delete(course_id)
    return Response(status_code=204)


@router.post('/{course_id}/teachers/{teacher_id}', response_model=CourseOut)
def assign_teacher(course_id: int, teacher_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.CourseService(db).assign_teacher(course_id, teacher_id)


@router.delete('/{course_id}/teachers/{teacher_id}', response_model=CourseOut)
def remove_teacher(course_id: int, teacher_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.CourseService(db).remove_teacher(course_id, teacher_id)
