"""Student endpoints under /students.

Reads are open to admins and teachers; changes require ADMIN.
"""

from typing import List
from fastapi import APIRouter, Depends, Response
from sqlmodel import Session
from ..auth import require_admin, require_staff
from ..database import get_session
from .. import models, services
from ..schemas import StudentIn, StudentOut

router = APIRouter(prefix="/students", tags=["Students"])


@router.get('', response_model=List[StudentOut])
def list_students(db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    return services.StudentService(db).list()


@router.get('/{student_id}', response_model=StudentOut)
def get_student(student_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_staff)):
    return services.StudentService(db).get(student_id)


@router.post('', response_model=StudentOut, status_code=201)
def create_student(payload: StudentIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Create a student enrolled in the courses listed in `courseIds`.

    Unknown course ids are rejected with 400 and nothing is saved.
    """
    return services.StudentService(db).create(payload)


@router.put('/{student_id}', response_model=StudentOut)
def update_student(student_id: int, payload: StudentIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.StudentService(db).update(student_id, payload)


@router.delete('/{student_id}', status_code=204)
def delete_student(student_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    services.StudentService(db).delete(student_id)
    return Response(status_code=204)


@router.post('/{student_id}/courses/{course_id}', response_model=StudentOut)
def enroll(student_id: int, course_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Enroll a student in a course (no-op when already enrolled)."""
    return services.StudentService(db).enroll(student_id, course_id)


@router.delete('/{student_id}/courses/{course_id}', response_model=StudentOut)
def unenroll(student_id: int, course_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.StudentService(db).unenroll(student_id, course_id)
