"""Student payment endpoints under /payments."""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlmodel import Session
from ..auth import require_admin, require_staff
from ..database import get_session
from .. import models, repositories, services
from ..schemas import PaymentIn, PaymentOut, StudentBrief
from ..utils.months import resolve_month

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get('', response_model=List[PaymentOut])
def list_payments(month: Optional[str] = None, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """List all payments, or only those of `month` (YYYY-MM) when given."""
    return services.PaymentService(db).list(month)


@router.post('', response_model=PaymentOut, status_code=201)
def add_payment(payload: PaymentIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Record a payment. Date, month and cached names are filled in when omitted."""
    return services.PaymentService(db).create(payload)


@router.get('/unpaid')
def unpaid_students(
    course_id: int = Query(alias='courseId'),
    month: Optional[str] = None,
    db: Session = Depends(get_session),
    user: models.User = Depends(require_staff),
):
    """Students of a course that have not paid for `month` (default: current month).

    Teachers may only query courses they teach.
    """
    if not user.has_role(models.RoleName.ADMIN.value):
        taught = {c.id for c in repositories.CourseRepository(db).list_by_teacher(user.id)}
        if course_id not in taught:
            raise HTTPException(status_code=403, detail="teachers may only query their own courses")
    month = resolve_month(month)
    students = services.PaymentService(db).unpaid_students(course_id, month)
    return {
        'courseId': course_id,
        'month': month,
        'count': len(students),
        'students': [StudentBrief.model_validate(s).model_dump(by_alias=True) for s in students],
    }


@router.get('/unpaid/all')
def unpaid_students_all(month: Optional[str] = None, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.PaymentService(db).unpaid_students_all(month)


@router.delete('/{payment_id}', status_code=204)
def delete_payment(payment_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    services.PaymentService(db).delete(payment_id)
    return Response(status_code=204)
