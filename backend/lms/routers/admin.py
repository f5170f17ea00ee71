"""Administrative endpoints under /api/admin.

Financial reporting, salary payments and teacher account creation.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlmodel import Session
from ..auth import require_admin
from ..database import get_session
from ..exceptions import BusinessRuleError
from .. import models, services
from ..schemas import ExpenseOut, SalaryPaymentIn, TeacherCreateIn, TeacherOut

router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = logging.getLogger("lms.api")


@router.post('/create-teacher', response_model=TeacherOut, status_code=201)
def create_teacher(payload: TeacherCreateIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Create a teacher login (TEACHER role) and its profile."""
    return services.TeacherService(db).create(payload)


@router.get('/financial-summary')
def financial_summary(month: Optional[str] = None, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Revenue, recorded expenses and net profit for `month` (YYYY-MM).

    Defaults to the current month. A malformed month is a 400; any other
    failure is logged and reported as a 500 without partial figures.
    """
    try:
        return services.FinanceService(db).monthly_summary(month)
    except BusinessRuleError:
        raise
    except Exception as e:
        logger.exception("financial summary failed for month=%s", month)
        return JSONResponse(
            status_code=500,
            content={'error': 'Failed to compute financial summary', 'message': str(e)},
        )


@router.post('/pay-teacher')
def pay_teacher(payload: SalaryPaymentIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Record a salary payment for a teacher as a SALARY expense.

    Business rule failures (such as paying a full salary twice in one
    month) come back as `{success: false, error}` with status 400.
    """
    try:
        return services.SalaryService(db).pay_teacher(payload)
    except BusinessRuleError as e:
        return JSONResponse(status_code=400, content={'success': False, 'error': str(e)})


@router.get('/unpaid-teachers')
def unpaid_teachers(month: Optional[str] = None, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.SalaryService(db).unpaid_teachers(month)


@router.get('/teachers/{teacher_id}/salary-history', response_model=List[ExpenseOut])
def salary_history(teacher_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.SalaryService(db).salary_history(teacher_id)


@router.get('/dashboard')
def dashboard(db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Headcounts plus the current month's financial summary."""
    return services.FinanceService(db).dashboard()
