"""Expense endpoints under /api/expenses (ADMIN only)."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Response
from sqlmodel import Session
from ..auth import require_admin
from ..database import get_session
from .. import models, services
from ..schemas import ExpenseIn, ExpenseOut
from ..utils.months import resolve_month

router = APIRouter(prefix="/api/expenses", tags=["Expenses"])


@router.get('', response_model=List[ExpenseOut])
def list_expenses(month: Optional[str] = None, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.ExpenseService(db).list(month)


@router.post('', response_model=ExpenseOut, status_code=201)
def add_expense(payload: ExpenseIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Record an expense; date and month default to today."""
    return services.ExpenseService(db).create(payload)


@router.get('/total')
def total_expenses(month: Optional[str] = None, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return services.ExpenseService(db).total(month)


@router.get('/breakdown')
def expense_breakdown(month: Optional[str] = None, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Recorded expenses of the month grouped by category."""
    svc = services.ExpenseService(db)
    return {'month': resolve_month(month), 'breakdown': svc.breakdown(month)}


@router.get('/categories')
def expense_categories(user: models.User = Depends(require_admin)):
    return services.ExpenseService.categories()


@router.get('/teachers')
def teacher_salaries(db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """All teachers and the sum of their configured salaries."""
    return services.SalaryService(db).salary_overview()


@router.get('/revenue')
def potential_revenue(db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Fees due across all current enrollments."""
    return services.FinanceService(db).potential_revenue()


@router.delete('/{expense_id}', status_code=204)
def delete_expense(expense_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    services.ExpenseService(db).delete(expense_id)
    return Response(status_code=204)
