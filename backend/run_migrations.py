"""Bring an existing database up to the current schema conventions.

Creates missing tables and roles, then backfills `payment_month` on
payments recorded before the column was filled on insert. Rows whose
`payment_date` is not a valid ISO date are left untouched and reported.
"""
import logging

from sqlmodel import Session, select

from lms import models
from lms.database import create_db_and_tables, engine
from lms.exceptions import BusinessRuleError
from lms.utils.months import month_of

logger = logging.getLogger("lms.migrations")


def backfill_payment_months(session: Session) -> int:
    """Set `payment_month` from `payment_date` where it is missing.

    Returns the number of rows updated.
    """
    rows = session.exec(select(models.Payment).where(models.Payment.payment_month.is_(None))).all()
    updated = 0
    for payment in rows:
        try:
            payment.payment_month = month_of(payment.payment_date)
        except BusinessRuleError:
            logger.warning("payment %s has unparseable date %r; skipped", payment.id, payment.payment_date)
            continue
        session.add(payment)
        updated += 1
    session.commit()
    return updated


def run() -> int:
    create_db_and_tables()
    with Session(engine) as session:
        updated = backfill_payment_months(session)
    print("Backfilled payment months:", updated)
    return updated


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    run()
