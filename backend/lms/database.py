"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file by default) and provides
small helpers used by the application and tests.
"""

from sqlmodel import SQLModel, create_engine, Session, select
from .config import settings
from . import models

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(settings.DATABASE_URL, echo=False, connect_args=_connect_args)


def create_db_and_tables():
    """Create database tables using SQLModel metadata and seed the roles.

    This function is intended for local development and lightweight
    deployments; production schemas should be managed with a proper
    migration tool (alembic) instead.
    """
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        _ensure_roles(session)


def _ensure_roles(session: Session):
    """Insert the ADMIN and TEACHER roles if they are missing."""
    existing = set(session.exec(select(models.Role.name)).all())
    for role in models.RoleName:
        if role.value not in existing:
            session.add(models.Role(name=role.value))
    session.commit()


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes; uncommitted work is rolled back on close.
    """
    with Session(engine) as session:
        yield session
