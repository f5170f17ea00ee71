import os
import tempfile
from pathlib import Path

# Point the app at a throwaway SQLite file before `lms` is imported.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="lms-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["ENV"] = "dev"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "admin"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from lms import main
from lms.database import engine
from lms.routers.auth import login_limiter

client = TestClient(main.app)


@pytest.fixture(autouse=True)
def reset_db():
    """Recreate all tables (and the admin account) for every test."""
    SQLModel.metadata.drop_all(engine)
    main.bootstrap()
    login_limiter.clear()
    yield


@pytest.fixture
def db_session():
    with Session(engine) as session:
        yield session


def _login(username, password):
    r = client.post('/api/auth/login', json={'username': username, 'password': password})
    assert r.status_code == 200, r.text
    return {'Authorization': f"Bearer {r.json()['accessToken']}"}


@pytest.fixture
def login():
    return _login


@pytest.fixture
def admin_headers():
    return _login('admin', 'admin')


@pytest.fixture
def make_course(admin_headers):
    def _make(name="Python Basics", fee=100.0, **extra):
        r = client.post('/courses', json={'name': name, 'fee': fee, **extra}, headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture
def make_student(admin_headers):
    def _make(name="Alice", course_ids=(), email=None, phone="555-0100"):
        body = {'name': name, 'phone': phone, 'email': email, 'courseIds': list(course_ids)}
        r = client.post('/students', json=body, headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture
def make_teacher(admin_headers):
    def _make(username="teacher1", salary=3000.0, name=None, password="secret"):
        body = {
            'username': username,
            'password': password,
            'name': name or username.title(),
            'phone': '555-0199',
            'salary': salary,
        }
        r = client.post('/teachers', json=body, headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture
def make_payment(admin_headers):
    def _make(student_id, course_id, amount, payment_date="2025-08-05"):
        body = {'studentId': student_id, 'courseId': course_id, 'amount': amount, 'paymentDate': payment_date}
        r = client.post('/payments', json=body, headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()
    return _make
