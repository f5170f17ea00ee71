from datetime import datetime, timedelta, timezone

import jwt
from fastapi.testclient import TestClient

from lms.config import settings
from lms.main import app
from lms.utils import rate_limit

client = TestClient(app)


def test_login_returns_token_pair():
    r = client.post('/api/auth/login', json={'username': 'admin', 'password': 'admin'})
    assert r.status_code == 200
    body = r.json()
    assert body['tokenType'] == 'Bearer'
    assert body['accessToken'] and body['refreshToken']
    me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {body['accessToken']}"})
    assert me.status_code == 200
    assert me.json()['username'] == 'admin'
    assert me.json()['roles'] == ['ADMIN']


def test_login_rejects_bad_password():
    r = client.post('/api/auth/login', json={'username': 'admin', 'password': 'nope'})
    assert r.status_code == 401


def test_refresh_issues_new_access_token():
    tokens = client.post('/api/auth/login', json={'username': 'admin', 'password': 'admin'}).json()
    r = client.post('/api/auth/refresh', json={'refreshToken': tokens['refreshToken']})
    assert r.status_code == 200
    body = r.json()
    assert body['refreshToken'] == tokens['refreshToken']
    me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {body['accessToken']}"})
    assert me.status_code == 200


def test_token_types_are_not_interchangeable():
    tokens = client.post('/api/auth/login', json={'username': 'admin', 'password': 'admin'}).json()
    r = client.post('/api/auth/refresh', json={'refreshToken': tokens['accessToken']})
    assert r.status_code == 401
    me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {tokens['refreshToken']}"})
    assert me.status_code == 401


def test_invalid_or_missing_token_rejected():
    r = client.get('/students', headers={'Authorization': 'Bearer invalid.token.here'})
    assert r.status_code == 401
    r2 = client.get('/students')
    assert r2.status_code in (401, 403)


def test_teacher_role_is_read_only(make_teacher, login):
    make_teacher('tina')
    headers = login('tina', 'secret')
    assert client.get('/courses', headers=headers).status_code == 200
    r = client.post('/courses', json={'name': 'Algebra', 'fee': 50}, headers=headers)
    assert r.status_code == 403
    assert client.get('/api/admin/financial-summary', headers=headers).status_code == 403


def test_repeated_login_failures_are_throttled():
    for _ in range(5):
        r = client.post('/api/auth/login', json={'username': 'admin', 'password': 'wrong'})
        assert r.status_code == 401
    blocked = client.post('/api/auth/login', json={'username': 'admin', 'password': 'admin'})
    assert blocked.status_code == 429
    assert 'Retry-After' in blocked.headers


def test_request_id_header_exists():
    r = client.get('/health')
    assert r.status_code == 200
    assert 'X-Request-ID' in r.headers


def test_token_of_deleted_teacher_does_not_carry_over(admin_headers, make_teacher, login):
    old = make_teacher('oldie')
    old_headers = login('oldie', 'secret')
    assert client.delete(f"/teachers/{old['id']}", headers=admin_headers).status_code == 204
    new = make_teacher('newbie')
    assert new['id'] == old['id']
    assert client.get('/api/teachers/me', headers=old_headers).status_code == 401
    assert client.get('/api/teachers/me', headers=login('newbie', 'secret')).status_code == 200


def test_expired_refresh_token_rejected():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {
            'sub': 'admin',
            'user_id': 1,
            'roles': ['ADMIN'],
            'type': 'refresh',
            'iat': int((now - timedelta(days=8)).timestamp()),
            'exp': int((now - timedelta(days=1)).timestamp()),
        },
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    r = client.post('/api/auth/refresh', json={'refreshToken': token})
    assert r.status_code == 401


def test_login_limiter_forgets_expired_failures(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(rate_limit.time, 'monotonic', lambda: clock[0])
    limiter = rate_limit.LoginAttemptLimiter(max_failures=2, window_seconds=60)
    limiter.record_failure('1.2.3.4:bob')
    limiter.record_failure('1.2.3.4:bob')
    assert limiter.retry_after('1.2.3.4:bob') == 60
    clock[0] += 61
    assert limiter.retry_after('1.2.3.4:bob') == 0
    assert limiter._failures == {}
