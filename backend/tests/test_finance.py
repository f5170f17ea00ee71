from fastapi.testclient import TestClient

from lms import models, services
from lms.main import app
from lms.utils.months import current_month

client = TestClient(app)


def _add_expense(headers, amount, name='Electricity', expense_date='2025-08-15', **extra):
    body = {'name': name, 'amount': amount, 'expenseDate': expense_date, **extra}
    r = client.post('/api/expenses', json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def _summary(headers, month):
    r = client.get('/api/admin/financial-summary', params={'month': month}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def test_monthly_summary_example(admin_headers, make_course, make_student, make_payment):
    c1 = make_course('One', fee=500)
    c2 = make_course('Two', fee=700)
    s = make_student(course_ids=[c1['id'], c2['id']])
    make_payment(s['id'], c1['id'], 500.0, payment_date='2025-08-02')
    make_payment(s['id'], c2['id'], 700.0, payment_date='2025-08-09')
    make_payment(s['id'], c1['id'], 500.0, payment_date='2025-09-02')
    _add_expense(admin_headers, 200.0)

    summary = _summary(admin_headers, '2025-08')
    assert summary['month'] == '2025-08'
    assert summary['revenue'] == 1200.0
    assert summary['recordedExpenses'] == 200.0
    assert summary['netProfit'] == 1000.0
    assert summary['profitMargin'] == 83.33
    assert summary['paymentCount'] == 2
    assert summary['expenseCount'] == 1
    assert summary['expenseBreakdown']['UTILITY'] == 200.0


def test_teacher_salary_only_counts_once_recorded(admin_headers, make_course, make_student, make_payment, make_teacher):
    course = make_course(fee=1200)
    s = make_student(course_ids=[course['id']])
    make_payment(s['id'], course['id'], 1200.0, payment_date='2025-08-02')
    _add_expense(admin_headers, 200.0)
    teacher = make_teacher('tess', salary=3000.0)

    summary = _summary(admin_headers, '2025-08')
    assert summary['netProfit'] == 1000.0
    assert summary['teacherCount'] == 1
    assert summary['totalTeacherSalaries'] == 3000.0
    assert summary['salaryExpenses'] == 0.0

    r = client.post('/api/admin/pay-teacher', json={'teacherId': teacher['id'], 'month': '2025-08'}, headers=admin_headers)
    assert r.status_code == 200
    summary = _summary(admin_headers, '2025-08')
    assert summary['recordedExpenses'] == 3200.0
    assert summary['salaryExpenses'] == 3000.0
    assert summary['netProfit'] == -2000.0


def test_summary_without_payments_has_zero_margin(admin_headers):
    _add_expense(admin_headers, 50.0)
    summary = _summary(admin_headers, '2025-08')
    assert summary['revenue'] == 0.0
    assert summary['netProfit'] == -50.0
    assert summary['profitMargin'] == 0.0


def test_summary_rounds_to_cents(admin_headers, make_course, make_student, make_payment):
    c1 = make_course('One')
    c2 = make_course('Two')
    s = make_student(course_ids=[c1['id'], c2['id']])
    make_payment(s['id'], c1['id'], 10.10, payment_date='2025-08-02')
    make_payment(s['id'], c2['id'], 20.20, payment_date='2025-08-03')
    assert _summary(admin_headers, '2025-08')['revenue'] == 30.3


def test_summary_includes_legacy_payments(admin_headers, make_course, make_student, db_session):
    course = make_course()
    s = make_student(course_ids=[course['id']])
    db_session.add(models.Payment(
        student_id=s['id'], course_id=course['id'], amount=75.0,
        payment_date='2025-08-11', payment_month=None,
    ))
    db_session.commit()
    assert _summary(admin_headers, '2025-08')['revenue'] == 75.0
    assert _summary(admin_headers, '2025-07')['revenue'] == 0.0


def test_summary_month_handling(admin_headers):
    r = client.get('/api/admin/financial-summary', headers=admin_headers)
    assert r.status_code == 200
    assert r.json()['month'] == current_month()
    bad = client.get('/api/admin/financial-summary', params={'month': '2025-8'}, headers=admin_headers)
    assert bad.status_code == 400


def test_summary_failure_returns_500(admin_headers, monkeypatch):
    def boom(self, month=None):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(services.FinanceService, "monthly_summary", boom)
    r = client.get('/api/admin/financial-summary', params={'month': '2025-08'}, headers=admin_headers)
    assert r.status_code == 500
    assert 'error' in r.json()


def test_expense_defaults_and_breakdown(admin_headers, make_teacher):
    teacher = make_teacher('ted')
    e = _add_expense(admin_headers, 1000.0, name='Rent', category='RENT', expense_date='2025-08-01')
    assert e['expenseMonth'] == '2025-08'
    assert e['category'] == 'RENT'
    salary = _add_expense(admin_headers, 500.0, name='Partial', category='SALARY', teacherId=teacher['id'])
    assert salary['teacherName'] == 'Ted'
    r = client.post('/api/expenses', json={'name': 'x', 'amount': 1, 'teacherId': teacher['id']}, headers=admin_headers)
    assert r.status_code == 400

    breakdown = client.get('/api/expenses/breakdown', params={'month': '2025-08'}, headers=admin_headers).json()
    assert breakdown['breakdown']['RENT'] == 1000.0
    assert breakdown['breakdown']['SALARY'] == 500.0
    assert breakdown['breakdown']['OTHER'] == 0.0
    total = client.get('/api/expenses/total', params={'month': '2025-08'}, headers=admin_headers).json()
    assert total['totalExpenses'] == 1500.0
    assert total['expenseCount'] == 2


def test_expense_list_and_delete(admin_headers):
    e = _add_expense(admin_headers, 10.0)
    _add_expense(admin_headers, 20.0, expense_date='2025-09-01')
    aug = client.get('/api/expenses', params={'month': '2025-08'}, headers=admin_headers).json()
    assert [x['id'] for x in aug] == [e['id']]
    assert client.delete(f"/api/expenses/{e['id']}", headers=admin_headers).status_code == 204
    assert len(client.get('/api/expenses', headers=admin_headers).json()) == 1


def test_expense_categories(admin_headers):
    cats = client.get('/api/expenses/categories', headers=admin_headers).json()
    assert {'name': 'SALARY', 'displayName': 'Teacher Salary'} in cats
    assert len(cats) == 6


def test_potential_revenue_and_dashboard(admin_headers, make_course, make_student):
    course = make_course(fee=100.0)
    make_student('A', course_ids=[course['id']])
    make_student('B', course_ids=[course['id']])
    r = client.get('/api/expenses/revenue', headers=admin_headers).json()
    assert r['totalPotentialRevenue'] == 200.0
    assert r['courses'][0]['enrolledStudents'] == 2

    dash = client.get('/api/admin/dashboard', headers=admin_headers).json()
    assert dash['studentCount'] == 2
    assert dash['courseCount'] == 1
    assert dash['teacherCount'] == 0
    assert dash['currentMonth']['month'] == current_month()
