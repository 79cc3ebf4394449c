import pytest
from datetime import date

from hrms.models.audit_log import AuditLog
from hrms.models.leave_application import LeaveStatus
from hrms.models.leave_balance import LeaveBalance


def _opening(db_session, employee, year):
    return (
        db_session.query(LeaveBalance)
        .filter(LeaveBalance.emp_id == employee.emp_id, LeaveBalance.year == year)
        .one()
    )


@pytest.fixture
def confirmed(make_employee, set_opening, add_application):
    employee = make_employee(joindate=date(2020, 1, 1))
    set_opening(employee, 2024, cl=8, pl=20, sl=30)
    add_application(employee, "Casual Leave", date(2024, 2, 5), date(2024, 2, 7), days=3)
    add_application(employee, "Privilege Leave", date(2024, 5, 6), date(2024, 5, 10), days=5)
    add_application(employee, "Sick Leave", date(2024, 7, 1), date(2024, 7, 2), days=2)
    add_application(employee, "Casual Leave", date(2024, 9, 2), days=1, status=LeaveStatus.PENDING)
    add_application(employee, "Casual Leave", date(2024, 9, 3), days=1, status=LeaveStatus.REJECTED)
    return employee


def test_confirmed_employee_rollover(services, db_session, confirmed):
    summary = services.closer.run(2025)

    assert summary.processed_count == 1
    assert summary.processed_ids == [confirmed.emp_id]
    assert summary.errors == []

    row = _opening(db_session, confirmed, 2025)
    assert row.cl_opening == 8
    assert row.lycl_opening == 5
    # 366 days employed in 2024, 7 days absent: 20 - 5 + 359 / 12
    assert row.pl_opening == pytest.approx(44.92)
    # 30 - 2 * 2 + 20 units credit
    assert row.sl_opening == pytest.approx(46)


def test_rerun_is_idempotent(services, db_session, confirmed):
    services.closer.run(2025)
    first = _opening(db_session, confirmed, 2025)
    values = (first.cl_opening, first.pl_opening, first.sl_opening, first.lycl_opening)

    services.closer.run(2025)

    rows = db_session.query(LeaveBalance).filter(LeaveBalance.year == 2025).all()
    assert len(rows) == 1
    db_session.refresh(rows[0])
    assert (rows[0].cl_opening, rows[0].pl_opening, rows[0].sl_opening, rows[0].lycl_opening) == values


def test_probation_by_join_date_gets_no_credit(services, db_session, make_employee):
    employee = make_employee(joindate=date(2024, 6, 1))
    services.closer.run(2025)

    row = _opening(db_session, employee, 2025)
    assert (row.cl_opening, row.pl_opening, row.sl_opening, row.lycl_opening) == (8, 0, 0, 0)


def test_contractual_keeps_carry_forward_only(services, db_session, make_employee, set_opening):
    employee = make_employee(joindate=date(2020, 1, 1), employee_type="Contractual")
    set_opening(employee, 2024, cl=6, pl=12, sl=10)
    services.closer.run(2025)

    row = _opening(db_session, employee, 2025)
    assert row.lycl_opening == 6
    assert row.pl_opening == 0
    assert row.sl_opening == 0


def test_new_joiner_without_opening_row(services, db_session, make_employee):
    employee = make_employee(joindate=date(2023, 7, 1))
    services.closer.run(2025)

    row = _opening(db_session, employee, 2025)
    assert row.lycl_opening == 8
    assert row.pl_opening == pytest.approx(30.5)
    assert row.sl_opening == pytest.approx(20)


def test_first_close_after_probation(services, db_session, make_employee):
    employee = make_employee(joindate=date(2022, 7, 1))
    services.closer.run(2023)

    row = _opening(db_session, employee, 2023)
    # Still on probation at 2022-12-31
    assert row.pl_opening == 0
    assert row.lycl_opening == 0

    services.closer.run(2024)
    row = _opening(db_session, employee, 2024)
    assert row.pl_opening == pytest.approx(round(365 / 12, 2))
    assert row.sl_opening == pytest.approx(20)


def test_caps_applied(services, db_session, make_employee, set_opening):
    employee = make_employee(joindate=date(2000, 1, 1))
    set_opening(employee, 2024, cl=8, pl=299, sl=475)
    services.closer.run(2025)

    row = _opening(db_session, employee, 2025)
    assert row.pl_opening == 300
    assert row.sl_opening == 480


def test_maternity_and_unpaid_reduce_duty_days(services, db_session, make_employee, set_opening, add_application):
    employee = make_employee(joindate=date(2020, 1, 1))
    set_opening(employee, 2024, cl=8)
    add_application(employee, "Maternity Leave", date(2024, 1, 1), days=60)
    add_application(employee, "Extraordinary Leave", date(2024, 4, 1), days=6)
    services.closer.run(2025)

    row = _opening(db_session, employee, 2025)
    assert row.pl_opening == pytest.approx(round((366 - 66) / 12, 2))


def test_inactive_employees_skipped(services, db_session, make_employee):
    make_employee(active_inactive_status="Inactive")
    summary = services.closer.run(2025)
    assert summary.processed_count == 0
    assert db_session.query(LeaveBalance).count() == 0


def test_failures_are_isolated(services, db_session, make_employee, monkeypatch):
    good = make_employee(joindate=date(2020, 1, 1))
    bad = make_employee(joindate=date(2020, 1, 1))
    original = services.closer.compute_new_opening

    def flaky(employee, processing_year):
        if employee.emp_id == bad.emp_id:
            raise ValueError("corrupt join date")
        return original(employee, processing_year)

    monkeypatch.setattr(services.closer, "compute_new_opening", flaky)
    summary = services.closer.run(2025)

    assert summary.processed_ids == [good.emp_id]
    assert summary.errors == [{"emp_id": bad.emp_id, "error": "corrupt join date"}]
    assert _opening(db_session, good, 2025).cl_opening == 8


def test_run_is_audited(services, db_session, make_employee):
    make_employee(joindate=date(2020, 1, 1))
    services.closer.run(2025)

    entry = db_session.query(AuditLog).filter(AuditLog.action == "year_end_close").one()
    assert entry.details["target_year"] == 2025
    assert entry.details["processed_count"] == 1


def test_default_target_is_current_year(services, make_employee, fixed_today):
    make_employee(joindate=date(2020, 1, 1))
    summary = services.closer.run()
    assert summary.target_year == fixed_today.year
    assert summary.processing_year == fixed_today.year - 1


def test_configured_limits_are_the_baseline_without_opening_row(services, db_session, make_employee, configure, add_application):
    configure("Core", "Casual Leave", 8, max_per_request=5)
    configure("Core", "Privilege Leave", 30, min_per_request=5)
    configure("Core", "Sick Leave", 10)
    employee = make_employee(joindate=date(2020, 1, 1))
    add_application(employee, "Privilege Leave", date(2024, 6, 3), date(2024, 6, 12), days=10)

    services.closer.run(2025)

    row = _opening(db_session, employee, 2025)
    # 30 - 10 + (366 - 10) / 12
    assert row.pl_opening == pytest.approx(49.67)
    # 10 days = 20 units opening, plus the 20 unit credit
    assert row.sl_opening == pytest.approx(40)
    assert row.lycl_opening == 8
