from datetime import date, timedelta

from hrms.models.leave_application import LeaveStatus
from hrms.services.leave_calculator import LeaveRequest

AS_OF = date(2025, 3, 1)


def _snapshot(services, employee, as_of=AS_OF):
    return services.ledger.compute_snapshot(employee, as_of).to_dict()


def test_defaults_without_opening_row(services, make_employee):
    employee = make_employee()
    leaves = _snapshot(services, employee)["leaves"]
    assert leaves["Casual Leave"] == {"Total": 8, "Availed": 0, "Balance": 8}
    assert leaves["Privilege Leave"]["Total"] == 0
    assert leaves["LYCL (Carry Fwd)"]["Total"] == 0


def test_snapshot_meta(services, make_employee):
    employee = make_employee(usercode="HR100", gender=None)
    meta = _snapshot(services, employee)["meta"]
    assert meta["emp_id"] == "HR100"
    assert meta["gender"] == "MALE"
    assert meta["is_probation"] is False
    assert meta["server_date"] == "2025-03-01"


def test_tubectomy_limit_extends_once_base_is_used(services, make_employee, add_application):
    employee = make_employee(gender="FEMALE")
    add_application(employee, "SCL - Tubectomy", date(2024, 5, 1), days=10)
    assert _snapshot(services, employee)["leaves"]["SCL - Tubectomy"]["Total"] == 14

    add_application(employee, "SCL - Tubectomy", date(2024, 8, 1), days=4)
    line = _snapshot(services, employee)["leaves"]["SCL - Tubectomy"]
    assert line == {"Total": 28, "Availed": 14, "Balance": 14}


def test_vasectomy_limit_extends_at_six_days(services, make_employee, add_application):
    employee = make_employee(gender="MALE")
    add_application(employee, "SCL - Vasectomy", date(2023, 6, 1), days=6)
    line = _snapshot(services, employee)["leaves"]["SCL - Vasectomy"]
    assert line["Total"] == 12
    assert line["Balance"] == 6


def test_gender_filters_special_leave(services, make_employee):
    female = _snapshot(services, make_employee(gender="FEMALE"))["leaves"]
    male = _snapshot(services, make_employee(gender="MALE"))["leaves"]

    assert "Maternity (Pregnancy)" in female and "Paternity Leave" not in female
    assert "Paternity Leave" in male and "Maternity (Pregnancy)" not in male
    assert "SCL - Recanalization" in female and "SCL - Recanalization" in male
    assert "LWP" not in female


def test_probation_casual_accrual(services, make_employee, set_opening):
    employee = make_employee(employee_type="Core Probation", joindate=AS_OF - timedelta(days=90))
    set_opening(employee, 2025, cl=8, pl=5, sl=10, lycl=2)

    snapshot = _snapshot(services, employee)
    leaves = snapshot["leaves"]

    assert snapshot["meta"]["is_probation"] is True
    assert leaves["Casual Leave"]["Total"] == 2
    assert leaves["Privilege Leave"]["Total"] == 0
    assert leaves["Sick Leave"]["Total"] == 0
    assert leaves["LYCL (Carry Fwd)"]["Total"] == 0


def test_contractual_caps(services, make_employee, set_opening):
    employee = make_employee(employee_type="Contractual", joindate=date(2024, 11, 15))
    set_opening(employee, 2025, cl=8, pl=10)

    leaves = _snapshot(services, employee)["leaves"]

    # 3 full months and 106 days of service
    assert leaves["Privilege Leave"]["Total"] == 3
    assert leaves["Casual Leave"]["Total"] == 2


def test_sick_reported_in_days_and_units(services, make_employee, set_opening, add_application):
    employee = make_employee()
    set_opening(employee, 2025, sl=10)
    add_application(employee, "Sick Leave", date(2025, 2, 3), days=1)

    line = _snapshot(services, employee)["leaves"]["Sick Leave"]

    assert (line["Total"], line["Availed"], line["Balance"]) == (5, 1, 4)
    assert line["Units"] == {"Total": 10, "Availed": 2, "Balance": 8}


def test_balance_never_negative(services, make_employee, set_opening, add_application):
    employee = make_employee()
    set_opening(employee, 2025, cl=2)
    add_application(employee, "Casual Leave", date(2025, 1, 6), date(2025, 1, 8), days=3)
    assert _snapshot(services, employee)["leaves"]["Casual Leave"]["Balance"] == 0


def test_cross_year_application_counts_in_both_years(services, make_employee, add_application):
    employee = make_employee()
    add_application(employee, "Casual Leave", date(2024, 12, 30), date(2025, 1, 2), days=4)

    assert services.ledger.get_consumed_in_window(employee.emp_id, "Casual Leave", date(2024, 1, 1), date(2024, 12, 31)) == 4
    assert services.ledger.get_consumed_in_window(employee.emp_id, "Casual Leave", date(2025, 1, 1), date(2025, 12, 31)) == 4


def test_lifetime_consumption_sums_aliases(services, make_employee, add_application):
    employee = make_employee()
    add_application(employee, "Maternity Leave", date(2020, 1, 1), days=90)
    add_application(employee, "Maternity (Pregnancy)", date(2023, 1, 1), days=30)
    add_application(employee, "Maternity (Pregnancy)", date(2024, 1, 1), days=30, status=LeaveStatus.REJECTED)

    assert services.ledger.get_consumed_lifetime(employee.emp_id, "Maternity (Pregnancy)") == 120


def test_configuration_limits_snapshot_types(services, make_employee, configure):
    configure("Core", "Casual Leave", 10, max_per_request=5)
    configure("Core", "Privilege Leave", 0, min_per_request=5, is_active=False)

    leaves = _snapshot(services, make_employee())["leaves"]

    assert list(leaves) == ["Casual Leave"]
    assert leaves["Casual Leave"]["Total"] == 10


def test_configured_special_limit_overrides_default(services, make_employee, configure):
    configure("Core", "SCL - IUD Insertion", 2)
    leaves = _snapshot(services, make_employee(gender="FEMALE"))["leaves"]
    assert leaves["SCL - IUD Insertion"]["Total"] == 2


def test_submitted_privilege_leave_reflected_in_balance(services, make_employee, set_opening):
    employee = make_employee(gender="FEMALE", joindate=date(2023, 1, 1))
    set_opening(employee, 2025, cl=8, pl=10)

    result = services.workflow.submit(LeaveRequest(
        employee_code=employee.usercode,
        leave_type="Privilege Leave",
        from_date=date(2025, 3, 10),
        to_date=date(2025, 3, 14),
    ))
    assert result.ok
    assert result.deductible_days == 5

    line = _snapshot(services, employee, date(2025, 3, 15))["leaves"]["Privilege Leave"]
    assert line == {"Total": 10, "Availed": 5, "Balance": 5}
