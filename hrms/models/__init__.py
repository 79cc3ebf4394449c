# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    employee, leave_configuration, leave_balance, leave_application, audit_log
)

# Explicit class exports for cleaner imports
from .employee import Employee
from .leave_configuration import LeaveConfiguration
from .leave_balance import LeaveBalance
from .leave_application import LeaveApplication, LeaveStatus
from .audit_log import AuditLog

__all__ = [
    "Employee",
    "LeaveConfiguration",
    "LeaveBalance",
    "LeaveApplication",
    "LeaveStatus",
    "AuditLog",
]
