"""
Leave application workflow.

Statuses move only along the ``TRANSITIONS`` table::

    Pending --approve(manager)--> Pending Director Approval
    Pending --approve(director)--> Approved
    Pending Director Approval --approve(director)--> Approved
    Pending / Pending Director Approval --reject--> Rejected

``Approved`` and ``Rejected`` are terminal. Status writes are
compare-and-set on the current status so two approvers racing on the same
application cannot both win.
"""
import enum
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from fastapi import BackgroundTasks
from sqlalchemy import and_, func, or_, update
from sqlalchemy.orm import Session, joinedload

from hrms.core import dates
from hrms.core.exceptions import (
    AccessDeniedError,
    ConcurrencyConflict,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailed,
)
from hrms.models.employee import Employee
from hrms.models.leave_application import LeaveApplication, LeaveStatus
from hrms.services.audit import AuditService
from hrms.services.employee_directory import EmployeeDirectory
from hrms.services.leave_calculator import EvaluationOutcome, LeaveCalculator, LeaveRequest
from hrms.services.notification import (
    EmailNotifier,
    LeaveMessage,
    application_submitted_message,
    status_update_message,
)

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


class Authority(str, enum.Enum):
    MANAGER = "manager"
    DIRECTOR = "director"


TRANSITIONS: Dict[Tuple[LeaveStatus, Action, Authority], LeaveStatus] = {
    (LeaveStatus.PENDING, Action.APPROVE, Authority.MANAGER): LeaveStatus.PENDING_DIRECTOR_APPROVAL,
    (LeaveStatus.PENDING, Action.APPROVE, Authority.DIRECTOR): LeaveStatus.APPROVED,
    (LeaveStatus.PENDING_DIRECTOR_APPROVAL, Action.APPROVE, Authority.DIRECTOR): LeaveStatus.APPROVED,
    (LeaveStatus.PENDING, Action.REJECT, Authority.MANAGER): LeaveStatus.REJECTED,
    (LeaveStatus.PENDING, Action.REJECT, Authority.DIRECTOR): LeaveStatus.REJECTED,
    (LeaveStatus.PENDING_DIRECTOR_APPROVAL, Action.REJECT, Authority.MANAGER): LeaveStatus.REJECTED,
    (LeaveStatus.PENDING_DIRECTOR_APPROVAL, Action.REJECT, Authority.DIRECTOR): LeaveStatus.REJECTED,
}

# Status values accepted from clients; "Cancelled" is the legacy spelling of reject
_ACTION_ALIASES = {
    "approved": Action.APPROVE,
    "approve": Action.APPROVE,
    "rejected": Action.REJECT,
    "reject": Action.REJECT,
    "cancelled": Action.REJECT,
    "cancel": Action.REJECT,
}

MAX_ATTEMPTS = 2


def parse_action(value: str) -> Action:
    action = _ACTION_ALIASES.get((value or "").strip().lower())
    if action is None:
        raise ValidationFailed(f"Unsupported status '{value}'", field="status")
    return action


def next_status(current: LeaveStatus, action: Action, authority: Authority) -> LeaveStatus:
    if current.is_terminal:
        raise InvalidTransitionError(current.value, action.value)
    try:
        return TRANSITIONS[(current, action, authority)]
    except KeyError:
        raise InvalidTransitionError(current.value, action.value)


@dataclass
class SubmissionResult:
    outcome: EvaluationOutcome
    message: str
    application: Optional[LeaveApplication] = None
    deductible_days: float = 0.0

    @property
    def ok(self) -> bool:
        return self.outcome == EvaluationOutcome.OK


@dataclass
class TransitionResult:
    leave_id: int
    previous_status: LeaveStatus
    new_status: LeaveStatus
    message: str


class ApplicationWorkflow:
    def __init__(
        self,
        db: Session,
        directory: EmployeeDirectory,
        calculator: LeaveCalculator,
        notifier: EmailNotifier,
        audit: Optional[AuditService] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        self.db = db
        self.directory = directory
        self.calculator = calculator
        self.notifier = notifier
        self.audit = audit or AuditService(db)
        # Inside a request, emails go out after the response; elsewhere they are sent inline
        self.background_tasks = background_tasks

    def authority_of(self, approver: Employee) -> Authority:
        return Authority.DIRECTOR if self.directory.is_director(approver) else Authority.MANAGER

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    def submit(self, request: LeaveRequest, document_path: Optional[str] = None) -> SubmissionResult:
        employee = self.directory.resolve(request.employee_code)
        if employee is None:
            return SubmissionResult(EvaluationOutcome.NOT_FOUND, "Employee not found")

        # Hold the employee row so concurrent submissions see each other's consumption
        employee = self.directory.lock(employee)
        if document_path and not request.has_document:
            request = replace(request, has_document=True)
        try:
            evaluation = self.calculator.evaluate(request, employee=employee)
        except Exception:
            self.db.rollback()
            raise

        if not evaluation.ok:
            self.db.rollback()
            logger.info(f"Leave request by {employee.usercode} rejected: {evaluation.reason}")
            return SubmissionResult(evaluation.outcome, evaluation.reason or "Leave request rejected")

        application = LeaveApplication(
            emp_id=employee.emp_id,
            ltype=evaluation.leave_type.name,
            fdate=request.from_date,
            tdate=evaluation.effective_to_date,
            shift_type=request.shift_type if request.is_half_day else None,
            no_of_days=evaluation.deductible_days,
            document_path=document_path,
            comment=request.comment or "",
            l_status=LeaveStatus.PENDING.value,
            admincomment="",
            approved_date=None,
        )
        self.db.add(application)
        self.db.commit()
        self.db.refresh(application)

        logger.info(
            f"Leave {application.leave_id} filed by {employee.usercode}: "
            f"{application.ltype} {application.no_of_days:g} day(s)"
        )
        self._notify_submitted(employee, application)
        return SubmissionResult(
            EvaluationOutcome.OK,
            "Leave applied Successfully",
            application=application,
            deductible_days=evaluation.deductible_days,
        )

    def _notify_submitted(self, employee: Employee, application: LeaveApplication) -> None:
        try:
            manager = self.directory.manager_of(employee)
            recipients = [employee.email, manager.email if manager else None]
            recipients.extend(self.directory.director_emails())
            message = application_submitted_message(
                employee.ename,
                employee.usercode,
                application.ltype,
                application.fdate,
                application.tdate,
                application.no_of_days,
                application.comment,
            )
            self._dispatch(recipients, message, application.leave_id)
        except Exception as e:
            logger.error(f"Leave submission email failed for {application.leave_id}: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Dashboards
    # ------------------------------------------------------------------
    def list_pending_approvals(self, approver_code: str) -> List[LeaveApplication]:
        approver = self.directory.resolve(approver_code)
        if approver is None:
            raise NotFoundError("Approver Not Found")

        team_ids = self.directory.direct_report_ids(approver)
        query = self.db.query(LeaveApplication).options(joinedload(LeaveApplication.employee))

        if self.authority_of(approver) == Authority.DIRECTOR:
            condition = LeaveApplication.l_status == LeaveStatus.PENDING_DIRECTOR_APPROVAL.value
            if team_ids:
                condition = or_(
                    condition,
                    and_(
                        LeaveApplication.emp_id.in_(team_ids),
                        LeaveApplication.l_status == LeaveStatus.PENDING.value,
                    ),
                )
            query = query.filter(condition)
        else:
            if not team_ids:
                return []
            query = query.filter(
                LeaveApplication.emp_id.in_(team_ids),
                LeaveApplication.l_status == LeaveStatus.PENDING.value,
            )

        return query.order_by(LeaveApplication.leave_id.desc()).all()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def transition(
        self,
        application_id: int,
        approver_code: str,
        action: Action,
        comment: Optional[str] = None,
    ) -> TransitionResult:
        approver = self.directory.resolve(approver_code)
        if approver is None:
            raise NotFoundError("Approver Not Found")
        authority = self.authority_of(approver)
        comment = comment or ""

        for attempt in range(MAX_ATTEMPTS):
            application = (
                self.db.query(LeaveApplication)
                .filter(LeaveApplication.leave_id == application_id)
                .populate_existing()
                .first()
            )
            if application is None:
                raise NotFoundError("Leave application not found")

            if authority == Authority.MANAGER and not self.directory.reports_to(application.employee, approver):
                raise AccessDeniedError("You can only act on leave applications of your direct reports.")

            current = application.status
            target = next_status(current, action, authority)
            values = self._transition_values(target, authority, approver, comment)

            result = self.db.execute(
                update(LeaveApplication)
                .where(
                    LeaveApplication.leave_id == application_id,
                    LeaveApplication.l_status == current.value,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                self.audit.log_leave_transition(
                    leave_id=application_id,
                    actor_code=approver.usercode,
                    actor_role=authority.value,
                    action=action.value,
                    before_status=current.value,
                    after_status=target.value,
                    comment=comment,
                )
                self.db.commit()
                break

            self.db.rollback()
            logger.warning(f"Leave {application_id} changed while {approver.usercode} was acting, attempt {attempt + 1}")
        else:
            raise ConcurrencyConflict()

        self.db.refresh(application)
        logger.info(f"Leave {application_id}: {current.value} -> {target.value} by {approver.usercode}")
        self._notify_transition(application, approver, authority, action, comment)

        return TransitionResult(
            leave_id=application_id,
            previous_status=current,
            new_status=target,
            message=self._response_message(target),
        )

    def _transition_values(self, target: LeaveStatus, authority: Authority, approver: Employee, comment: str) -> dict:
        trail = func.coalesce(LeaveApplication.admincomment, "")
        if target == LeaveStatus.REJECTED:
            return {
                "l_status": target.value,
                "level1_status": LeaveStatus.REJECTED.value,
                "level2_status": LeaveStatus.REJECTED.value,
                "admincomment": trail + f" | Rejected by {approver.ename}: {comment}",
            }
        if target == LeaveStatus.APPROVED:
            return {
                "l_status": target.value,
                "level2_status": LeaveStatus.APPROVED.value,
                "approved_by": approver.ename,
                "approved_date": dates.today(),
                "admincomment": trail + f" | Director Approved: {comment}",
            }
        return {
            "l_status": target.value,
            "level1_status": LeaveStatus.APPROVED.value,
            "admincomment": trail + f" | Manager Approved: {comment}",
        }

    @staticmethod
    def _response_message(target: LeaveStatus) -> str:
        if target == LeaveStatus.REJECTED:
            return "Leave Rejected Successfully"
        if target == LeaveStatus.APPROVED:
            return "Final Approval Done"
        return "Approved & Forwarded to Director"

    def _notify_transition(
        self,
        application: LeaveApplication,
        approver: Employee,
        authority: Authority,
        action: Action,
        comment: str,
    ) -> None:
        try:
            employee = application.employee
            manager = self.directory.manager_of(employee)
            recipients = [employee.email, manager.email if manager else None]
            if action == Action.APPROVE and authority == Authority.MANAGER:
                recipients.extend(self.directory.director_emails())

            if action == Action.REJECT:
                label = LeaveStatus.REJECTED.value
            elif authority == Authority.MANAGER:
                label = "Pending Director Approval (Manager Approved)"
            else:
                label = LeaveStatus.APPROVED.value

            message = status_update_message(
                employee.ename,
                employee.usercode,
                application.ltype,
                application.fdate,
                application.tdate,
                label,
                approver.ename,
                comment or "No comments",
            )
            self._dispatch(recipients, message, application.leave_id)
        except Exception as e:
            logger.error(f"Status email failed for leave {application.leave_id}: {e}", exc_info=True)

    def _dispatch(self, recipients: List[Optional[str]], message: LeaveMessage, leave_id: int) -> None:
        if self.background_tasks is not None:
            self.background_tasks.add_task(self._deliver, recipients, message, leave_id)
        else:
            self._deliver(recipients, message, leave_id)

    def _deliver(self, recipients: List[Optional[str]], message: LeaveMessage, leave_id: int) -> None:
        try:
            self.notifier.send(recipients, message.subject, message.body)
        except Exception as e:
            logger.error(f"Email '{message.subject}' for leave {leave_id} failed: {e}", exc_info=True)
