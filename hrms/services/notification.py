"""
Leave notification emails.

Sending is best-effort: every failure is logged and reported as ``False``,
never raised, so a mail outage cannot undo a committed leave action.
"""
import logging
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Iterable, List, Optional

from hrms.core.config import SMTPSettings

logger = logging.getLogger(__name__)


def _unique(recipients: Iterable[Optional[str]]) -> List[str]:
    seen = []
    for address in recipients:
        address = (address or "").strip()
        if address and address not in seen:
            seen.append(address)
    return seen


class EmailNotifier:
    """SMTP sender for leave notifications."""

    def __init__(self, smtp: SMTPSettings, enabled: bool = True):
        self.smtp = smtp
        self.enabled = enabled
        self.from_email = smtp.from_email or smtp.user

    def _connect(self) -> smtplib.SMTP:
        if self.smtp.use_ssl:
            return smtplib.SMTP_SSL(self.smtp.host, self.smtp.port, timeout=self.smtp.timeout_seconds)
        server = smtplib.SMTP(self.smtp.host, self.smtp.port, timeout=self.smtp.timeout_seconds)
        server.starttls()
        return server

    def send(self, recipients: Iterable[Optional[str]], subject: str, body: str) -> bool:
        to_list = _unique(recipients)
        if not to_list:
            logger.info(f"No recipients for '{subject}', skipping email")
            return False
        if not self.enabled:
            logger.info(f"Notifications disabled, not sending '{subject}'")
            return False
        if not self.smtp.user or not self.smtp.password:
            logger.warning("Email not configured. SMTP credentials missing.")
            return False

        try:
            msg = MIMEMultipart()
            msg["Subject"] = subject
            msg["From"] = f'"{self.smtp.from_name}" <{self.from_email}>'
            msg["To"] = ",".join(to_list)
            msg.attach(MIMEText(body, "plain"))

            with self._connect() as server:
                server.login(self.smtp.user, self.smtp.password)
                server.sendmail(self.from_email, to_list, msg.as_string())

            logger.info(f"Email sent: '{subject}' to {len(to_list)} recipient(s)")
            return True

        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP Authentication failed. Check email credentials.")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {e}")
            return False
        except OSError as e:
            logger.error(f"Network error sending email: {e}")
            return False


@dataclass
class LeaveMessage:
    subject: str
    body: str


def application_submitted_message(
    employee_name: str,
    employee_code: str,
    leave_type: str,
    from_date,
    to_date,
    days: float,
    comment: Optional[str],
) -> LeaveMessage:
    body = (
        "Hello,\n\n"
        "A new leave application has been submitted.\n\n"
        f"Employee: {employee_name} ({employee_code})\n"
        f"Leave Type: {leave_type}\n"
        f"From: {from_date}\n"
        f"To: {to_date}\n"
        f"Days: {days:g}\n"
        f"Reason: {comment or ''}\n\n"
        "Status: Pending Approval\n"
    )
    return LeaveMessage(subject=f"Leave Application: {employee_name} - {leave_type}", body=body)


def status_update_message(
    employee_name: str,
    employee_code: str,
    leave_type: str,
    from_date,
    to_date,
    new_status: str,
    approver_name: str,
    comment: Optional[str],
) -> LeaveMessage:
    action_text = "REJECTED" if new_status == "Rejected" else "APPROVED"
    body = (
        "Hello,\n\n"
        "The leave application status has been updated.\n\n"
        f"Employee: {employee_name} ({employee_code})\n"
        f"Leave Type: {leave_type}\n"
        f"Dates: {from_date} to {to_date}\n\n"
        "--------------------------------\n"
        f"New Status: {new_status}\n"
        f"Action By: {approver_name}\n"
        f"Comments: {comment or ''}\n"
        "--------------------------------\n\n"
        "Please login to the HRMS app for more details.\n"
    )
    return LeaveMessage(subject=f"Leave {action_text}: {employee_name} - {leave_type}", body=body)
