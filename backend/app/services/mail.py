# backend/app/services/mail.py
"""
Outbound security mail over SMTP.

Every method blocks (DNS, SMTP); callers run them through
run_in_threadpool. Failures raise MailError; whether that fails the
request is the caller's decision.
"""
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Protocol

from email_validator import EmailNotValidError, validate_email

from backend.app.core import errors
from backend.app.core.clock import as_aware
from backend.app.core.config import Settings
from backend.app.models.login_attempt import LoginAttempt

logger = logging.getLogger(__name__)

DATE_FORMAT = "%a, %d %b %Y %H:%M:%S %Z"


class MailDispatcher(Protocol):
    def send_2fa_code(self, email: str, code: str) -> None:
        ...

    def send_new_device_notice(self, attempt: LoginAttempt) -> None:
        ...

    def send_suspicious_activity_report(self, attempt: LoginAttempt) -> None:
        ...


def format_attempt(attempt: LoginAttempt) -> str:
    lines = []
    if attempt.created_at is not None:
        lines.append(f"On {as_aware(attempt.created_at).strftime(DATE_FORMAT)}")
    if attempt.ip:
        lines.append(f"IP: {attempt.ip}")
    if attempt.user_agent:
        lines.append(f"Device: {attempt.user_agent}")
    return "\n".join(lines)


def two_factor_body(code: str) -> str:
    return (
        "Your Strongbox verification code is:\n\n"
        f"    {code}\n\n"
        "It expires in 5 minutes. If you did not try to log in, "
        "change your password."
    )


def new_device_body(attempt: LoginAttempt) -> str:
    return (
        f"A new device has been registered in your account ({attempt.user})\n\n"
        + format_attempt(attempt)
    )


def suspicious_activity_body(attempt: LoginAttempt) -> str:
    return (
        f"We have detected a suspicious activity in your account ({attempt.user})\n"
        "Your account has been locked after too many unsuccessful login attempts.\n\n"
        + format_attempt(attempt)
    )


class SmtpMailDispatcher:
    def __init__(self, settings: Settings):
        self._host = settings.MAIL_HOST.strip()
        self._port = settings.MAIL_PORT
        self._username = settings.MAIL_USERNAME.strip()
        self._password = settings.MAIL_PASSWORD
        self._sender = settings.MAIL_FROM.strip() or self._username
        self._use_tls = settings.MAIL_USE_TLS
        self._timeout = settings.MAIL_TIMEOUT
        self._check_deliverability = settings.MAIL_CHECK_DELIVERABILITY

    def send_2fa_code(self, email: str, code: str) -> None:
        if self._check_deliverability:
            try:
                validate_email(email, check_deliverability=True)
            except EmailNotValidError as e:
                logger.warning(f"Refusing to mail a code to {email}: {e}")
                raise errors.MailError(f"Error sending email: {e}")
        self._send(email, "Strongbox verification code", two_factor_body(code))

    def send_new_device_notice(self, attempt: LoginAttempt) -> None:
        self._send(attempt.user, "Strongbox: new device", new_device_body(attempt))

    def send_suspicious_activity_report(self, attempt: LoginAttempt) -> None:
        self._send(
            attempt.user, "Strongbox: suspicious activity", suspicious_activity_body(attempt)
        )

    def _send(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._sender
        msg["To"] = to
        msg.set_content(body)

        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as client:
                if self._use_tls:
                    client.starttls(context=ssl.create_default_context())
                if self._username:
                    client.login(self._username, self._password)
                client.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Unable to send '{subject}' to {to}: {e}")
            raise errors.MailError(f"Error sending email: {e}")
