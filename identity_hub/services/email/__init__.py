"""Outbound account notifications.

Services depend on the Notifier protocol. Delivery itself is outside this
service; the default notifier records each message in the structured log
so an external mail relay can pick it up.
"""

from __future__ import annotations

from typing import Optional, Protocol

from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)


class Notifier(Protocol):
    def send_registration_email(self, name: str, email: str, verify_email_token: str) -> bool: ...

    def send_verification_email(self, name: str, email: str, verify_email_token: str) -> bool: ...

    def send_reset_password_email(self, email: str, reset_password_token: str) -> bool: ...

    def send_account_locked_email(self, name: str, email: str) -> bool: ...

    def send_maximum_active_session_email(self, name: str, email: str) -> bool: ...


class LogNotifier:
    def send_registration_email(self, name: str, email: str, verify_email_token: str) -> bool:
        logger.info("registration_email_queued", recipient=email, name=name)
        return True

    def send_verification_email(self, name: str, email: str, verify_email_token: str) -> bool:
        logger.info("verification_email_queued", recipient=email, name=name)
        return True

    def send_reset_password_email(self, email: str, reset_password_token: str) -> bool:
        logger.info("reset_password_email_queued", recipient=email)
        return True

    def send_account_locked_email(self, name: str, email: str) -> bool:
        logger.info("account_locked_email_queued", recipient=email, name=name)
        return True

    def send_maximum_active_session_email(self, name: str, email: str) -> bool:
        logger.info("maximum_active_session_email_queued", recipient=email, name=name)
        return True


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = LogNotifier()
    return _notifier
