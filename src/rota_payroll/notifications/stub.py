"""In-memory email sender for local development and testing.

Selected with EMAIL_BACKEND=stub; production uses SmtpEmailSender.
"""

from __future__ import annotations

import uuid

from rota_payroll.notifications.base import OutboundEmail, SendResult


class StubEmailSender:
    """Records emails instead of sending them."""

    def __init__(self, fail: bool = False):
        """Initialize stub sender.

        Args:
            fail: If True, every send reports a delivery failure.
        """
        self.fail = fail
        self.sent: list[OutboundEmail] = []

    def send(self, email: OutboundEmail) -> SendResult:
        if self.fail:
            return SendResult(success=False, error="Stub delivery failure")
        self.sent.append(email)
        return SendResult(success=True, message_id=f"stub-{uuid.uuid4()}")
