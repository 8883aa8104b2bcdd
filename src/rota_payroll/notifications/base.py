"""Base protocol and types for outbound email.

All email adapters must implement the EmailSender protocol.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass(frozen=True)
class Attachment:
    """A file attached to an email."""

    filename: str
    content: bytes
    content_type: str = XLSX_CONTENT_TYPE


@dataclass(frozen=True)
class OutboundEmail:
    """An email ready to send."""

    to: list[str]
    subject: str
    html: str
    cc: list[str] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)


@dataclass(frozen=True)
class SendResult:
    """Result of handing an email to the sender."""

    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailSender(Protocol):
    """Protocol for email delivery adapters.

    send() must not raise for delivery failures; it reports them in
    SendResult instead.
    """

    def send(self, email: OutboundEmail) -> SendResult:
        ...
