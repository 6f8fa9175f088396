"""
civicvoice.services.email_service — Notification Messages
==========================================================

Builds the portal's outgoing notices.  Delivery is fire-and-forget: until an
SMTP/API provider is configured, :func:`send_email` logs the message and
reports success.  User-supplied text is HTML-escaped before it is placed in
a body.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape

from civicvoice.engine.records import Suggestion, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EmailMessage:
    to: str
    subject: str
    body: str
    is_html: bool = True


def send_email(message: EmailMessage) -> bool:
    logger.info("Email to %s: %s", message.to, message.subject)
    logger.debug("Email body:\n%s", message.body)
    return True


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def user_approval_email(user: User, *, site_name: str) -> EmailMessage:
    return EmailMessage(
        to=user.email,
        subject="Your Account Has Been Approved",
        body=(
            "<h2>Account Approved</h2>\n"
            f"<p>Hello {escape(user.name)},</p>\n"
            f"<p>Your account on the {escape(site_name)} has been approved!</p>\n"
            "<p>You can now log in and submit your suggestions for laws and regulations.</p>\n"
            "<p>Thank you for participating in improving our nation's governance.</p>"
        ),
    )


def suggestion_approval_email(author: User, suggestion: Suggestion) -> EmailMessage:
    return EmailMessage(
        to=author.email,
        subject="Your Suggestion Has Been Approved",
        body=(
            "<h2>Suggestion Approved</h2>\n"
            f"<p>Hello {escape(author.name)},</p>\n"
            f"<p>Your suggestion \"{escape(suggestion.title)}\" has been approved "
            "and is now visible on the platform.</p>\n"
            "<p>Other citizens can now see and vote on your suggestion.</p>\n"
            "<p>Thank you for your contribution!</p>"
        ),
    )


def suggestion_to_lawmakers_email(suggestion: Suggestion, *, to: str) -> EmailMessage:
    """Forward a popular suggestion.  Uses the author name snapshot on the record."""
    return EmailMessage(
        to=to,
        subject=f"Popular Citizen Suggestion: {suggestion.title}",
        body=(
            "<h2>Popular Citizen Suggestion</h2>\n"
            f"<p><strong>Title:</strong> {escape(suggestion.title)}</p>\n"
            f"<p><strong>Submitted by:</strong> {escape(suggestion.author_name)}</p>\n"
            f"<p><strong>Upvotes:</strong> {suggestion.upvotes}</p>\n"
            "<h3>Description:</h3>\n"
            f"<p>{escape(suggestion.description)}</p>\n"
            "<hr>\n"
            "<p>This suggestion has received significant support from citizens "
            "and is being forwarded for your consideration.</p>"
        ),
    )
