"""Notification intents.

Nothing is delivered from here: each intent is written to the
``notifications`` table inside the caller's transaction for an external
mailer to pick up.
"""

from __future__ import annotations

import logging

from models import db
from models.notification import Notification
from models.user import User

logger = logging.getLogger(__name__)

SUBJECTS = {
    "registration-invite": "You're invited to complete your onboarding",
    "document-rejected": "Action required: your {document_type} was rejected",
    "next-step-available": "Next step available: upload your {document_type}",
    "visa-workflow-complete": "All of your visa documents have been approved",
    "onboarding-approved": "Your onboarding application was approved",
    "onboarding-rejected": "Action required: your onboarding application was rejected",
    "next-step-reminder": "Action Required: Next Step for Your Visa Documentation",
    "general": "Employee Management System Notification",
}


def emit(kind: str, *, recipient: str, user: User | None = None, **payload) -> Notification:
    """Queue a notification intent; the caller commits."""

    subject = SUBJECTS[kind].format(**payload)
    notification = Notification(
        user_id=user.id if user is not None else None,
        recipient=recipient,
        kind=kind,
        subject=subject,
        payload=payload,
    )
    db.session.add(notification)
    logger.info("Queued %s notification for %s", kind, recipient)
    return notification


def notify_user(user: User, kind: str, **payload) -> Notification:
    return emit(kind, recipient=user.email, user=user, **payload)


def notifications_for(user_id: int) -> list[Notification]:
    return (
        Notification.query.filter_by(user_id=user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )
