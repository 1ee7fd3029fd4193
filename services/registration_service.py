"""Time-limited registration invitations issued by HR."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import func

from models import db
from models.onboarding_application import OnboardingApplication
from models.register_token import RegisterToken
from models.user import User
from services import notifications

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_HOURS = 3


def registration_link(frontend_url: str | None, token: str) -> str:
    base = (frontend_url or "").rstrip("/")
    return f"{base}/register?token={token}"


def issue_token(
    email: str,
    name: str | None,
    *,
    ttl_hours: float = DEFAULT_TOKEN_TTL_HOURS,
    frontend_url: str | None = None,
    issued_by: User | None = None,
) -> RegisterToken:
    """Create an invitation token and queue the invitation email."""

    token = RegisterToken(
        email=email,
        name=name,
        token=secrets.token_hex(20),
        expires_at=datetime.utcnow() + timedelta(hours=ttl_hours),
        created_by=issued_by.id if issued_by is not None else None,
    )
    db.session.add(token)
    notifications.emit(
        "registration-invite",
        recipient=email,
        name=name,
        link=registration_link(frontend_url, token.token),
        expires_at=token.expires_at.isoformat(),
    )
    db.session.commit()
    logger.info("Issued registration token for %s", email)
    return token


def find_usable_token(value: str | None) -> RegisterToken | None:
    if not value:
        return None
    token = RegisterToken.query.filter_by(token=value).first()
    if token is None or not token.is_usable():
        return None
    return token


def onboarding_status_for_email(email: str) -> str:
    """Where the invitee is in the funnel: not_registered, registered, or the application status."""

    user = User.query.filter(func.lower(User.email) == email.lower()).first()
    if user is None:
        return "not_registered"
    application = OnboardingApplication.query.filter_by(user_id=user.id).first()
    if application is None:
        return "registered"
    return application.status


def list_tokens() -> list[RegisterToken]:
    return RegisterToken.query.order_by(
        RegisterToken.created_at.desc(), RegisterToken.id.desc()
    ).all()
