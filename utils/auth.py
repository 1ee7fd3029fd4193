"""Helpers for resolving the authenticated user inside JWT-protected views."""

from __future__ import annotations

from flask_jwt_extended import get_jwt_identity
from werkzeug.exceptions import Forbidden, NotFound

from models import db
from models.user import User


def get_current_user() -> User | None:
    try:
        identity = get_jwt_identity()
    except RuntimeError:
        return None
    if identity is None:
        return None
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def require_user() -> User:
    user = get_current_user()
    if user is None:
        raise NotFound("User not found.")
    return user


def require_hr() -> User:
    user = require_user()
    if user.role != "hr":
        raise Forbidden("HR privileges required.")
    return user


def require_employee() -> User:
    user = require_user()
    if user.role != "employee":
        raise Forbidden("Only employees can perform this action.")
    return user
