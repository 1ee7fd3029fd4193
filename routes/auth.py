"""Authentication blueprint providing token registration, login and profile endpoints."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, jwt_required
from sqlalchemy import func
from werkzeug.exceptions import BadRequest, Conflict, Unauthorized

from models import db
from models.user import User
from services import onboarding_service, registration_service
from utils.auth import require_user
from utils.request_validation import parse_json_request

auth_bp = Blueprint("auth", __name__)


def _normalize_username(raw_username: str | None) -> str:
    return (raw_username or "").strip()


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Create an employee account from an HR-issued registration token."""
    payload = parse_json_request(request)
    username = _normalize_username(payload.get("username"))
    password = (payload.get("password") or "").strip()

    if not username or not password:
        raise BadRequest("Username and password are required.")

    token = registration_service.find_usable_token(payload.get("token"))
    if token is None:
        raise BadRequest("Invalid or expired registration token.")

    existing = User.query.filter(func.lower(User.username) == username.lower()).first()
    if existing is not None:
        raise Conflict("A user with that username already exists.")
    if User.query.filter(func.lower(User.email) == token.email.lower()).first() is not None:
        raise Conflict("A user with that email already exists.")

    user = User(email=token.email.lower(), username=username, role="employee")
    user.set_password(password)
    token.used = True

    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Registered employee %s from invitation", user.username)

    return (
        jsonify(
            {
                "message": "User registered successfully.",
                "user": {"id": user.id, "email": user.email, "username": user.username, "role": user.role},
            }
        ),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate a user and return a JWT access token."""
    payload = parse_json_request(request)
    username = _normalize_username(payload.get("username"))
    password = (payload.get("password") or "").strip()

    if not username or not password:
        raise BadRequest("Username and password are required.")

    user = User.query.filter(func.lower(User.username) == username.lower()).first()
    if user is None or not user.check_password(password):
        raise Unauthorized("Invalid username or password.")

    token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
    return (
        jsonify(
            {
                "access_token": token,
                "user": {"id": user.id, "email": user.email, "username": user.username, "role": user.role},
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    """Return the current user; employees also get their onboarding status."""
    user = require_user()
    data = user.to_dict()
    if user.role == "employee":
        onboarding_service.sync_onboarding_completion(user.id)
        data["onboarding_status"] = onboarding_service.find_onboarding_status(user.id).value
    return jsonify({"user": data})
