"""HR blueprint: invitations, application review and visa document review."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.onboarding_application import APPLICATION_STATUSES, OnboardingApplication
from models.user import User
from services import notifications, onboarding_service, registration_service, visa_service
from services.workflow_engine import OnboardingStatus
from utils.auth import require_hr
from utils.http_errors import raise_for_result
from utils.request_validation import optional_int, parse_json_request

hr_bp = Blueprint("hr", __name__)

OPT_VISA_TYPE = "f1-cpt-opt"
VISA_SCOPES = ("in-progress", "all")


def _get_employee_or_404(employee_id: int) -> User:
    employee = db.session.get(User, employee_id)
    if employee is None or employee.role != "employee":
        raise NotFound("Employee not found.")
    return employee


def _serialize_employee(user: User) -> dict:
    application = user.onboarding_application
    data = user.to_dict()
    data.update(
        {
            "onboarding_status": application.status
            if application is not None
            else OnboardingStatus.NEVER_SUBMITTED.value,
            "first_name": application.first_name if application else None,
            "last_name": application.last_name if application else None,
            "middle_name": application.middle_name if application else None,
            "preferred_name": application.preferred_name if application else None,
            "work_authorization": (application.personal_info or {}).get("work_authorization")
            if application
            else None,
            "application": application.to_dict() if application else None,
            "visa": visa_service.workflow_for_user(user),
        }
    )
    return data


def _matches(user: User, term: str) -> bool:
    application = user.onboarding_application
    if application is None:
        return False
    names = (application.first_name, application.last_name, application.preferred_name)
    return any(term in (name or "").lower() for name in names)


def _employees(search: str | None = None) -> list[User]:
    employees = (
        User.query.filter_by(role="employee")
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    term = (search or "").strip().lower()
    if term:
        employees = [user for user in employees if _matches(user, term)]
    return employees


@hr_bp.route("/dashboard", methods=["GET"])
@jwt_required()
def dashboard():
    """Headline counts for the HR home page."""

    require_hr()
    employees = User.query.filter_by(role="employee").all()
    return jsonify(
        {
            "total_employees": len(employees),
            "pending_applications": OnboardingApplication.query.filter_by(status="pending").count(),
            "approved_applications": OnboardingApplication.query.filter_by(
                status="approved"
            ).count(),
            "pending_visa_documents": visa_service.count_pending_documents(),
            "in_progress_visa": sum(
                1 for user in employees if visa_service.is_workflow_in_progress(user.id)
            ),
        }
    )


@hr_bp.route("/employees", methods=["GET"])
@jwt_required()
def list_employees():
    """List employees, optionally filtered by first, last or preferred name."""

    require_hr()
    payload = [_serialize_employee(user) for user in _employees(request.args.get("search"))]
    return jsonify({"results": payload, "count": len(payload)})


@hr_bp.route("/employees/<int:employee_id>", methods=["GET"])
@jwt_required()
def get_employee(employee_id: int):
    require_hr()
    return jsonify(_serialize_employee(_get_employee_or_404(employee_id)))


@hr_bp.route("/employees/<int:employee_id>/visa", methods=["GET"])
@jwt_required()
def get_employee_visa(employee_id: int):
    require_hr()
    _get_employee_or_404(employee_id)
    result = raise_for_result(visa_service.get_visa_workflow(employee_id))
    return jsonify(result.data)


@hr_bp.route("/employees/<int:employee_id>/check-onboarding", methods=["POST"])
@jwt_required()
def check_onboarding(employee_id: int):
    """Approve onboarding if every requirement, including visa documents, is met."""

    require_hr()
    _get_employee_or_404(employee_id)
    approved = onboarding_service.sync_onboarding_completion(employee_id)
    status = onboarding_service.find_onboarding_status(employee_id)
    return jsonify({"status": status.value, "approved_now": approved})


@hr_bp.route("/applications", methods=["GET"])
@jwt_required()
def list_applications():
    """Return onboarding applications, newest first, optionally by status."""

    require_hr()
    query = OnboardingApplication.query
    status = request.args.get("status")
    if status:
        if status not in APPLICATION_STATUSES:
            raise BadRequest(f"status must be one of {', '.join(APPLICATION_STATUSES)}.")
        query = query.filter_by(status=status)

    applications = query.order_by(
        OnboardingApplication.submitted_at.desc(), OnboardingApplication.id.desc()
    ).all()
    payload = []
    for application in applications:
        item = application.to_dict()
        item["user"] = {
            "id": application.user.id,
            "email": application.user.email,
            "username": application.user.username,
        }
        payload.append(item)
    return jsonify({"results": payload, "count": len(payload)})


@hr_bp.route("/applications/<int:employee_id>/review", methods=["POST"])
@jwt_required()
def review_application(employee_id: int):
    """Approve or reject a pending onboarding application."""

    reviewer = require_hr()
    payload = parse_json_request(request, required_keys=("decision",))
    result = raise_for_result(
        onboarding_service.review_application(
            employee_id, payload.get("decision"), payload.get("feedback"), reviewer
        )
    )
    application = result.data["application"]
    current_app.logger.info(
        "HR %s reviewed onboarding for user %s: %s", reviewer.id, employee_id, application.status
    )
    return jsonify(
        {
            "status": application.status,
            "feedback": application.feedback,
            "changed": result.data["changed"],
        }
    )


@hr_bp.route("/tokens", methods=["POST"])
@jwt_required()
def create_token():
    """Issue a registration invitation."""

    issuer = require_hr()
    payload = parse_json_request(request, required_keys=("email",))
    email = str(payload.get("email")).strip().lower()
    if "@" not in email:
        raise BadRequest("A valid email is required.")

    token = registration_service.issue_token(
        email,
        (payload.get("name") or "").strip() or None,
        ttl_hours=current_app.config.get(
            "REGISTER_TOKEN_TTL_HOURS", registration_service.DEFAULT_TOKEN_TTL_HOURS
        ),
        frontend_url=current_app.config.get("FRONTEND_URL"),
        issued_by=issuer,
    )
    data = token.to_dict()
    data["link"] = registration_service.registration_link(
        current_app.config.get("FRONTEND_URL"), token.token
    )
    return jsonify(data), 201


@hr_bp.route("/tokens", methods=["GET"])
@jwt_required()
def list_tokens():
    """Every invitation with the invitee's onboarding progress."""

    require_hr()
    frontend_url = current_app.config.get("FRONTEND_URL")
    payload = []
    for token in registration_service.list_tokens():
        item = token.to_dict()
        item["onboarding_status"] = registration_service.onboarding_status_for_email(token.email)
        item["link"] = registration_service.registration_link(frontend_url, token.token)
        payload.append(item)
    return jsonify({"results": payload, "count": len(payload)})


@hr_bp.route("/visa", methods=["GET"])
@jwt_required()
def list_visa_employees():
    """OPT employees; ``scope=in-progress`` keeps approved onboardings with open steps."""

    require_hr()
    scope = request.args.get("scope", "all")
    if scope not in VISA_SCOPES:
        raise BadRequest(f"scope must be one of {', '.join(VISA_SCOPES)}.")

    payload = []
    for user in _employees(request.args.get("search")):
        application = user.onboarding_application
        if application is None or application.visa_type != OPT_VISA_TYPE:
            continue
        item = _serialize_employee(user)
        if scope == "in-progress" and (
            application.status != "approved" or item["visa"]["complete"]
        ):
            continue
        payload.append(item)
    return jsonify({"results": payload, "count": len(payload)})


@hr_bp.route("/visa/review", methods=["POST"])
@jwt_required()
def review_visa_document():
    """Approve or reject one uploaded visa document."""

    reviewer = require_hr()
    payload = parse_json_request(request, required_keys=("type", "decision"))
    employee_id = optional_int(payload.get("employee_id"), "employee_id")
    if employee_id is None:
        raise BadRequest("Missing required fields: employee_id.")

    result = raise_for_result(
        visa_service.review_step(
            employee_id,
            payload.get("type"),
            payload.get("decision"),
            feedback=payload.get("feedback"),
            reviewer=reviewer,
            expected_version=optional_int(payload.get("expected_version"), "expected_version"),
        )
    )
    step = result.data["step"]
    workflow = visa_service.get_visa_workflow(employee_id).data
    return jsonify(
        {
            "message": f"Document {step.status} successfully.",
            "type": step.document_type,
            "status": step.status,
            "feedback": step.feedback,
            "changed": result.data["changed"],
            "workflow": workflow,
        }
    )


@hr_bp.route("/notifications", methods=["POST"])
@jwt_required()
def send_notification():
    """Queue a reminder for an employee."""

    require_hr()
    payload = parse_json_request(request, required_keys=("employee_id",))
    employee = _get_employee_or_404(optional_int(payload.get("employee_id"), "employee_id"))

    if payload.get("type") == "next-step":
        workflow = visa_service.workflow_for_user(employee)
        notification = notifications.notify_user(
            employee, "next-step-reminder", next_action=workflow["next_action"]
        )
    else:
        notification = notifications.notify_user(employee, "general")
    db.session.commit()
    return jsonify(notification.to_dict()), 201
