"""Onboarding application blueprint for employees."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest, NotFound

from services import onboarding_service, visa_service
from services.workflow_engine import DocumentType, StepStatus
from storage.abstract_storage import AbstractStorage
from utils.auth import require_employee
from utils.http_errors import coded_error, raise_for_result
from utils.request_validation import parse_json_request
from utils.uploads import get_storage

onboarding_bp = Blueprint("onboarding", __name__)

REQUIRED_FIELDS = ("first_name", "last_name")

OBJECT_SECTIONS = ("address", "phone_numbers", "work_authorization", "reference", "documents")
LIST_SECTIONS = ("emergency_contacts",)


def _validate_sections(payload: dict) -> None:
    for name in OBJECT_SECTIONS:
        if payload.get(name) is not None and not isinstance(payload[name], dict):
            raise BadRequest(f"{name} must be an object.")
    for name in LIST_SECTIONS:
        if payload.get(name) is not None and not isinstance(payload[name], list):
            raise BadRequest(f"{name} must be a list.")


def _record_opt_receipt(user_id: int, documents: object) -> dict | None:
    """Register an OPT receipt attached to the form as the first visa step.

    An approved receipt is kept; a new file on the form does not replace it.
    """

    if not isinstance(documents, dict):
        return None
    file_ref = documents.get("opt_receipt")
    if not isinstance(file_ref, str) or not file_ref.strip():
        return None

    file_ref = file_ref.strip()
    if AbstractStorage.owner_of(file_ref) != user_id or not get_storage().exists(file_ref):
        return {"code": "InvalidFileReference", "detail": "OPT receipt file was not found."}

    existing = visa_service.find_step(user_id, DocumentType.OPT_RECEIPT.value)
    if existing is not None and (
        existing.file_ref == file_ref or existing.status == StepStatus.APPROVED.value
    ):
        return None

    result = visa_service.upload_step(user_id, "opt-receipt", file_ref)
    if not result.ok:
        current_app.logger.warning(
            "OPT receipt from onboarding form not recorded for user %s: %s",
            user_id,
            result.message,
        )
        return {"code": result.error.value, "detail": result.message}
    return None


@onboarding_bp.route("", methods=["POST", "PUT"])
@jwt_required()
def submit_application():
    """Submit, or resubmit after rejection, the onboarding application."""

    user = require_employee()
    payload = parse_json_request(request, required_keys=REQUIRED_FIELDS)
    _validate_sections(payload)

    result = raise_for_result(onboarding_service.submit_application(user, payload))
    application = result.data["application"]
    opt_receipt_error = _record_opt_receipt(user.id, payload.get("documents"))

    body = {
        "message": "Application submitted successfully."
        if result.data["created"]
        else "Application updated successfully.",
        "status": application.status,
        "application_id": application.id,
    }
    if opt_receipt_error:
        body["opt_receipt_error"] = opt_receipt_error
    status = HTTPStatus.CREATED if result.data["created"] else HTTPStatus.OK
    return jsonify(body), status


@onboarding_bp.route("/me", methods=["GET"])
@jwt_required()
def application_status():
    """Return the employee's application, or a never-submitted 404."""

    user = require_employee()
    application = onboarding_service.get_application(user.id)
    if application is None:
        raise coded_error(NotFound, "Onboarding application has not been submitted.", "never-submitted")

    return jsonify(
        {
            "status": application.status,
            "feedback": application.feedback,
            "application": application.to_dict(),
        }
    )
