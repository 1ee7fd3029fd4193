"""Employee-facing OPT visa document workflow."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest, Forbidden

from services import visa_service
from storage.abstract_storage import AbstractStorage
from utils.auth import require_employee
from utils.http_errors import raise_for_result
from utils.request_validation import parse_json_request
from utils.uploads import get_storage, store_document

visa_bp = Blueprint("visa", __name__)


def _serialize_step(step) -> dict:
    return {
        "type": step.document_type,
        "status": step.status,
        "file": step.file_ref,
        "filename": step.filename,
        "feedback": step.feedback,
        "uploaded_at": step.uploaded_at.isoformat() if step.uploaded_at else None,
        "version": step.version,
    }


@visa_bp.route("", methods=["GET"])
@jwt_required()
def get_workflow():
    """Return the current employee's visa steps with effective statuses."""

    user = require_employee()
    return jsonify(visa_service.workflow_for_user(user))


@visa_bp.route("/upload", methods=["POST"])
@jwt_required()
def upload_document():
    """Upload a visa document for one step.

    Accepts multipart ``type`` + ``file``, or JSON ``type`` + ``file_ref``
    pointing at a file stored earlier through ``/uploads``.
    """

    user = require_employee()
    stored_here = False

    if request.is_json:
        payload = parse_json_request(request, required_keys=("type",))
        client_type = payload.get("type")
        file_ref = payload.get("file_ref")
        filename = payload.get("filename")
        if file_ref:
            if not isinstance(file_ref, str):
                raise BadRequest("file_ref must be a string.")
            if AbstractStorage.owner_of(file_ref) != user.id:
                raise Forbidden("You can only submit files you uploaded.")
            if not get_storage().exists(file_ref):
                raise BadRequest("Referenced file does not exist.")
    else:
        client_type = request.form.get("type")
        if not client_type:
            raise BadRequest("Missing required fields: type.")
        file_ref = None
        filename = None
        if "file" in request.files:
            raise_for_result(visa_service.check_upload(user.id, client_type))
            file_ref, filename = store_document(request.files["file"], user.id)
            stored_here = True

    result = visa_service.upload_step(user.id, client_type, file_ref, filename)
    if not result.ok and stored_here:
        get_storage().delete(file_ref)
        current_app.logger.info("Removed %s after a failed upload by %s", file_ref, user.id)
    step = raise_for_result(result).data["step"]
    current_app.logger.info("Employee %s uploaded %s", user.id, step.document_type)
    return jsonify({"message": "Document uploaded.", "step": _serialize_step(step)}), 201
