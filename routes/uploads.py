"""Generic document upload and download endpoints."""

from __future__ import annotations

from flask import Blueprint, jsonify, request, send_file
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import Forbidden, NotFound

from storage.abstract_storage import AbstractStorage
from utils.auth import require_user
from utils.uploads import get_storage, store_document

uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.route("", methods=["POST"])
@jwt_required()
def upload_file():
    """Store a file and return the reference used by later requests."""

    user = require_user()
    file_ref, filename = store_document(request.files.get("file"), user.id)
    return jsonify({"file_ref": file_ref, "filename": filename}), 201


@uploads_bp.route("/<path:file_ref>", methods=["GET"])
@jwt_required()
def download_file(file_ref: str):
    """Serve a stored file to its owner or to HR."""

    user = require_user()
    if user.role != "hr" and AbstractStorage.owner_of(file_ref) != user.id:
        raise Forbidden("You do not have access to this file.")

    storage = get_storage()
    if not storage.exists(file_ref):
        raise NotFound("Stored file could not be found.")

    return send_file(storage.path_for(file_ref), as_attachment=True)
