"""Notification intents addressed to the current user."""

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from services import notifications
from utils.auth import require_user

notifications_bp = Blueprint("notifications", __name__)


@notifications_bp.route("", methods=["GET"])
@jwt_required()
def list_notifications():
    user = require_user()
    items = [item.to_dict() for item in notifications.notifications_for(user.id)]
    return jsonify({"results": items, "count": len(items)})
