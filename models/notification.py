"""Notification intents awaiting delivery by an external mailer."""

from datetime import datetime

from . import db


NOTIFICATION_KINDS = (
    "registration-invite",
    "document-rejected",
    "next-step-available",
    "visa-workflow-complete",
    "onboarding-approved",
    "onboarding-rejected",
    "next-step-reminder",
    "general",
)


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    recipient = db.Column(db.String(255), nullable=False)
    kind = db.Column(db.Enum(*NOTIFICATION_KINDS, name="notification_kind"), nullable=False)
    subject = db.Column(db.String(255), nullable=False)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "recipient": self.recipient,
            "kind": self.kind,
            "subject": self.subject,
            "payload": self.payload or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
