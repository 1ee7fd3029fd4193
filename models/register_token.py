"""Registration invitation tokens issued by HR."""

from datetime import datetime

from . import db


class RegisterToken(db.Model):
    """A single-use, time-limited invitation to create an employee account."""

    __tablename__ = "register_tokens"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)
    token = db.Column(db.String(64), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.false()
    )
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.utcnow()
        return self.expires_at < now

    def is_usable(self, now: datetime | None = None) -> bool:
        return not self.used and not self.is_expired(now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "token": self.token,
            "used": self.used,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<RegisterToken email={self.email} used={self.used}>"
