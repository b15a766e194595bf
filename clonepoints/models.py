# /clonepoints/models.py
# Database models (SQLAlchemy).

import datetime as dt
from flask_login import UserMixin
from sqlalchemy.orm import validates
from . import db


def utcnow():
    """Naive UTC timestamp, the format stored in every DateTime column."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class Admin(UserMixin, db.Model):
    """Dashboard administrator."""
    __tablename__ = "admins"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    is_first_login = db.Column(db.Boolean, default=True, nullable=False)

    # 2FA (TOTP)
    two_factor_enabled = db.Column(db.Boolean, default=False, nullable=False)
    two_factor_secret = db.Column(db.String(64), nullable=True)

    # Lockout and audit
    last_login = db.Column(db.DateTime, nullable=True)
    failed_attempts = db.Column(db.Integer, default=0, nullable=False)
    locked_until = db.Column(db.DateTime, nullable=True)

    # Set when the admin is loaded through a session; Flask-Login stores it as the user id.
    session_token = None

    def get_id(self):
        return self.session_token

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "isFirstLogin": self.is_first_login,
            "twoFactorEnabled": self.two_factor_enabled,
            "lastLogin": _iso(self.last_login),
        }


class AdminSession(db.Model):
    """Server-side login session; the cookie only carries ``id``."""
    __tablename__ = "admin_sessions"

    id = db.Column(db.String(64), primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=False, index=True)
    ip_address = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    admin = db.relationship("Admin")


class User(db.Model):
    """Wallet holder registered through the public page."""
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    wallet_address = db.Column(db.String(64), unique=True, nullable=False, index=True)
    telegram_id = db.Column(db.String(64), unique=True, nullable=True)
    referral_code = db.Column(db.String(32), unique=True, nullable=False, index=True)
    referred_by = db.Column(db.String(64), nullable=True)
    last_verification = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "walletAddress": self.wallet_address,
            "telegramId": self.telegram_id,
            "referralCode": self.referral_code,
            "referredBy": self.referred_by,
            "lastVerification": _iso(self.last_verification),
            "createdAt": _iso(self.created_at),
        }


POINT_SOURCES = ("holding", "referral", "bonus")


class PointsLedger(db.Model):
    __tablename__ = "points_ledger"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    points = db.Column(db.Numeric(20, 6), nullable=False)
    source = db.Column(db.String(16), nullable=False)
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)

    @validates("source")
    def validate_source(self, key, value):
        if value not in POINT_SOURCES:
            raise ValueError(f"Invalid points source: {value}")
        return value


# Reserved for on-chain balance checks and points-to-SOL conversion; no endpoint uses them yet.
class WalletVerification(db.Model):
    __tablename__ = "wallet_verifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    clone_balance = db.Column(db.Numeric(30, 9), nullable=False)
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)


class ConversionRequest(db.Model):
    __tablename__ = "conversion_requests"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    points_amount = db.Column(db.Numeric(20, 6), nullable=False)
    solana_amount = db.Column(db.Numeric(30, 9), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")  # pending / approved / completed / rejected
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    processed_at = db.Column(db.DateTime, nullable=True)
    processed_by = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=True)


class ActivityLogEntry(db.Model):
    __tablename__ = "activity_logs"

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=False, index=True)
    action = db.Column(db.String(64), nullable=False)
    ip_address = db.Column(db.String(64), nullable=True)
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)
    details = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "adminId": self.admin_id,
            "action": self.action,
            "ipAddress": self.ip_address,
            "timestamp": _iso(self.timestamp),
            "details": self.details,
        }
