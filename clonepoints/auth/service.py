import io
import base64
import secrets
import logging
import datetime as dt

import pyotp
import qrcode
from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash, check_password_hash

from .. import db
from ..errors import AccountLocked, InvalidCredentials, InvalidSecondFactor, SecondFactorRequired
from ..models import Admin, AdminSession, utcnow

logger = logging.getLogger(__name__)


class AuthResult:
    """Outcome of a login attempt: success, second factor required, or failure."""

    SUCCESS = "success"
    SECOND_FACTOR_REQUIRED = "second_factor_required"
    FAILURE = "failure"

    def __init__(self, status, admin=None, session=None, error=None):
        self.status = status
        self.admin = admin
        self.session = session
        self.error = error

    @classmethod
    def success(cls, admin, session):
        return cls(cls.SUCCESS, admin=admin, session=session)

    @classmethod
    def second_factor_required(cls):
        return cls(cls.SECOND_FACTOR_REQUIRED, error=SecondFactorRequired())

    @classmethod
    def failure(cls, error):
        return cls(cls.FAILURE, error=error)

    @property
    def ok(self):
        return self.status == self.SUCCESS

    def __repr__(self):
        return f"<AuthResult {self.status}{' ' + type(self.error).__name__ if self.error else ''}>"


class AuthenticationService:
    """Credential checks, lockout policy, TOTP enrollment and server-side sessions."""

    def __init__(self, activity, lock_after=5, lock_minutes=30, session_hours=24,
                 password_method="pbkdf2:sha256", totp_issuer="Clone Points", clock=utcnow):
        self.activity = activity
        self.lock_after = lock_after
        self.lock_minutes = lock_minutes
        self.session_hours = session_hours
        self.password_method = password_method
        self.totp_issuer = totp_issuer
        self.clock = clock

    # ------------- Helpers -------------
    def hash_password(self, password):
        return generate_password_hash(password, method=self.password_method)

    def find_admin(self, username):
        return db.session.execute(select(Admin).where(Admin.username == username)).scalar_one_or_none()

    def is_locked(self, admin):
        return bool(admin.locked_until and self.clock() < admin.locked_until)

    def _record_failed_login(self, admin):
        # increment in the database so concurrent failures are all counted
        db.session.execute(
            update(Admin)
            .where(Admin.id == admin.id)
            .values(failed_attempts=Admin.failed_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(admin, ["failed_attempts"])
        if admin.failed_attempts >= self.lock_after:
            admin.locked_until = self.clock() + dt.timedelta(minutes=self.lock_minutes)
            # a lock also ends every open session of this admin
            self.revoke_sessions(admin)
            logger.warning("Admin %s locked until %s after %d failed logins",
                           admin.username, admin.locked_until, admin.failed_attempts)

    def _reset_failed_login(self, admin):
        admin.failed_attempts = 0
        admin.locked_until = None

    @staticmethod
    def verify_totp(admin, code):
        if not admin.two_factor_secret:
            return False
        return pyotp.TOTP(admin.two_factor_secret).verify((code or "").strip(), valid_window=1)

    # ------------- Login / sessions -------------
    def authenticate(self, username, password, otp_code=None, ip_address=None, previous_token=None):
        """Checks credentials and opens a session.

        ``previous_token`` is the session the caller is replacing, if any; it is
        revoked once the new session is opened.
        """
        admin = self.find_admin(username)
        if not admin:
            return AuthResult.failure(InvalidCredentials())

        if self.is_locked(admin):
            return AuthResult.failure(AccountLocked())

        if not check_password_hash(admin.password, password):
            self._record_failed_login(admin)
            db.session.commit()
            return AuthResult.failure(InvalidCredentials())

        if admin.two_factor_enabled and admin.two_factor_secret:
            if not otp_code:
                return AuthResult.second_factor_required()
            if not self.verify_totp(admin, otp_code):
                return AuthResult.failure(InvalidSecondFactor())

        # ok
        self._reset_failed_login(admin)
        admin.last_login = self.clock()
        if previous_token:
            db.session.execute(delete(AdminSession).where(AdminSession.id == previous_token))
        self.purge_expired_sessions()
        session = self._open_session(admin, ip_address)
        db.session.commit()

        self.activity.record(admin.id, "login", ip_address, f"Admin {admin.username} logged in")
        return AuthResult.success(admin, session)

    def _open_session(self, admin, ip_address):
        now = self.clock()
        session = AdminSession(
            id=secrets.token_urlsafe(32),
            admin_id=admin.id,
            ip_address=ip_address,
            created_at=now,
            expires_at=now + dt.timedelta(hours=self.session_hours),
        )
        db.session.add(session)
        admin.session_token = session.id
        return session

    def load_session(self, token):
        if not token:
            return None
        session = db.session.get(AdminSession, token)
        if session is None:
            return None
        if session.expires_at <= self.clock():
            db.session.delete(session)
            db.session.commit()
            return None
        admin = session.admin
        if self.is_locked(admin):
            return None
        admin.session_token = session.id
        return admin

    def revoke_sessions(self, admin):
        """Deletes every session of ``admin``; the caller commits."""
        db.session.execute(delete(AdminSession).where(AdminSession.admin_id == admin.id))

    def purge_expired_sessions(self):
        """Deletes expired session rows; the caller commits. Returns how many were removed."""
        result = db.session.execute(delete(AdminSession).where(AdminSession.expires_at <= self.clock()))
        return result.rowcount

    def logout(self, admin, token, ip_address=None):
        if token:
            db.session.execute(delete(AdminSession).where(AdminSession.id == token))
            db.session.commit()
        if admin is not None:
            self.activity.record(admin.id, "logout", ip_address, f"Admin {admin.username} logged out")

    # ------------- Account management -------------
    def change_password(self, admin, current_password, new_password, ip_address=None):
        if not check_password_hash(admin.password, current_password or ""):
            raise InvalidCredentials("Current password is incorrect")
        admin.password = self.hash_password(new_password)
        admin.is_first_login = False
        db.session.commit()
        self.activity.record(admin.id, "password_change", ip_address, f"Admin {admin.username} changed password")

    def enroll_second_factor(self, admin, ip_address=None):
        # A fresh secret replaces any previous one
        admin.two_factor_secret = pyotp.random_base32()
        admin.two_factor_enabled = True
        db.session.commit()
        self.activity.record(admin.id, "2fa_enabled", ip_address, f"Admin {admin.username} enabled 2FA")

        otp_uri = pyotp.totp.TOTP(admin.two_factor_secret).provisioning_uri(
            name=admin.username, issuer_name=self.totp_issuer)

        # QR as data URI
        img = qrcode.make(otp_uri)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        data_uri = "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")

        return {"secret": admin.two_factor_secret, "otpauthUrl": otp_uri, "qrCode": data_uri}

    def bootstrap_admins(self, seed):
        """Creates every seeded admin that does not exist yet. Existing accounts are left untouched."""
        created = []
        for username, password in seed:
            if self.find_admin(username):
                continue
            db.session.add(Admin(username=username, password=self.hash_password(password), is_first_login=True))
            try:
                db.session.commit()
            except IntegrityError:
                # created concurrently by another process
                db.session.rollback()
                continue
            logger.info("Created admin account: %s", username)
            created.append(username)
        return created
