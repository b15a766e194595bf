# /clonepoints/__init__.py
# Application factory: configuration, extensions, blueprints and the admin bootstrap.

import os
import time
import logging
import datetime as dt
from decimal import Decimal
from flask import Flask, request, g, jsonify, current_app
from dotenv import load_dotenv
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager, current_user
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Load environment variables from .env
load_dotenv()

db = SQLAlchemy()
login_manager = LoginManager()
limiter = Limiter(get_remote_address, default_limits=[])

logger = logging.getLogger(__name__)


def parse_seed_admins(raw):
    """Parses ``user:password,user:password`` into a list of pairs."""
    if not raw:
        return []
    if not isinstance(raw, str):
        return [tuple(pair) for pair in raw]
    seed = []
    for item in raw.split(','):
        item = item.strip()
        if not item:
            continue
        username, sep, password = item.partition(':')
        if not sep or not username or not password:
            raise ValueError(f"Invalid SEED_ADMINS entry: {item!r}")
        seed.append((username.strip(), password))
    return seed


def _configure(app, test_config):
    test_config = test_config or {}
    app_env = test_config.get("APP_ENV", os.environ.get("APP_ENV", "development"))

    app.config.update(
        SECRET_KEY=os.environ.get("SECRET_KEY", "change-this-in-prod"),
        APP_ENV=app_env,

        # Session cookie: 24h, not refreshed on every request
        SESSION_HOURS=int(os.environ.get("SESSION_HOURS", "24")),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=app_env == "production",
        SESSION_REFRESH_EACH_REQUEST=False,

        # Authentication policy
        PASSWORD_HASH_METHOD=os.environ.get("PASSWORD_HASH_METHOD", "pbkdf2:sha256:600000"),
        LOCKOUT_THRESHOLD=int(os.environ.get("LOCKOUT_THRESHOLD", "5")),
        LOCKOUT_MINUTES=int(os.environ.get("LOCKOUT_MINUTES", "30")),
        SECURITY_ISSUER=os.environ.get("SECURITY_ISSUER", "Clone Points"),
        SEED_ADMINS=os.environ.get("SEED_ADMINS", ""),

        # Referrals
        REFERRAL_BONUS_POINTS=os.environ.get("REFERRAL_BONUS_POINTS", "100"),
        REFERRAL_CODE_LENGTH=int(os.environ.get("REFERRAL_CODE_LENGTH", "8")),

        # Rate limiting
        LOGIN_RATE_LIMIT=os.environ.get("LOGIN_RATE_LIMIT", "10 per minute"),
        RATELIMIT_STORAGE_URI=os.environ.get("RATELIMIT_STORAGE_URI", "memory://"),

        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
    )
    app.config.update(test_config)

    app.config["PERMANENT_SESSION_LIFETIME"] = dt.timedelta(hours=app.config["SESSION_HOURS"])

    if "SQLALCHEMY_DATABASE_URI" not in app.config:
        uri = os.environ.get("DATABASE_URL")
        if not uri:
            # default to a local sqlite file inside the instance folder
            os.makedirs(app.instance_path, exist_ok=True)
            uri = "sqlite:///" + os.path.join(app.instance_path, "clonepoints.sqlite3")
        app.config["SQLALCHEMY_DATABASE_URI"] = uri
    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)


def _register_request_logging(app):
    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_api_request(response):
        if request.path.startswith("/api"):
            elapsed_ms = (time.perf_counter() - g.get("request_started", time.perf_counter())) * 1000
            line = f"{request.method} {request.path} {response.status_code} in {elapsed_ms:.0f}ms"
            if current_user.is_authenticated:
                line += f" [admin: {current_user.username}]"
            logger.info(line)
        return response


def create_app(test_config=None):
    """Creates and configures the Flask application."""
    app = Flask(__name__)
    _configure(app, test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    db.init_app(app)
    limiter.init_app(app)

    login_manager.init_app(app)

    from .activity import ActivityLog
    from .auth.service import AuthenticationService
    from .services import RegistrationService

    activity = ActivityLog()
    auth_service = AuthenticationService(
        activity=activity,
        lock_after=app.config["LOCKOUT_THRESHOLD"],
        lock_minutes=app.config["LOCKOUT_MINUTES"],
        session_hours=app.config["SESSION_HOURS"],
        password_method=app.config["PASSWORD_HASH_METHOD"],
        totp_issuer=app.config["SECURITY_ISSUER"],
    )
    app.extensions["activity_log"] = activity
    app.extensions["auth_service"] = auth_service
    app.extensions["registration_service"] = RegistrationService(
        referral_bonus=Decimal(str(app.config["REFERRAL_BONUS_POINTS"])),
        code_length=app.config["REFERRAL_CODE_LENGTH"],
    )

    @login_manager.user_loader
    def load_admin(session_token):
        return current_app.extensions["auth_service"].load_session(session_token)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify(message="Authentication required"), 401

    from .errors import register_error_handlers
    register_error_handlers(app)
    _register_request_logging(app)

    # Blueprints
    from .auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint)

    from .users import users as users_blueprint
    app.register_blueprint(users_blueprint)

    from .transfers import transfers as transfers_blueprint
    app.register_blueprint(transfers_blueprint)

    from .commands import register_commands
    register_commands(app)

    with app.app_context():
        db.create_all()
        seed = parse_seed_admins(app.config["SEED_ADMINS"])
        if not seed:
            logger.warning("SEED_ADMINS is empty; no administrator accounts were bootstrapped")
        auth_service.bootstrap_admins(seed)

    return app
