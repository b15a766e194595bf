# /clonepoints/auth/routes.py
from flask import jsonify, current_app, session as flask_session
from flask_login import login_user, logout_user, login_required, current_user

from . import auth
from .. import limiter
from ..errors import InvalidCredentials, SecondFactorRequired
from ..forms import LoginForm, ChangePasswordForm
from ..utils import auth_service, activity_log, client_ip


def _login_rate_limit():
    return current_app.config["LOGIN_RATE_LIMIT"]


# ----- Login / logout -----
@auth.route('/login', methods=['POST'])
@limiter.limit(_login_rate_limit)
def login():
    form = LoginForm().validated()
    result = auth_service().authenticate(
        form.username.data.strip(),
        form.password.data,
        otp_code=(form.totpCode.data or '').strip() or None,
        ip_address=client_ip(),
        previous_token=current_user.get_id() if current_user.is_authenticated else None,
    )

    if isinstance(result.error, SecondFactorRequired):
        return jsonify(requires2FA=True), 401
    if not result.ok:
        raise result.error

    flask_session.permanent = True
    login_user(result.admin, remember=False)
    return jsonify(result.admin.to_dict())


@auth.route('/logout', methods=['POST'])
def logout():
    admin = current_user._get_current_object() if current_user.is_authenticated else None
    token = admin.get_id() if admin else None
    logout_user()
    auth_service().logout(admin, token, ip_address=client_ip())
    return '', 200


@auth.route('/admin')
@login_required
def admin_profile():
    return jsonify(current_user.to_dict())


# ----- Account -----
@auth.route('/change-password', methods=['POST'])
@login_required
def change_password():
    form = ChangePasswordForm().validated()
    try:
        auth_service().change_password(
            current_user._get_current_object(),
            form.currentPassword.data,
            form.newPassword.data,
            ip_address=client_ip(),
        )
    except InvalidCredentials as err:
        return jsonify(message=err.message), 400
    return '', 200


# ----- 2FA (TOTP) -----
@auth.route('/setup-2fa', methods=['POST'])
@login_required
def setup_2fa():
    return jsonify(auth_service().enroll_second_factor(current_user._get_current_object(), ip_address=client_ip()))


# ----- Audit trail -----
@auth.route('/activity')
@login_required
def activity():
    return jsonify([entry.to_dict() for entry in activity_log().recent()])
