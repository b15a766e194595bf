# /clonepoints/users/routes.py
# Public wallet registration endpoints and the admin user list.

from flask import jsonify, request
from flask_login import login_required

from . import users
from ..errors import ValidationError
from ..forms import RegisterUserForm, StoreReferralForm
from ..utils import registration_service


def _optional(value):
    value = (value or '').strip()
    return value or None


@users.route('/users/register', methods=['POST'])
def register():
    form = RegisterUserForm().validated()
    user = registration_service().register_user(
        form.walletAddress.data.strip(),
        referred_by=_optional(form.referredBy.data),
        telegram_id=_optional(form.telegramId.data),
    )
    return jsonify(user.to_dict()), 201


@users.route('/users/me')
def me():
    wallet = (request.args.get('wallet') or '').strip()
    if not wallet:
        raise ValidationError("Wallet address required")
    service = registration_service()
    user = service.get_user_by_wallet(wallet)
    data = user.to_dict()
    data['points'] = str(service.points_balance(user))
    return jsonify(data)


@users.route('/users')
@login_required
def list_users():
    return jsonify([u.to_dict() for u in registration_service().list_users()])


@users.route('/store-referral', methods=['POST'])
def store_referral():
    form = StoreReferralForm().validated()
    registration_service().store_referral_link(form.walletAddress.data.strip(), form.referredBy.data.strip())
    return jsonify(success=True), 201
