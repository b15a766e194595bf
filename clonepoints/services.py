# /clonepoints/services.py
# Business logic for wallet registration, referral links and the points ledger.

import logging
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import db
from .errors import AlreadyExists, NotFound, StorageError
from .models import User, PointsLedger

logger = logging.getLogger(__name__)

REFERRAL_SOURCE = "referral"


class RegistrationService:
    """Registers wallets as users and credits referrers."""

    def __init__(self, referral_bonus=Decimal("100"), code_length=8):
        self.referral_bonus = Decimal(referral_bonus)
        self.code_length = code_length

    def derive_referral_code(self, wallet_address):
        return wallet_address[:self.code_length].upper()

    def _find_by(self, column, value):
        return db.session.execute(select(User).where(column == value)).scalar_one_or_none()

    def register_user(self, wallet_address, referred_by=None, telegram_id=None):
        if self._find_by(User.wallet_address, wallet_address):
            raise AlreadyExists("User already exists")

        # Resolved before the insert, so a wallet can never credit itself
        referrer = self._find_by(User.referral_code, referred_by) if referred_by else None

        user = User(
            wallet_address=wallet_address,
            telegram_id=telegram_id or None,
            referral_code=self.derive_referral_code(wallet_address),
            referred_by=referred_by or None,
        )
        db.session.add(user)
        if referrer is not None:
            db.session.add(PointsLedger(user_id=referrer.id, points=self.referral_bonus, source=REFERRAL_SOURCE))
        elif referred_by:
            logger.warning("Referral code %r used by %s does not match any user; no points credited",
                           referred_by, wallet_address)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise AlreadyExists("User already exists")
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("Could not register wallet %s", wallet_address)
            raise StorageError() from e

        logger.info("Registered wallet %s with referral code %s", wallet_address, user.referral_code)
        return user

    def store_referral_link(self, wallet_address, referred_by):
        self.register_user(wallet_address, referred_by=referred_by)

    def get_user_by_wallet(self, wallet_address):
        user = self._find_by(User.wallet_address, wallet_address)
        if user is None:
            raise NotFound("User not found")
        return user

    def list_users(self):
        stmt = select(User).order_by(User.created_at.asc(), User.id.asc())
        return db.session.execute(stmt).scalars().all()

    def points_balance(self, user):
        stmt = select(func.coalesce(func.sum(PointsLedger.points), 0)).where(PointsLedger.user_id == user.id)
        return Decimal(str(db.session.execute(stmt).scalar_one()))

    def ledger_entries(self, user):
        stmt = select(PointsLedger).where(PointsLedger.user_id == user.id).order_by(PointsLedger.id)
        return db.session.execute(stmt).scalars().all()
