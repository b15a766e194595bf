from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional, Regexp

from .errors import ValidationError

# Solana addresses: base58, 32-44 characters
WALLET_ADDRESS_RE = r"^[1-9A-HJ-NP-Za-km-z]{32,44}$"


class ApiForm(FlaskForm):
    """JSON-fed form; the API relies on the SameSite session cookie instead of CSRF tokens."""

    class Meta:
        csrf = False

    def validated(self):
        """Validates the request body or raises ``ValidationError`` with the first message."""
        if not self.validate_on_submit():
            for field, messages in self.errors.items():
                raise ValidationError(f"{field}: {messages[0]}")
            raise ValidationError()
        return self


class LoginForm(ApiForm):
    username = StringField("Username", validators=[DataRequired(), Length(max=64)])
    password = PasswordField("Password", validators=[DataRequired()])
    totpCode = StringField("2FA code", validators=[Optional(), Length(max=16)])


class ChangePasswordForm(ApiForm):
    currentPassword = PasswordField("Current password", validators=[DataRequired()])
    newPassword = PasswordField("New password", validators=[DataRequired(), Length(min=8, max=128)])


class RegisterUserForm(ApiForm):
    walletAddress = StringField("Wallet address", validators=[DataRequired(), Regexp(WALLET_ADDRESS_RE, message="Invalid wallet address")])
    referredBy = StringField("Referral code", validators=[Optional(), Length(max=64)])
    telegramId = StringField("Telegram id", validators=[Optional(), Length(max=64)])


class StoreReferralForm(ApiForm):
    walletAddress = StringField("Wallet address", validators=[DataRequired(), Regexp(WALLET_ADDRESS_RE, message="Invalid wallet address")])
    referredBy = StringField("Referral code", validators=[DataRequired(), Length(max=64)])


class TransferBatchForm(ApiForm):
    recipients = TextAreaField("Recipients", validators=[DataRequired(), Length(max=100_000)])
