"""Two-Factor Authentication - state machine for TOTP and WhatsApp codes.

The controller never touches storage: each transition validates the
current credential and returns the column updates the caller persists.
"""

import base64
import io
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import pyotp
import qrcode
from pydantic import BaseModel, Field

from src.core.errors import (
    AuthenticationError,
    ConflictError,
    RateLimitError,
    ValidationError,
)
from src.core.otp import PendingCode, clean_code, start_code, verify_code
from src.core.security import verify_secret
from src.utils.logger import get_logger

logger = get_logger(__name__)

# 32 base32 characters = 160 bits of entropy
SECRET_LENGTH = 32


class TwoFactorMethod(str, Enum):
    """Segundo fator configurado para o usuário."""

    APP = "app"
    WHATSAPP = "whatsapp"


class TwoFactorState(str, Enum):
    """Estados do 2FA de um usuário."""

    UNINITIALIZED = "uninitialized"
    PENDING = "pending"
    ENABLED = "enabled"


class InvalidCodeError(AuthenticationError):
    """Submitted code did not match."""


class TwoFactorCredential(BaseModel):
    """2FA columns of a ``users`` row."""

    enabled: bool = False
    secret_base32: str | None = None
    confirmed_at: datetime | None = None
    method: TwoFactorMethod | None = None
    whatsapp_phone: str | None = None
    otp_hash: str | None = None
    otp_expires_at: datetime | None = None
    otp_attempts: int = Field(default=0, ge=0)

    @classmethod
    def from_user(cls, user: dict[str, Any]) -> "TwoFactorCredential":
        """Build the credential from a raw user row.

        A ``two_factor_method`` outside ``app``/``whatsapp`` is read as unset.
        """
        method = user.get("two_factor_method")
        if method is not None and method not in {m.value for m in TwoFactorMethod}:
            logger.warning(
                "two_factor_method_unknown", user_id=user.get("id"), method=method
            )
            method = None

        return cls(
            enabled=bool(user.get("two_factor_enabled")),
            secret_base32=user.get("two_factor_secret"),
            confirmed_at=user.get("two_factor_confirmed_at"),
            method=method,
            whatsapp_phone=user.get("whatsapp_phone_e164"),
            otp_hash=user.get("whatsapp_otp_hash"),
            otp_expires_at=user.get("whatsapp_otp_expires_at"),
            otp_attempts=user.get("whatsapp_otp_attempts") or 0,
        )

    @property
    def state(self) -> TwoFactorState:
        if self.enabled:
            return TwoFactorState.ENABLED
        if self.secret_base32 or self.otp_hash:
            return TwoFactorState.PENDING
        return TwoFactorState.UNINITIALIZED

    @property
    def pending_code(self) -> PendingCode | None:
        if not self.otp_hash or not self.otp_expires_at:
            return None
        expires_at = self.otp_expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return PendingCode(
            code_hash=self.otp_hash,
            expires_at=expires_at,
            attempts=self.otp_attempts,
        )


class SetupResult(BaseModel):
    """Payload returned when TOTP enrollment starts."""

    provisioningUri: str
    qrImageDataUrl: str
    secret: str


def generate_secret() -> str:
    return pyotp.random_base32(length=SECRET_LENGTH)


def provisioning_uri(secret: str, account: str, issuer: str) -> str:
    """``otpauth://totp/...`` URI for authenticator-app enrollment."""
    return pyotp.TOTP(secret).provisioning_uri(name=account, issuer_name=issuer)


def render_qr_data_url(data: str) -> str:
    """Render ``data`` as a PNG QR code embedded in a data URL."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{encoded}"


def verify_totp(secret: str, code: str, valid_window: int = 1) -> bool:
    """Check a time-based code, tolerating ``valid_window`` steps of drift."""
    token = clean_code(code)
    if not token.isdigit():
        return False
    return pyotp.TOTP(secret).verify(token, valid_window=valid_window)


def _clear_pending_code() -> dict[str, Any]:
    return {
        "whatsapp_otp_hash": None,
        "whatsapp_otp_expires_at": None,
        "whatsapp_otp_attempts": 0,
    }


class TwoFactorController:
    """Transitions ``uninitialized -> pending -> enabled`` and back.

    Every method raises an ``AppError`` subclass on rejection and returns
    the ``users`` columns to update on success.
    """

    def __init__(
        self,
        issuer: str = "Booky",
        valid_window: int = 1,
        otp_length: int = 6,
        otp_ttl_minutes: int = 10,
        otp_max_attempts: int = 5,
    ) -> None:
        self.issuer = issuer
        self.valid_window = valid_window
        self.otp_length = otp_length
        self.otp_ttl_minutes = otp_ttl_minutes
        self.otp_max_attempts = otp_max_attempts

    # TOTP

    def begin_setup(
        self, credential: TwoFactorCredential, account: str
    ) -> tuple[SetupResult, dict[str, Any]]:
        """Generate an unconfirmed secret and its enrollment payload."""
        if credential.enabled:
            raise ConflictError("2FA já está habilitado")

        secret = generate_secret()
        uri = provisioning_uri(secret, account, self.issuer)
        result = SetupResult(
            provisioningUri=uri,
            qrImageDataUrl=render_qr_data_url(uri),
            secret=secret,
        )
        return result, {"two_factor_secret": secret}

    def confirm_totp(
        self,
        credential: TwoFactorCredential,
        code: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Enable 2FA once the authenticator produces a matching code."""
        if not credential.secret_base32:
            raise ValidationError("2FA não iniciado")
        if not verify_totp(credential.secret_base32, code, self.valid_window):
            raise InvalidCodeError("Código inválido")

        return {
            "two_factor_enabled": True,
            "two_factor_confirmed_at": (now or datetime.now(timezone.utc)).isoformat(),
            "two_factor_method": TwoFactorMethod.APP.value,
        }

    # WhatsApp

    def start_whatsapp(
        self,
        credential: TwoFactorCredential,
        phone: str,
        now: datetime | None = None,
    ) -> tuple[str, dict[str, Any]]:
        """Issue a WhatsApp code, replacing any code still pending.

        Returns:
            Tuple of (plaintext code to send, columns to update).
        """
        if credential.enabled and credential.method == TwoFactorMethod.WHATSAPP:
            raise ConflictError("2FA por WhatsApp já está habilitado")

        code, pending = start_code(self.otp_length, self.otp_ttl_minutes, now)
        updates = {
            "whatsapp_phone_e164": phone,
            "whatsapp_otp_hash": pending.code_hash,
            "whatsapp_otp_expires_at": pending.expires_at.isoformat(),
            "whatsapp_otp_attempts": 0,
        }
        if not credential.enabled:
            updates["two_factor_method"] = None
        return code, updates

    def check_pending_code(
        self,
        credential: TwoFactorCredential,
        code: str,
        now: datetime | None = None,
    ) -> None:
        """Validate ``code`` against the pending WhatsApp code.

        Raises:
            ValidationError: Nothing pending.
            AuthenticationError: Code expired.
            RateLimitError: Too many wrong attempts.
            InvalidCodeError: Code mismatch (caller records the attempt).
        """
        pending = credential.pending_code
        if pending is None:
            raise ValidationError("2FA por WhatsApp não iniciado")
        if pending.is_expired(now):
            raise AuthenticationError("Código expirado")
        if pending.attempts_exhausted(self.otp_max_attempts):
            raise RateLimitError("Muitas tentativas. Recomece o processo.")
        if not verify_code(code, pending.code_hash):
            raise InvalidCodeError("Código inválido")

    def confirm_whatsapp(
        self,
        credential: TwoFactorCredential,
        code: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Enable WhatsApp 2FA after the delivered code is echoed back."""
        if credential.method == TwoFactorMethod.APP and credential.enabled:
            raise ValidationError("Método 2FA configurado é TOTP")

        self.check_pending_code(credential, code, now)
        return {
            "two_factor_enabled": True,
            "two_factor_confirmed_at": (now or datetime.now(timezone.utc)).isoformat(),
            "two_factor_method": TwoFactorMethod.WHATSAPP.value,
            **_clear_pending_code(),
        }

    def failed_attempt(self, credential: TwoFactorCredential) -> dict[str, Any]:
        """Columns recording one more wrong WhatsApp code."""
        return {"whatsapp_otp_attempts": credential.otp_attempts + 1}

    # Login second step

    def issue_login_code(
        self,
        credential: TwoFactorCredential,
        now: datetime | None = None,
    ) -> tuple[str, dict[str, Any]]:
        """Fresh WhatsApp code for the second login step."""
        if not credential.whatsapp_phone:
            raise ValidationError("Telefone não cadastrado para 2FA por WhatsApp")

        code, pending = start_code(self.otp_length, self.otp_ttl_minutes, now)
        return code, {
            "whatsapp_otp_hash": pending.code_hash,
            "whatsapp_otp_expires_at": pending.expires_at.isoformat(),
            "whatsapp_otp_attempts": 0,
        }

    def verify_login(
        self,
        credential: TwoFactorCredential,
        code: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Second factor during login; returns columns to update on success."""
        if not credential.enabled:
            raise ValidationError("2FA não habilitado")

        if credential.method == TwoFactorMethod.WHATSAPP:
            self.check_pending_code(credential, code, now)
            return _clear_pending_code()

        if not credential.secret_base32:
            raise ValidationError("2FA não habilitado")
        if not verify_totp(credential.secret_base32, code, self.valid_window):
            raise InvalidCodeError("Código inválido")
        return {}

    # Disable

    def disable(
        self,
        credential: TwoFactorCredential,
        password: str,
        password_hash: str | None,
    ) -> dict[str, Any]:
        """Turn 2FA off after the account password is proven again."""
        if not verify_secret(password, password_hash):
            raise AuthenticationError("Senha incorreta")

        logger.info("two_factor_disable_approved", previous_state=credential.state.value)
        return {
            "two_factor_enabled": False,
            "two_factor_secret": None,
            "two_factor_confirmed_at": None,
            "two_factor_method": None,
            **_clear_pending_code(),
        }
