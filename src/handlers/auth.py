"""Auth Handlers - login with optional second factor."""

from typing import Any

import httpx
from fastapi import APIRouter, Depends, Request, Response

from src.config.settings import Settings, get_settings
from src.contracts.auth import AuthUser, LoginRequest, LoginResponse, LoginVerifyRequest
from src.contracts.two_factor import MessageResponse
from src.core.dependencies import (
    client_ip,
    get_limiter,
    get_messenger,
    get_repository,
    get_two_factor_controller,
)
from src.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    AppError,
    AuthenticationError,
    RateLimitError,
    UpstreamError,
)
from src.core.rate_limit import RateLimiter
from src.core.security import (
    TWO_FACTOR_STAGE,
    create_session_token,
    create_two_factor_token,
    decode_token,
    normalize_email,
    verify_secret,
)
from src.core.two_factor import (
    InvalidCodeError,
    TwoFactorController,
    TwoFactorCredential,
    TwoFactorMethod,
)
from src.services.evolution import EvolutionAPIClient, mask_phone
from src.services.supabase import SupabaseService
from src.utils.logger import get_logger

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = get_logger(__name__)

INVALID_CREDENTIALS = "Credenciais inválidas"


def _open_session(
    response: Response, user: dict[str, Any], settings: Settings
) -> LoginResponse:
    """Set the session cookie and build the login payload."""
    token = create_session_token(user)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
        max_age=settings.session_days * 24 * 60 * 60,
    )
    return LoginResponse(
        message="Autenticado",
        user=AuthUser(
            id=str(user["id"]),
            email=user.get("email"),
            user_type=user.get("user_type"),
        ),
    )


@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    repository: SupabaseService = Depends(get_repository),
    messenger: EvolutionAPIClient = Depends(get_messenger),
    limiter: RateLimiter = Depends(get_limiter),
    controller: TwoFactorController = Depends(get_two_factor_controller),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    """Valida e-mail e senha; com 2FA ativo devolve um token de segunda etapa."""
    email = normalize_email(body.email)
    ip = client_ip(request)

    limit = await limiter.check(
        f"login:{ip}:{email}",
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
    )
    if not limit.allowed:
        raise RateLimitError("Muitas tentativas. Aguarde um pouco e tente de novo.")

    try:
        user = await repository.get_user_by_email(email)
    except Exception as e:
        logger.error("login_lookup_failed", error=str(e), error_type=type(e).__name__)
        raise AppError(INTERNAL_ERROR_MESSAGE) from e

    if not user or not verify_secret(body.password, user.get("password_hash")):
        logger.info("login_failed", ip=ip)
        raise AuthenticationError(INVALID_CREDENTIALS)

    user_id = str(user["id"])
    credential = TwoFactorCredential.from_user(user)

    if credential.enabled:
        token = create_two_factor_token(user_id)

        if credential.method == TwoFactorMethod.WHATSAPP:
            code, updates = controller.issue_login_code(credential)
            try:
                await repository.update_user(user_id, updates)
            except Exception as e:
                logger.error("login_code_persist_failed", user_id=user_id, error=str(e))
                raise AppError(INTERNAL_ERROR_MESSAGE) from e

            phone = credential.whatsapp_phone or ""
            try:
                await messenger.send_code(phone, code, controller.otp_ttl_minutes)
            except httpx.HTTPError as e:
                logger.error(
                    "login_code_delivery_failed",
                    user_id=user_id,
                    phone=mask_phone(phone),
                    error=str(e),
                )
                raise UpstreamError("Falha ao enviar código por WhatsApp.") from e

        method = (credential.method or TwoFactorMethod.APP).value
        logger.info("login_second_factor_required", user_id=user_id, method=method)
        return LoginResponse(twoFactorRequired=True, twoFactorToken=token, method=method)

    logger.info("login_succeeded", user_id=user_id)
    return _open_session(response, user, settings)


@router.post(
    "/login/verify-2fa", response_model=LoginResponse, response_model_exclude_none=True
)
async def verify_login_second_factor(
    body: LoginVerifyRequest,
    response: Response,
    repository: SupabaseService = Depends(get_repository),
    controller: TwoFactorController = Depends(get_two_factor_controller),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    """Troca token de segunda etapa + código por uma sessão."""
    payload = decode_token(body.twoFactorToken)
    if not payload or payload.get("stage") != TWO_FACTOR_STAGE or not payload.get("sub"):
        raise AuthenticationError("Token inválido ou expirado")

    user_id = str(payload["sub"])
    try:
        user = await repository.get_user_by_id(user_id)
    except Exception as e:
        logger.error("login_lookup_failed", user_id=user_id, error=str(e))
        raise AppError(INTERNAL_ERROR_MESSAGE) from e
    if not user:
        raise AuthenticationError("Token inválido ou expirado")

    credential = TwoFactorCredential.from_user(user)

    try:
        updates = controller.verify_login(credential, body.code)
    except InvalidCodeError:
        if credential.method == TwoFactorMethod.WHATSAPP:
            await repository.update_user(user_id, controller.failed_attempt(credential))
        logger.info("login_second_factor_rejected", user_id=user_id)
        raise

    if updates:
        await repository.update_user(user_id, updates)

    logger.info("login_succeeded", user_id=user_id, second_factor=True)
    return _open_session(response, user, settings)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Remove o cookie de sessão."""
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return MessageResponse(message="Sessão encerrada")
