"""Two-Factor Handlers - TOTP enrollment and WhatsApp codes."""

from typing import Any

import httpx
from fastapi import APIRouter, Depends

from src.config.settings import Settings, get_settings
from src.contracts.two_factor import (
    CodeRequest,
    DisableRequest,
    MessageResponse,
    TwoFactorStatus,
    WhatsAppStartRequest,
)
from src.core.dependencies import (
    CurrentUser,
    get_current_user,
    get_limiter,
    get_messenger,
    get_repository,
    get_two_factor_controller,
)
from src.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    AppError,
    NotFoundError,
    RateLimitError,
    UpstreamError,
    ValidationError,
)
from src.core.rate_limit import RateLimiter
from src.core.two_factor import (
    InvalidCodeError,
    SetupResult,
    TwoFactorController,
    TwoFactorCredential,
)
from src.services.evolution import EvolutionAPIClient, mask_phone, normalize_phone
from src.services.observability import get_tracer, traced_span
from src.services.supabase import SupabaseService
from src.utils.logger import get_logger

router = APIRouter(prefix="/api/2fa", tags=["2fa"])
logger = get_logger(__name__)
tracer = get_tracer(__name__)


async def _load_user(repository: SupabaseService, user_id: str) -> dict[str, Any]:
    """Busca o usuário ou responde 404."""
    try:
        user = await repository.get_user_by_id(user_id)
    except Exception as e:
        logger.error("user_lookup_failed", user_id=user_id, error=str(e))
        raise AppError(INTERNAL_ERROR_MESSAGE) from e
    if not user:
        raise NotFoundError("Usuário não encontrado")
    return user


async def _persist(
    repository: SupabaseService, user_id: str, updates: dict[str, Any]
) -> None:
    try:
        await repository.update_user(user_id, updates)
    except Exception as e:
        logger.error(
            "two_factor_persist_failed",
            user_id=user_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise AppError(INTERNAL_ERROR_MESSAGE) from e


def _require_code(body: CodeRequest) -> str:
    if not body.code or not body.code.strip():
        raise ValidationError("Código é obrigatório")
    return body.code


@router.get("/status", response_model=TwoFactorStatus)
async def two_factor_status(
    current_user: CurrentUser = Depends(get_current_user),
    repository: SupabaseService = Depends(get_repository),
) -> TwoFactorStatus:
    """Retorna se o 2FA está habilitado e por qual método."""
    user = await _load_user(repository, current_user.id)
    credential = TwoFactorCredential.from_user(user)
    return TwoFactorStatus(
        enabled=credential.enabled,
        method=credential.method.value if credential.method else None,
    )


@router.post("/setup", response_model=SetupResult)
async def setup_totp(
    current_user: CurrentUser = Depends(get_current_user),
    repository: SupabaseService = Depends(get_repository),
    controller: TwoFactorController = Depends(get_two_factor_controller),
) -> SetupResult:
    """Gera o segredo TOTP (ainda não confirmado) e o QR code de cadastro."""
    user = await _load_user(repository, current_user.id)
    credential = TwoFactorCredential.from_user(user)

    with traced_span(tracer, "two_factor_setup", user_id=current_user.id):
        result, updates = controller.begin_setup(
            credential, account=user.get("email") or current_user.id
        )
        await _persist(repository, current_user.id, updates)

    logger.info("two_factor_setup_started", user_id=current_user.id)
    return result


@router.post("/verify", response_model=MessageResponse)
async def verify_totp(
    body: CodeRequest,
    current_user: CurrentUser = Depends(get_current_user),
    repository: SupabaseService = Depends(get_repository),
    controller: TwoFactorController = Depends(get_two_factor_controller),
) -> MessageResponse:
    """Confirma o código do autenticador e habilita o 2FA."""
    code = _require_code(body)
    user = await _load_user(repository, current_user.id)
    credential = TwoFactorCredential.from_user(user)

    try:
        updates = controller.confirm_totp(credential, code)
    except InvalidCodeError:
        logger.info("two_factor_code_rejected", user_id=current_user.id, method="app")
        raise

    await _persist(repository, current_user.id, updates)
    logger.info("two_factor_enabled", user_id=current_user.id, method="app")
    return MessageResponse(message="2FA habilitado")


@router.post("/disable", response_model=MessageResponse)
async def disable_two_factor(
    body: DisableRequest,
    current_user: CurrentUser = Depends(get_current_user),
    repository: SupabaseService = Depends(get_repository),
    controller: TwoFactorController = Depends(get_two_factor_controller),
) -> MessageResponse:
    """Desabilita o 2FA mediante a senha atual."""
    if not body.password:
        raise ValidationError("Senha atual é obrigatória")

    user = await _load_user(repository, current_user.id)
    credential = TwoFactorCredential.from_user(user)

    updates = controller.disable(credential, body.password, user.get("password_hash"))
    await _persist(repository, current_user.id, updates)

    logger.info("two_factor_disabled", user_id=current_user.id)
    return MessageResponse(message="2FA desabilitado")


@router.post("/whatsapp/start", response_model=MessageResponse)
async def start_whatsapp(
    body: WhatsAppStartRequest,
    current_user: CurrentUser = Depends(get_current_user),
    repository: SupabaseService = Depends(get_repository),
    messenger: EvolutionAPIClient = Depends(get_messenger),
    limiter: RateLimiter = Depends(get_limiter),
    controller: TwoFactorController = Depends(get_two_factor_controller),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Gera um código, grava apenas o hash e o envia por WhatsApp."""
    phone = normalize_phone(body.phone)
    if not phone or len(phone) < 8:
        raise ValidationError("Telefone inválido. Use formato E.164, ex: +5511999999999")

    limit = await limiter.check(
        f"otp:{current_user.id}",
        settings.otp_send_limit,
        settings.otp_send_window_seconds,
    )
    if not limit.allowed:
        raise RateLimitError("Muitas solicitações de código. Aguarde e tente novamente.")

    user = await _load_user(repository, current_user.id)
    credential = TwoFactorCredential.from_user(user)

    with traced_span(tracer, "whatsapp_otp_start", user_id=current_user.id):
        code, updates = controller.start_whatsapp(credential, phone)
        await _persist(repository, current_user.id, updates)

        try:
            await messenger.send_code(phone, code, controller.otp_ttl_minutes)
        except httpx.HTTPError as e:
            logger.error(
                "whatsapp_otp_delivery_failed",
                user_id=current_user.id,
                phone=mask_phone(phone),
                error=str(e),
            )
            raise UpstreamError("Falha ao enviar mensagem no WhatsApp.") from e

    logger.info(
        "whatsapp_otp_issued",
        user_id=current_user.id,
        phone=mask_phone(phone),
        expires_at=updates["whatsapp_otp_expires_at"],
    )
    return MessageResponse(message="Código enviado por WhatsApp")


@router.post("/whatsapp/verify", response_model=MessageResponse)
async def verify_whatsapp(
    body: CodeRequest,
    current_user: CurrentUser = Depends(get_current_user),
    repository: SupabaseService = Depends(get_repository),
    controller: TwoFactorController = Depends(get_two_factor_controller),
) -> MessageResponse:
    """Confere o código recebido por WhatsApp e habilita o 2FA."""
    code = _require_code(body)
    user = await _load_user(repository, current_user.id)
    credential = TwoFactorCredential.from_user(user)

    try:
        updates = controller.confirm_whatsapp(credential, code)
    except InvalidCodeError:
        await _persist(repository, current_user.id, controller.failed_attempt(credential))
        logger.info(
            "two_factor_code_rejected",
            user_id=current_user.id,
            method="whatsapp",
            attempts=credential.otp_attempts + 1,
        )
        raise

    await _persist(repository, current_user.id, updates)
    logger.info("two_factor_enabled", user_id=current_user.id, method="whatsapp")
    return MessageResponse(message="2FA por WhatsApp habilitado")
