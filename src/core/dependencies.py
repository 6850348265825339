"""Dependências das rotas.

Cada colaborador externo é obtido por uma função de dependência do
FastAPI, o que permite substituí-lo nos testes via ``dependency_overrides``.
"""

from dataclasses import dataclass

from fastapi import Depends, Request

from src.config.settings import Settings, get_settings
from src.core.errors import AuthenticationError
from src.core.rate_limit import RateLimiter, get_rate_limiter
from src.core.security import TWO_FACTOR_STAGE, decode_token
from src.core.two_factor import TwoFactorController
from src.services.evolution import EvolutionAPIClient, get_evolution_client
from src.services.supabase import SupabaseService, get_supabase_service
from src.utils.logger import bind_request_context


@dataclass
class CurrentUser:
    """Usuário autenticado extraído do token de sessão.

    Attributes:
        id: ID do usuário.
        email: E-mail gravado no token.
        user_type: Tipo de conta (dono/usuario).
    """

    id: str
    email: str | None = None
    user_type: str | None = None


def get_repository() -> SupabaseService:
    return get_supabase_service()


def get_messenger() -> EvolutionAPIClient:
    return get_evolution_client()


def get_limiter() -> RateLimiter:
    return get_rate_limiter()


def get_two_factor_controller(
    settings: Settings = Depends(get_settings),
) -> TwoFactorController:
    return TwoFactorController(
        issuer=settings.totp_issuer,
        valid_window=settings.totp_valid_window,
        otp_length=settings.otp_length,
        otp_ttl_minutes=settings.otp_ttl_minutes,
        otp_max_attempts=settings.otp_max_attempts,
    )


def _extract_token(request: Request, cookie_name: str) -> str | None:
    token = request.cookies.get(cookie_name)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None


async def get_current_user(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Resolve o usuário da sessão (cookie ``auth`` ou header Bearer).

    Raises:
        AuthenticationError: Token ausente, inválido, expirado ou de 2ª etapa.
    """
    token = _extract_token(request, settings.auth_cookie_name)
    if not token:
        raise AuthenticationError("Não autenticado")

    payload = decode_token(token)
    if not payload or not payload.get("sub") or payload.get("stage") == TWO_FACTOR_STAGE:
        raise AuthenticationError("Token inválido ou expirado")

    user = CurrentUser(
        id=str(payload["sub"]),
        email=payload.get("email"),
        user_type=payload.get("user_type"),
    )
    bind_request_context(user_id=user.id)
    return user


def client_ip(request: Request) -> str:
    """Primeiro IP de ``X-Forwarded-For`` ou o IP da conexão."""
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return request.client.host if request.client else "unknown"
