"""Serviço do Supabase - Operações de Banco de Dados."""

from datetime import date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo

from src.config.settings import get_settings
from src.contracts.appointment import ACTIVE_STATUSES, Appointment, BusinessHours
from src.utils.logger import get_logger
from supabase import Client, create_client

logger = get_logger(__name__)

APPOINTMENT_COLUMNS = "id, company_id, start_at, duration_minutes, status"


class SupabaseService:
    """Serviço encapsulado para operações no Supabase."""

    def __init__(self, client: Client | None = None) -> None:
        """Inicializa o serviço com um cliente Supabase.

        Args:
            client: Cliente Supabase opcional. Se não fornecido, cria um novo base nas settings.
        """
        if client:
            self.client = client
        else:
            self.client = self._create_client()

    def _create_client(self) -> Client:
        """Cria um novo cliente Supabase a partir das configurações."""
        settings = get_settings()

        # Service key ignora RLS; o backend filtra por empresa/usuário
        key = settings.supabase_service_key or settings.supabase_key

        if not key or not settings.supabase_url:
            logger.error("supabase_not_configured")
            raise ValueError("Credenciais do Supabase não configuradas")

        new_client = create_client(settings.supabase_url, key)

        logger.info(
            "supabase_client_created",
            using_service_key=key == settings.supabase_service_key,
        )
        return new_client

    # Agendamentos

    async def get_active_appointments(
        self,
        company_id: str,
        first_day: date,
        last_day: date,
        tz: ZoneInfo,
    ) -> list[Appointment]:
        """Busca agendamentos ativos de uma empresa num intervalo de datas.

        Args:
            company_id: ID da empresa.
            first_day: Primeiro dia (inclusivo).
            last_day: Último dia (inclusivo).
            tz: Fuso horário do negócio.

        Returns:
            Agendamentos com status agendado ou confirmado.
        """
        start = datetime.combine(first_day, time.min, tzinfo=tz)
        end = datetime.combine(last_day, time.max, tzinfo=tz)

        result = (
            self.client.table("appointments")
            .select(APPOINTMENT_COLUMNS)
            .eq("company_id", company_id)
            .gte("start_at", start.isoformat())
            .lte("start_at", end.isoformat())
            .in_("status", sorted(s.value for s in ACTIVE_STATUSES))
            .execute()
        )

        appointments = [Appointment.model_validate(row) for row in result.data or []]

        logger.info(
            "appointments_fetched_for_range",
            company_id=company_id,
            first_day=first_day.isoformat(),
            last_day=last_day.isoformat(),
            count=len(appointments),
        )
        return appointments

    async def get_business_hours(
        self, company_id: str, day_of_week: int
    ) -> BusinessHours | None:
        """Busca o horário de funcionamento da empresa para o dia da semana.

        Args:
            company_id: ID da empresa.
            day_of_week: 0 = domingo ... 6 = sábado.

        Returns:
            Horário configurado ou None se não houver cadastro.
        """
        result = (
            self.client.table("business_hours")
            .select("day_of_week, open_time, close_time, break_start, break_end, is_open")
            .eq("company_id", company_id)
            .eq("day_of_week", day_of_week)
            .limit(1)
            .execute()
        )

        if result and result.data:
            return BusinessHours.model_validate(result.data[0])
        return None

    # Usuários

    async def get_user_by_id(self, user_id: str) -> dict[str, Any] | None:
        """Busca usuário pelo ID.

        Args:
            user_id: UUID do usuário.

        Returns:
            Registro do usuário ou None.
        """
        result = (
            self.client.table("users").select("*").eq("id", user_id).limit(1).execute()
        )
        if result and result.data:
            return result.data[0]
        return None

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Busca usuário pelo e-mail já normalizado."""
        result = (
            self.client.table("users").select("*").eq("email", email).limit(1).execute()
        )
        if result and result.data:
            return result.data[0]
        return None

    async def update_user(self, user_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        """Atualiza colunas do usuário.

        Args:
            user_id: UUID do usuário.
            updates: Colunas e novos valores.

        Returns:
            Registro atualizado.
        """
        result = self.client.table("users").update(updates).eq("id", user_id).execute()

        logger.info(
            "user_updated",
            user_id=user_id,
            columns=sorted(updates),
        )
        if not result or not result.data:
            raise ValueError(f"Usuário {user_id} não atualizado")
        return result.data[0]


_supabase_service: SupabaseService | None = None


def get_supabase_service() -> SupabaseService:
    """Retorna ou cria instância global do serviço."""
    global _supabase_service
    if _supabase_service is None:
        _supabase_service = SupabaseService()
    return _supabase_service
