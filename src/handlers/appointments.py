"""Appointment Handlers - occupied and available calendar slots."""

from datetime import date
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query

from src.config.settings import Settings, get_settings
from src.contracts.appointment import (
    AvailableSlotsResponse,
    BusinessHours,
    OccupiedSlotsResponse,
)
from src.core.dependencies import get_repository
from src.core.errors import INTERNAL_ERROR_MESSAGE, AppError, ValidationError
from src.core.slots import (
    aggregate_occupied_slots,
    compute_available_slots,
    lookback_start,
    month_date_range,
    weekday_sunday_first,
)
from src.services.observability import get_tracer, traced_span
from src.services.supabase import SupabaseService
from src.utils.logger import get_logger

router = APIRouter(prefix="/api/agendamentos", tags=["agendamentos"])
logger = get_logger(__name__)
tracer = get_tracer(__name__)


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


@router.get("/ocupados", response_model=OccupiedSlotsResponse)
async def occupied_slots(
    companyId: str | None = None,
    year: str | None = None,
    month: str | None = None,
    empresaId: str | None = None,
    ano: str | None = None,
    mes: str | None = None,
    repository: SupabaseService = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> OccupiedSlotsResponse:
    """Horários ocupados de uma empresa no mês, agrupados por data.

    Aceita ``companyId/year/month`` ou os nomes ``empresaId/ano/mes``.

    Returns:
        ``{success, slotsByDate: {"YYYY-MM-DD": ["HH:MM", ...]}}``.
    """
    company_id = companyId or empresaId
    raw_year = year or ano
    raw_month = month or mes

    if not company_id or not raw_year or not raw_month:
        raise ValidationError("Parâmetros obrigatórios: companyId, year, month")

    parsed_year = _parse_int(raw_year)
    parsed_month = _parse_int(raw_month)
    if parsed_year is None or parsed_month is None:
        raise ValidationError("Parâmetros year e month devem ser numéricos")

    try:
        first_day, last_day = month_date_range(parsed_year, parsed_month)
    except ValueError as e:
        raise ValidationError(f"Período inválido: {e}") from e

    with traced_span(
        tracer,
        "occupied_slots",
        company_id=company_id,
        period=f"{parsed_year:04d}-{parsed_month:02d}",
    ) as span:
        try:
            tz = ZoneInfo(settings.business_timezone)
            appointments = await repository.get_active_appointments(
                company_id, lookback_start(first_day), last_day, tz
            )
            slots_by_date = aggregate_occupied_slots(
                appointments, tz, settings.slot_minutes, first_day, last_day
            )
        except Exception as e:
            logger.error(
                "occupied_slots_failed",
                company_id=company_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise AppError(INTERNAL_ERROR_MESSAGE) from e

        span.set_attribute("dates", len(slots_by_date))

    logger.info(
        "occupied_slots_computed",
        company_id=company_id,
        year=parsed_year,
        month=parsed_month,
        appointments=len(appointments),
    )
    return OccupiedSlotsResponse(slotsByDate=slots_by_date)


@router.get("/horarios-disponiveis", response_model=AvailableSlotsResponse)
async def available_slots(
    companyId: str | None = None,
    date_: str | None = Query(None, alias="date"),
    duration: str | None = None,
    empresaId: str | None = None,
    data: str | None = None,
    duracao: str | None = None,
    repository: SupabaseService = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> AvailableSlotsResponse:
    """Horários livres em um dia para um serviço de ``duration`` minutos.

    Aceita ``companyId/date/duration`` ou ``empresaId/data/duracao``.
    """
    company_id = companyId or empresaId
    raw_date = date_ or data
    duration_minutes = _parse_int(duration or duracao)

    if not company_id or not raw_date or duration_minutes is None:
        raise ValidationError("Parâmetros obrigatórios: companyId, date, duration")
    if duration_minutes <= 0:
        raise ValidationError("Duração deve ser maior que zero")

    try:
        day = date.fromisoformat(raw_date.strip())
    except ValueError as e:
        raise ValidationError("Data deve estar no formato YYYY-MM-DD") from e

    with traced_span(
        tracer,
        "available_slots",
        company_id=company_id,
        date=day.isoformat(),
        duration_minutes=duration_minutes,
    ) as span:
        try:
            tz = ZoneInfo(settings.business_timezone)
            weekday = weekday_sunday_first(day)
            hours = await repository.get_business_hours(company_id, weekday)
            if hours is None:
                logger.info(
                    "business_hours_default",
                    company_id=company_id,
                    day_of_week=weekday,
                )
                hours = BusinessHours(
                    day_of_week=weekday,
                    open_time=settings.default_open_time,
                    close_time=settings.default_close_time,
                )

            if not hours.is_open:
                return AvailableSlotsResponse(
                    slots=[],
                    businessHours=hours,
                    message="Estabelecimento fechado neste dia",
                )

            appointments = await repository.get_active_appointments(
                company_id, lookback_start(day), day, tz
            )
            slots = compute_available_slots(
                day, duration_minutes, hours, appointments, tz, settings.slot_minutes
            )
        except Exception as e:
            logger.error(
                "available_slots_failed",
                company_id=company_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise AppError(INTERNAL_ERROR_MESSAGE) from e

        span.set_attribute("slots", len(slots))

    return AvailableSlotsResponse(slots=slots, businessHours=hours)
