"""Contracts package - Pydantic schemas for data validation."""

from src.contracts.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    AvailableSlotsResponse,
    BusinessHours,
    OccupiedSlotsResponse,
)
from src.contracts.auth import AuthUser, LoginRequest, LoginResponse, LoginVerifyRequest
from src.contracts.two_factor import (
    CodeRequest,
    DisableRequest,
    MessageResponse,
    TwoFactorStatus,
    WhatsAppStartRequest,
)

__all__ = [
    "ACTIVE_STATUSES",
    "Appointment",
    "AppointmentStatus",
    "AvailableSlotsResponse",
    "BusinessHours",
    "OccupiedSlotsResponse",
    "AuthUser",
    "LoginRequest",
    "LoginResponse",
    "LoginVerifyRequest",
    "CodeRequest",
    "DisableRequest",
    "MessageResponse",
    "TwoFactorStatus",
    "WhatsAppStartRequest",
]
