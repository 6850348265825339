"""Contract Tests - Validate Pydantic schemas."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from src.contracts.appointment import (
    Appointment,
    AppointmentStatus,
    AvailableSlotsResponse,
    BusinessHours,
)
from src.contracts.auth import LoginRequest, LoginResponse
from src.contracts.two_factor import DisableRequest, WhatsAppStartRequest


class TestAppointmentContract:
    """Tests for Appointment schema."""

    def test_valid_row(self) -> None:
        """Test that a Supabase row parses, offset included."""
        appointment = Appointment(
            id="a1",
            company_id="c1",
            start_at="2025-03-10T14:00:00-03:00",
            duration_minutes=90,
            status="scheduled",
        )

        assert appointment.start_at.utcoffset().total_seconds() == -3 * 3600
        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.is_active

    @pytest.mark.parametrize(
        "status,active",
        [
            ("scheduled", True),
            ("confirmed", True),
            ("canceled", False),
            ("completed", False),
            ("no_show", False),
        ],
    )
    def test_active_statuses(self, status: str, active: bool) -> None:
        appointment = Appointment(
            id="a1",
            company_id="c1",
            start_at=datetime(2025, 3, 10, 14, 0),
            duration_minutes=30,
            status=status,
        )

        assert appointment.is_active is active

    def test_negative_duration_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Appointment(
                id="a1",
                company_id="c1",
                start_at=datetime(2025, 3, 10, 14, 0),
                duration_minutes=-30,
                status="scheduled",
            )

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Appointment(
                id="a1",
                company_id="c1",
                start_at=datetime(2025, 3, 10, 14, 0),
                duration_minutes=30,
                status="pending",
            )


class TestBusinessHoursContract:
    """Tests for BusinessHours schema."""

    def test_postgres_time_seconds_dropped(self) -> None:
        hours = BusinessHours(day_of_week=1, open_time="09:00:00", close_time="18:30:00")

        assert hours.open_time == "09:00"
        assert hours.open_minutes == 540
        assert hours.close_minutes == 1110

    def test_invalid_time_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BusinessHours(day_of_week=1, open_time="25:00", close_time="18:00")

    def test_day_of_week_range(self) -> None:
        with pytest.raises(ValidationError):
            BusinessHours(day_of_week=7, open_time="09:00", close_time="18:00")

    def test_break_window(self) -> None:
        hours = BusinessHours(
            day_of_week=2,
            open_time="09:00",
            close_time="18:00",
            break_start="12:00",
            break_end="13:00",
        )

        assert hours.break_window == (720, 780)

    def test_half_break_ignored(self) -> None:
        hours = BusinessHours(
            day_of_week=2, open_time="09:00", close_time="18:00", break_start="12:00"
        )

        assert hours.break_start is None
        assert hours.break_window is None

    def test_embedded_in_response(self) -> None:
        response = AvailableSlotsResponse(
            slots=["09:00"],
            businessHours=BusinessHours(day_of_week=1, open_time="09:00", close_time="10:00"),
        )

        dumped = response.model_dump()
        assert dumped["success"] is True
        assert dumped["businessHours"]["is_open"] is True


class TestAuthContracts:
    """Tests for login/2FA request bodies."""

    def test_login_accepts_senha(self) -> None:
        body = LoginRequest.model_validate({"email": "a@b.com", "senha": "x"})

        assert body.password == "x"

    def test_login_requires_at_sign(self) -> None:
        with pytest.raises(ValidationError):
            LoginRequest(email="ab.com", password="x")

    def test_login_requires_password(self) -> None:
        with pytest.raises(ValidationError):
            LoginRequest.model_validate({"email": "a@b.com", "password": ""})

    def test_disable_aliases(self) -> None:
        assert DisableRequest.model_validate({"senha": "s"}).password == "s"
        assert DisableRequest.model_validate({"password": "p"}).password == "p"
        assert DisableRequest.model_validate({}).password is None

    def test_whatsapp_phone_optional(self) -> None:
        assert WhatsAppStartRequest().phone is None

    def test_login_response_defaults(self) -> None:
        response = LoginResponse(twoFactorRequired=True, twoFactorToken="t", method="app")

        assert response.model_dump(exclude_none=True) == {
            "twoFactorRequired": True,
            "twoFactorToken": "t",
            "method": "app",
        }
