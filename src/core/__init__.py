"""Core package - Scheduling arithmetic, one-time codes and 2FA."""

from src.core.otp import issue_code, verify_code
from src.core.rate_limit import RateLimiter
from src.core.slots import aggregate_occupied_slots, compute_available_slots
from src.core.two_factor import TwoFactorController, TwoFactorState

__all__ = [
    "issue_code",
    "verify_code",
    "RateLimiter",
    "aggregate_occupied_slots",
    "compute_available_slots",
    "TwoFactorController",
    "TwoFactorState",
]
