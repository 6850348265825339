"""Unit Tests - One-time codes."""

from datetime import datetime, timedelta, timezone

import pytest

from src.core.otp import (
    PendingCode,
    clean_code,
    hash_code,
    issue_code,
    start_code,
    verify_code,
)


class TestIssueCode:
    """Tests for numeric code generation."""

    def test_six_digits_never_loses_leading_digit(self) -> None:
        for _ in range(2000):
            code = issue_code(6)

            assert len(code) == 6
            assert code.isdigit()
            assert 100000 <= int(code) <= 999999

    @pytest.mark.parametrize("length", [1, 4, 8])
    def test_other_lengths(self, length: int) -> None:
        code = issue_code(length)

        assert len(code) == length
        assert int(code) >= 10 ** (length - 1)

    def test_spread_over_range(self) -> None:
        codes = [int(issue_code(6)) for _ in range(10000)]

        assert min(codes) >= 100000
        assert max(codes) <= 999999
        # Every leading digit 1..9 shows up in a uniform sample of this size
        assert {str(c)[0] for c in codes} == set("123456789")

    def test_invalid_length(self) -> None:
        with pytest.raises(ValueError):
            issue_code(0)


class TestHashAndVerify:
    """Tests for the one-way hash comparison."""

    @pytest.fixture(scope="class")
    def stored(self) -> tuple[str, str]:
        code = "482913"
        return code, hash_code(code)

    def test_hash_is_not_plaintext(self, stored: tuple[str, str]) -> None:
        code, code_hash = stored

        assert code not in code_hash

    def test_matching_code(self, stored: tuple[str, str]) -> None:
        code, code_hash = stored

        assert verify_code(code, code_hash) is True

    def test_whitespace_is_ignored(self, stored: tuple[str, str]) -> None:
        _, code_hash = stored

        assert verify_code(" 482 913 ", code_hash) is True

    def test_any_single_character_mutation_fails(self, stored: tuple[str, str]) -> None:
        code, code_hash = stored

        for i, digit in enumerate(code):
            replacement = "0" if digit != "0" else "1"
            mutated = code[:i] + replacement + code[i + 1 :]
            assert verify_code(mutated, code_hash) is False

    def test_missing_or_garbage_hash(self) -> None:
        assert verify_code("123456", None) is False
        assert verify_code("123456", "not-a-bcrypt-hash") is False

    def test_clean_code(self) -> None:
        assert clean_code("12 34\t56") == "123456"
        assert clean_code(None) == ""  # type: ignore[arg-type]


class TestPendingCode:
    """Tests for the pending code record."""

    def test_start_code_sets_expiry_and_resets_attempts(self) -> None:
        now = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

        code, pending = start_code(6, 10, now)

        assert len(code) == 6
        assert pending.expires_at == now + timedelta(minutes=10)
        assert pending.attempts == 0
        assert verify_code(code, pending.code_hash)

    def test_expiry(self) -> None:
        now = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
        pending = PendingCode(code_hash="x", expires_at=now + timedelta(minutes=10))

        assert not pending.is_expired(now + timedelta(minutes=9, seconds=59))
        assert pending.is_expired(now + timedelta(minutes=10))

    def test_attempts_exhausted(self) -> None:
        pending = PendingCode(code_hash="x", expires_at=datetime.now(timezone.utc), attempts=5)

        assert pending.attempts_exhausted(5)
        assert not pending.attempts_exhausted(6)
