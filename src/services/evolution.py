"""Evolution API Client - WhatsApp delivery of one-time codes."""

import re

import httpx

from src.config.settings import get_settings
from src.utils.logger import get_logger

logger = get_logger(__name__)

OTP_MESSAGE = "Seu código 2FA da Booky é {code}. Ele expira em {minutes} minutos."

_NON_DIGITS = re.compile(r"\D+")
_WHITESPACE = re.compile(r"\s+")


def normalize_phone(raw: str | None) -> str:
    """Normalize user input to E.164 (``+5511999999999``).

    Returns an empty string when nothing usable remains.
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        return ""
    if trimmed.startswith("+"):
        return _WHITESPACE.sub("", trimmed)
    digits = _NON_DIGITS.sub("", trimmed)
    return f"+{digits}" if digits else ""


def mask_phone(phone: str) -> str:
    """Keep only the last four digits for logs."""
    return f"***{phone[-4:]}" if len(phone) > 4 else "***"


class EvolutionAPIClient:
    """Client for Evolution API (WhatsApp integration)."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        instance_name: str | None = None,
    ) -> None:
        """Initialize Evolution API client.

        Args:
            base_url: Evolution API base URL.
            api_key: API authentication key.
            instance_name: WhatsApp instance name.
        """
        settings = get_settings()
        self.base_url = (base_url or settings.evolution_api_url).rstrip("/")
        self.api_key = api_key or settings.evolution_api_key
        self.instance_name = instance_name or settings.evolution_instance_name

        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "apikey": self.api_key,
                    "Content-Type": "application/json",
                },
                timeout=15.0,
            )
        return self._client

    async def send_text_message(self, to_number: str, text: str) -> dict:
        """Send text message via WhatsApp.

        Args:
            to_number: Recipient phone number in E.164 format.
            text: Message text.

        Returns:
            API response dict.

        Raises:
            httpx.HTTPError: If request fails.
        """
        client = await self._get_client()

        # Evolution API expects the number without "+"
        payload = {
            "number": to_number.lstrip("+"),
            "text": text,
        }

        url = f"/message/sendText/{self.instance_name}"

        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()

            result = response.json()

            logger.info(
                "evolution_message_sent",
                to_number=mask_phone(to_number),
                message_id=result.get("key", {}).get("id"),
            )

            return result

        except httpx.HTTPError as e:
            logger.error(
                "evolution_send_error",
                to_number=mask_phone(to_number),
                error=str(e),
            )
            raise

    async def send_code(self, to_number: str, code: str, ttl_minutes: int) -> dict:
        """Deliver a one-time code.

        Args:
            to_number: Recipient phone number in E.164 format.
            code: Plaintext code (never logged).
            ttl_minutes: Validity shown to the user.

        Returns:
            API response dict.
        """
        text = OTP_MESSAGE.format(code=code, minutes=ttl_minutes)
        return await self.send_text_message(to_number, text)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Global client instance
_evolution_client: EvolutionAPIClient | None = None


def get_evolution_client() -> EvolutionAPIClient:
    """Get or create Evolution API client."""
    global _evolution_client
    if _evolution_client is None:
        _evolution_client = EvolutionAPIClient()
    return _evolution_client
