"""Telegram Bot API delivery of formatted notifications."""

from __future__ import annotations

import dataclasses
import os

import httpx
import msgspec

from .errors import DeliveryConfigError, DeliveryError

DEFAULT_TELEGRAM_API_URL = "https://api.telegram.org"

_HTTP_ERROR_STATUS_THRESHOLD = 400


class _BotResponseParameters(msgspec.Struct, kw_only=True):
    retry_after: int | None = None


class _BotResponse(msgspec.Struct, kw_only=True):
    ok: bool
    description: str | None = None
    parameters: _BotResponseParameters | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class TelegramConfig:
    """Configuration for the Telegram Bot API client."""

    token: str
    api_url: str = DEFAULT_TELEGRAM_API_URL
    timeout_s: float = 15.0

    @classmethod
    def from_env(cls) -> TelegramConfig:
        """Build configuration using the ``GHRELAY_TELEGRAM_TOKEN`` env var."""
        token = os.environ.get("GHRELAY_TELEGRAM_TOKEN", "").strip()
        if not token:
            raise DeliveryConfigError.missing_token()
        api_url = (
            os.environ.get("GHRELAY_TELEGRAM_API_URL", "").strip()
            or DEFAULT_TELEGRAM_API_URL
        )
        return cls(token=token, api_url=api_url.rstrip("/"))


def _decode_response(response: httpx.Response) -> _BotResponse | None:
    try:
        return msgspec.json.decode(response.content, type=_BotResponse)
    except msgspec.DecodeError:
        return None


class TelegramDelivery:
    """Send Markdown messages through ``sendMessage``."""

    def __init__(
        self,
        config: TelegramConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the delivery client with the provided configuration."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._endpoint = f"{config.api_url}/bot{config.token}/sendMessage"

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def deliver(self, chat_id: int, text: str) -> None:
        """Send ``text`` to ``chat_id``.

        Raises
        ------
        DeliveryError
            If the request fails or the Bot API does not acknowledge it.

        """
        try:
            response = await self._client.post(
                self._endpoint,
                json={
                    "chat_id": chat_id,
                    "text": text,
                    "parse_mode": "Markdown",
                    "disable_web_page_preview": True,
                },
            )
        except httpx.HTTPError as exc:
            raise DeliveryError.transport_error(chat_id, exc) from exc

        body = _decode_response(response)
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise DeliveryError.http_error(
                chat_id,
                response.status_code,
                description=body.description if body else None,
                retry_after=(
                    body.parameters.retry_after if body and body.parameters else None
                ),
            )
        if body is None or not body.ok:
            raise DeliveryError.rejected(chat_id, body.description if body else None)


__all__ = ["DEFAULT_TELEGRAM_API_URL", "TelegramConfig", "TelegramDelivery"]
