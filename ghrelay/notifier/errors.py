"""Message delivery errors."""

from __future__ import annotations


class DeliveryError(RuntimeError):
    """Raised when a message could not be delivered to a chat."""

    def __init__(
        self,
        message: str,
        *,
        chat_id: int | None = None,
        status_code: int | None = None,
        retry_after: int | None = None,
    ) -> None:
        """Attach the destination chat and any HTTP details."""
        self.chat_id = chat_id
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)

    @classmethod
    def http_error(
        cls,
        chat_id: int,
        status_code: int,
        *,
        description: str | None = None,
        retry_after: int | None = None,
    ) -> DeliveryError:
        """Return an error for a non-2xx Bot API response."""
        detail = f": {description}" if description else ""
        return cls(
            f"Telegram sendMessage to {chat_id} failed with HTTP {status_code}{detail}",
            chat_id=chat_id,
            status_code=status_code,
            retry_after=retry_after,
        )

    @classmethod
    def rejected(cls, chat_id: int, description: str | None) -> DeliveryError:
        """Return an error for a response with ``"ok": false``."""
        return cls(
            f"Telegram rejected message to {chat_id}: {description or 'no reason given'}",
            chat_id=chat_id,
        )

    @classmethod
    def transport_error(cls, chat_id: int, exc: BaseException) -> DeliveryError:
        """Return an error for a request that never produced a response."""
        return cls(f"Telegram request for {chat_id} failed: {exc}", chat_id=chat_id)


class DeliveryConfigError(RuntimeError):
    """Raised when delivery configuration is invalid."""

    @classmethod
    def missing_token(cls) -> DeliveryConfigError:
        """Return an error when no bot token is configured."""
        return cls("GHRELAY_TELEGRAM_TOKEN is required for Telegram delivery")


__all__ = ["DeliveryConfigError", "DeliveryError"]
