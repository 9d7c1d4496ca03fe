# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Notifier - Best-effort Telegram notifications.

A notification can never fail a run: transport errors and API rejections
are logged as warnings and reported through the return value only.
"""

import httpx
import structlog

from pgrestic.config import PgResticConfig, TelegramSettings

logger = structlog.get_logger()

REQUEST_TIMEOUT_SECONDS = 10.0


class NullNotifier:
    """Notifier used when no notification target is configured."""

    async def send(self, message: str) -> bool:
        return False


class TelegramNotifier:
    """Send messages to a Telegram chat through the Bot API."""

    def __init__(
        self,
        settings: TelegramSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.settings.api_url}/bot{self.settings.bot_token}/sendMessage"

    async def send(self, message: str) -> bool:
        """
        Post a message to the configured chat.

        Returns:
            True if Telegram accepted the message
        """
        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.endpoint,
                    data={"chat_id": self.settings.chat_id, "text": message},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            # The token is part of the URL; log only the status
            logger.warning("notification_rejected", status_code=e.response.status_code)
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("notification_failed", error_type=type(e).__name__)
            return False

        logger.debug("notification_sent", chat_id=self.settings.chat_id)
        return True


def create_notifier(config: PgResticConfig) -> NullNotifier | TelegramNotifier:
    """Return the notifier for a configuration."""
    if config.telegram is None:
        return NullNotifier()
    return TelegramNotifier(config.telegram)
