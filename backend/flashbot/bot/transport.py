import logging
from abc import ABC, abstractmethod

import httpx

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Куда движок отправляет ответы пользователю."""

    @abstractmethod
    async def reply(self, owner_key: int, message: str, keyboard: list[list[str]] | None = None) -> None:
        ...

    async def aclose(self) -> None:
        pass


class LoggingTransport(Transport):
    """Без токена бота: ответы только пишутся в лог."""

    async def reply(self, owner_key: int, message: str, keyboard: list[list[str]] | None = None) -> None:
        logger.info("reply to %s: %r keyboard=%s", owner_key, message, keyboard)


class TelegramTransport(Transport):
    def __init__(self, token: str, api_url: str = "https://api.telegram.org", client: httpx.AsyncClient | None = None):
        self.base_url = f"{api_url.rstrip('/')}/bot{token}"
        self.client = client or httpx.AsyncClient(timeout=10.0)

    async def reply(self, owner_key: int, message: str, keyboard: list[list[str]] | None = None) -> None:
        payload = {"chat_id": owner_key, "text": message}
        if keyboard is not None:
            payload["reply_markup"] = {
                "keyboard": [[{"text": label} for label in row] for row in keyboard],
                "resize_keyboard": True,
            }

        try:
            response = await self.client.post(f"{self.base_url}/sendMessage", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to deliver message to %s: %s", owner_key, exc)

    async def aclose(self) -> None:
        await self.client.aclose()
