import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from flashbot.bot.engine import ConversationEngine
from flashbot.core.config import settings
from flashbot.schemas.telegram import TelegramUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["telegram"])


def get_engine(request: Request) -> ConversationEngine:
    return request.app.state.engine


def verify_secret(
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
) -> None:
    if settings.WEBHOOK_SECRET and x_telegram_bot_api_secret_token != settings.WEBHOOK_SECRET:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid secret token")


@router.post("/webhook", dependencies=[Depends(verify_secret)])
async def telegram_webhook(update: TelegramUpdate, engine: ConversationEngine = Depends(get_engine)):
    """
    Принимает апдейт Telegram. /start -> on_start, остальной текст -> on_message.
    Всё, что не текст, подтверждается и игнорируется.
    """
    message = update.message
    if message is None or message.text is None:
        return {"ok": True}

    owner_key = message.from_user.id if message.from_user else message.chat.id
    text = message.text

    words = text.split()
    command = words[0].split("@")[0] if words else ""

    if command == "/start":
        profile = message.from_user.profile() if message.from_user else None
        await engine.on_start(owner_key, profile)
    else:
        await engine.on_message(owner_key, text)

    return {"ok": True}
