import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from flashbot.api.routes import telegram
from flashbot.bot.engine import ConversationEngine
from flashbot.bot.session_store import SessionStore
from flashbot.bot.transport import LoggingTransport, TelegramTransport, Transport
from flashbot.core.config import settings
from flashbot.db.session import init_db
from flashbot.services.card_service import CardService
from flashbot.services.deck_service import DeckService
from flashbot.services.review_service import ReviewService
from flashbot.services.stats_service import StatsService
from flashbot.services.user_service import UserService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_transport() -> Transport:
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.warning("TELEGRAM_BOT_TOKEN is not set, replies will only be logged")
        return LoggingTransport()
    return TelegramTransport(settings.TELEGRAM_BOT_TOKEN, settings.TELEGRAM_API_URL)


def build_engine(transport: Transport) -> ConversationEngine:
    users = UserService()
    decks = DeckService()
    cards = CardService()
    review = ReviewService(cards, limit=settings.DUE_CARDS_LIMIT)

    return ConversationEngine(
        users=users,
        decks=decks,
        cards=cards,
        review=review,
        stats=StatsService(decks, review),
        sessions=SessionStore(),
        transport=transport,
        advance_delay=settings.STUDY_ADVANCE_DELAY_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    transport = build_transport()
    app.state.engine = build_engine(transport)
    yield
    await app.state.engine.drain()
    await transport.aclose()


app = FastAPI(title="Flashcards Bot", lifespan=lifespan)

app.include_router(telegram.router, prefix="/telegram", tags=["telegram"])


@app.get("/health")
def health_check():
    return {"status": "ok"}
