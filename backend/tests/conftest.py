"""Pytest fixtures: sqlite в памяти, движок без задержки, транспорт-заглушка."""
import os
import logging
import warnings

import pytest

# Отключаем шумное логирование SQLAlchemy
logging.getLogger('sqlalchemy').setLevel(logging.ERROR)
logging.getLogger('sqlalchemy.engine').setLevel(logging.ERROR)
logging.getLogger('sqlalchemy.pool').setLevel(logging.ERROR)

warnings.filterwarnings("ignore", category=DeprecationWarning)

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STUDY_ADVANCE_DELAY_SECONDS"] = "0"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["WEBHOOK_SECRET"] = "test-secret"

import flashbot.models  # noqa: E402,F401
from flashbot.bot.engine import ConversationEngine  # noqa: E402
from flashbot.bot.session_store import SessionStore  # noqa: E402
from flashbot.bot.transport import Transport  # noqa: E402
from flashbot.db.base import Base  # noqa: E402
from flashbot.db.session import SessionLocal, engine as db_engine  # noqa: E402
from flashbot.services.card_service import CardService  # noqa: E402
from flashbot.services.deck_service import DeckService  # noqa: E402
from flashbot.services.review_service import ReviewService  # noqa: E402
from flashbot.services.stats_service import StatsService  # noqa: E402
from flashbot.services.user_service import UserService  # noqa: E402

OWNER = 1001
OTHER_OWNER = 2002


class RecordingTransport(Transport):
    """Запоминает все ответы вместо отправки в Telegram."""

    def __init__(self):
        self.replies: list[tuple[int, str, list[list[str]] | None]] = []

    async def reply(self, owner_key, message, keyboard=None):
        self.replies.append((owner_key, message, keyboard))

    def messages(self, owner_key: int) -> list[str]:
        return [message for key, message, _ in self.replies if key == owner_key]

    def last(self, owner_key: int) -> str:
        return self.messages(owner_key)[-1]

    def last_keyboard(self, owner_key: int) -> list[list[str]] | None:
        keyboards = [kb for key, _, kb in self.replies if key == owner_key and kb is not None]
        return keyboards[-1] if keyboards else None

    def labels(self, owner_key: int) -> list[str]:
        return [label for row in (self.last_keyboard(owner_key) or []) for label in row]


@pytest.fixture(scope="function", autouse=True)
def database():
    Base.metadata.create_all(bind=db_engine)
    yield
    Base.metadata.drop_all(bind=db_engine)


@pytest.fixture(scope="function")
def db():
    db = SessionLocal()
    yield db
    db.close()


@pytest.fixture
def users() -> UserService:
    return UserService()


@pytest.fixture
def decks() -> DeckService:
    return DeckService()


@pytest.fixture
def cards() -> CardService:
    return CardService()


@pytest.fixture
def review(cards) -> ReviewService:
    return ReviewService(cards)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def make_engine(users, decks, cards, review, transport):
    def factory(**overrides) -> ConversationEngine:
        params = dict(
            users=users,
            decks=decks,
            cards=cards,
            review=review,
            stats=StatsService(decks, review),
            sessions=SessionStore(),
            transport=transport,
            advance_delay=0,
        )
        params.update(overrides)
        return ConversationEngine(**params)

    return factory


@pytest.fixture
def engine(make_engine) -> ConversationEngine:
    return make_engine()


@pytest.fixture
def test_user(users):
    return users.find_or_create(OWNER, {"username": "tester", "first_name": "Test"})


@pytest.fixture
def test_deck(decks, test_user):
    return decks.create("Spanish", test_user.id, OWNER)
