import pytest
from fastapi.testclient import TestClient

from flashbot.main import app

from conftest import OWNER, RecordingTransport

SECRET_HEADER = {"X-Telegram-Bot-Api-Secret-Token": "test-secret"}


def update(text=None, update_id=1, user_id=OWNER):
    message = {
        "message_id": update_id,
        "from": {"id": user_id, "is_bot": False, "first_name": "Ana", "username": "ana"},
        "chat": {"id": user_id, "type": "private"},
        "date": 1700000000,
    }
    if text is not None:
        message["text"] = text
    return {"update_id": update_id, "message": message}


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def client(transport):
    with TestClient(app) as client:
        app.state.engine.transport = transport
        yield client


def test_health(client):
    """Проверка живости."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_wrong_secret_is_rejected(client, transport):
    """Неверный секрет возвращает 403."""
    response = client.post(
        "/telegram/webhook",
        json=update("/start"),
        headers={"X-Telegram-Bot-Api-Secret-Token": "nope"},
    )

    assert response.status_code == 403
    assert transport.replies == []


def test_missing_secret_is_rejected(client):
    """Без секрета возвращается 403."""
    response = client.post("/telegram/webhook", json=update("/start"))

    assert response.status_code == 403


def test_start_creates_user(client, transport, users):
    """/start заводит пользователя с профилем."""
    response = client.post("/telegram/webhook", json=update("/start"), headers=SECRET_HEADER)

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert "don't have any decks yet" in transport.last(OWNER)

    user = users.find_by_owner_key(OWNER)
    assert user.username == "ana"
    assert user.first_name == "Ana"


def test_start_with_bot_mention(client, transport):
    """/start@bot работает как /start."""
    client.post("/telegram/webhook", json=update("/start@flash_bot"), headers=SECRET_HEADER)

    assert "don't have any decks yet" in transport.last(OWNER)


def test_keyboard_label_is_routed_as_button(client, transport, decks):
    """Подпись кнопки из текста идёт как нажатие."""
    client.post("/telegram/webhook", json=update("/start", 1), headers=SECRET_HEADER)
    client.post("/telegram/webhook", json=update("📦 New Deck", 2), headers=SECRET_HEADER)
    client.post("/telegram/webhook", json=update("Spanish", 3), headers=SECRET_HEADER)

    assert 'Deck "Spanish" created successfully' in transport.last(OWNER)
    assert [d.name for d in decks.list_by_owner(OWNER)] == ["Spanish"]


def test_non_text_update_is_acknowledged(client, transport):
    """Апдейт без текста подтверждается и игнорируется."""
    response = client.post("/telegram/webhook", json=update(None), headers=SECRET_HEADER)

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert transport.replies == []


def test_update_without_message(client, transport):
    """Апдейт без сообщения."""
    response = client.post("/telegram/webhook", json={"update_id": 5}, headers=SECRET_HEADER)

    assert response.status_code == 200
    assert transport.replies == []
