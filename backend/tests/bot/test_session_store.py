import asyncio

import pytest

from flashbot.bot.session_store import SessionStore
from flashbot.bot.states import AwaitingDeckName, Idle


def test_missing_session_is_created_idle():
    """Новая сессия создаётся по запросу в состоянии idle."""
    store = SessionStore()

    session = store.get(1)

    assert isinstance(session.state, Idle)
    assert session.step == "idle"
    assert 1 in store


def test_sessions_are_isolated_per_owner():
    """Состояние одного пользователя не видно другому."""
    store = SessionStore()
    store.get(1).state = AwaitingDeckName()

    assert isinstance(store.get(2).state, Idle)
    assert store.get(1).step == "awaiting_deck_name"


def test_clear_resets_state_and_bumps_generation():
    """Очистка сбрасывает шаг и выбор, поколение растёт."""
    store = SessionStore()
    store.get(1).state = AwaitingDeckName()
    store.get(1).choices = {"❌ Cancel": None}

    cleared = store.clear(1)

    assert isinstance(cleared.state, Idle)
    assert cleared.generation == 1
    assert cleared.choices == {}
    assert store.get(1) is cleared


def test_repeated_clears_keep_one_entry_per_owner():
    """Очистки не плодят записи: одна сессия на пользователя."""
    store = SessionStore()

    for _ in range(5):
        store.clear(1)
        store.clear(2)

    assert len(store) == 2
    assert store.get(1).generation == 4
    assert store.lock(1) is store.lock(1)


@pytest.mark.asyncio
async def test_lock_serializes_same_owner():
    """События одного пользователя обрабатываются по очереди."""
    store = SessionStore()
    order = []

    async def worker(name):
        async with store.lock(1):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]


def test_locks_differ_between_owners():
    """У каждого пользователя свой lock."""
    store = SessionStore()

    assert store.lock(1) is store.lock(1)
    assert store.lock(1) is not store.lock(2)
