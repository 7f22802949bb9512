import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from uuid import UUID

from flashbot.bot.states import Idle


@dataclass
class Session:
    state: object = field(default_factory=Idle)
    # растёт при каждой очистке; отложенные сообщения старого поколения отбрасываются
    generation: int = 0
    # подписи последней клавиатуры -> скрытый токен выбора
    choices: dict[str, UUID | None] = field(default_factory=dict)

    @property
    def step(self) -> str:
        return self.state.step


class SessionStore:
    """
    Эфемерные сессии в памяти, по одной на owner_key.
    Доступ к сессии пользователя сериализуется через lock(owner_key).

    Записи не вытесняются: одна сессия и один lock на каждого пользователя,
    который когда-либо писал боту. Для одного процесса бота этого достаточно,
    а вытеснение сломало бы счётчик generation у отложенных показов.
    """

    def __init__(self):
        self._sessions: dict[int, Session] = {}
        self._locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock(self, owner_key: int) -> asyncio.Lock:
        return self._locks[owner_key]

    def get(self, owner_key: int) -> Session:
        session = self._sessions.get(owner_key)
        if session is None:
            session = self._sessions[owner_key] = Session()
        return session

    def clear(self, owner_key: int) -> Session:
        previous = self._sessions.get(owner_key)
        generation = previous.generation + 1 if previous else 0
        session = self._sessions[owner_key] = Session(generation=generation)
        return session

    def __contains__(self, owner_key: int) -> bool:
        return owner_key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
