import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from flashbot.core.clock import utcnow
from flashbot.core.enums import CardStatus
from flashbot.db.base import Base


class Card(Base):
    __tablename__ = "cards"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )

    deck_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("decks.id"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    owner_key: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    front: Mapped[str] = mapped_column(String, nullable=False)
    back: Mapped[str] = mapped_column(String, nullable=False)

    status: Mapped[CardStatus] = mapped_column(
        Enum(CardStatus, name="card_status"),
        default=CardStatus.new,
        nullable=False
    )
    # Новая карточка сразу доступна для повторения
    due_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)

    times_reviewed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    times_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    ease_factor: Mapped[float] = mapped_column(Float, default=2.5, nullable=False)
    # Дни до следующего повторения, дробная часть допустима для Mature
    interval: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
