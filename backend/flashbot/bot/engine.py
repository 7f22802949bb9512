# backend/flashbot/bot/engine.py
"""
Диалоговый движок: конечный автомат поверх сессии пользователя.

Одно входящее событие (текст или кнопка) -> обработчик текущего шага ->
хранилища / планировщик -> ответ с клавиатурой.
"""

import asyncio
import logging
from dataclasses import replace
from uuid import UUID

from starlette.concurrency import run_in_threadpool

from flashbot.bot import keyboards as kb
from flashbot.bot.keyboards import Button, Keyboard
from flashbot.bot.session_store import Session, SessionStore
from flashbot.bot.states import (
    DATA_CAPTURE_STATES,
    AwaitingCardBack,
    AwaitingCardFront,
    AwaitingDeckName,
    BrowsingDecks,
    CardSelected,
    ConfirmingDeckDelete,
    DeckSelected,
    EditingCardBack,
    EditingCardFront,
    RenamingDeck,
    SelectingDeckForCard,
    Studying,
    ViewingCards,
)
from flashbot.bot.transport import Transport
from flashbot.core.errors import NotFound, SessionInconsistency, StoreFailure, ValidationFailure
from flashbot.domain.review.entities import StudyCard
from flashbot.services.card_service import CardService
from flashbot.services.deck_service import DeckService
from flashbot.services.review_service import ReviewService
from flashbot.services.stats_service import StatsService
from flashbot.services.user_service import UserService

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "❌ Something went wrong. Please try again."
NO_DECK_SELECTED = "❌ No deck selected!"
NO_CARD_SELECTED = "❌ No card selected!"
NEXT_CARD_PENDING = "⏳ The next card is on its way..."


class ConversationEngine:
    def __init__(
            self,
            *,
            users: UserService,
            decks: DeckService,
            cards: CardService,
            review: ReviewService,
            stats: StatsService,
            sessions: SessionStore,
            transport: Transport,
            advance_delay: float = 1.5,
    ):
        self.users = users
        self.decks = decks
        self.cards = cards
        self.review = review
        self.stats = stats
        self.sessions = sessions
        self.transport = transport
        self.advance_delay = advance_delay

        self._pending: dict[int, asyncio.Task] = {}
        self._menu = {
            kb.ADD: self._add_menu,
            kb.DECKS: self._decks,
            kb.VIEW_MY_DECKS: self._decks,
            kb.BROWSE: self._browse,
            kb.BACK_TO_BROWSE: self._browse,
            kb.STATS: self._stats,
            kb.ACCOUNT: self._account,
            kb.NEW_DECK: self._new_deck,
            kb.NEW_CARD: self._new_card,
            kb.SHOW_ANSWER: self._show_answer,
            kb.YES: self._answer_correct,
            kb.NO: self._answer_wrong,
            kb.RENAME_DECK: self._rename_request,
            kb.DELETE_DECK: self._delete_request,
            kb.CONFIRM_DELETE: self._confirm_delete,
            kb.VIEW_CARDS: self._view_cards,
            kb.BACK_TO_CARDS: self._view_cards,
            kb.ADD_CARD: self._add_card_here,
            kb.BACK_TO_DECK: self._back_to_deck,
            kb.EDIT_FRONT: self._edit_front_request,
            kb.EDIT_BACK: self._edit_back_request,
            kb.DELETE_CARD: self._delete_card,
        }

    # -------------
    # Entry points
    # -------------

    async def on_start(self, owner_key: int, profile: dict | None = None) -> None:
        await self._dispatch(owner_key, self._start, profile)

    async def on_text(self, owner_key: int, text: str) -> None:
        await self._dispatch(owner_key, self._handle_text, text)

    async def on_button(self, owner_key: int, label: str) -> None:
        await self._dispatch(owner_key, self._handle_button, label)

    async def on_message(self, owner_key: int, text: str) -> None:
        """Сырой текст из транспорта: кнопка, если совпал с подписью последней клавиатуры."""
        await self._dispatch(owner_key, self._handle_message, text)

    async def drain(self) -> None:
        """Дождаться отложенных показов карточек."""
        while self._pending:
            await asyncio.gather(*list(self._pending.values()), return_exceptions=True)

    # ----------
    # Plumbing
    # ----------

    async def _dispatch(self, owner_key: int, handler, *args) -> None:
        async with self.sessions.lock(owner_key):
            await self._guarded(owner_key, handler, *args)

    async def _guarded(self, owner_key: int, handler, *args) -> None:
        try:
            await handler(owner_key, *args)
        except NotFound as exc:
            await self._reply(owner_key, f"❌ {exc.entity} not found!")
        except ValidationFailure:
            await self._reply(owner_key, "❌ Missing required information!")
        except SessionInconsistency:
            self._clear(owner_key)
            await self._reply(owner_key, "❌ No active study session!", kb.main_menu())
        except StoreFailure:
            logger.exception("Store failure while handling event from %s", owner_key)
            await self._reply(owner_key, GENERIC_FAILURE)

    async def _run(self, func, *args, **kwargs):
        # хранилища синхронные (SQLAlchemy), не блокируем event loop
        return await run_in_threadpool(func, *args, **kwargs)

    def _session(self, owner_key: int) -> Session:
        return self.sessions.get(owner_key)

    def _state(self, owner_key: int):
        return self.sessions.get(owner_key).state

    def _set_state(self, owner_key: int, state) -> None:
        session = self.sessions.get(owner_key)
        logger.debug("Session %s: %s -> %s", owner_key, session.step, state.step)
        session.state = state

    def _clear(self, owner_key: int) -> Session:
        task = self._pending.pop(owner_key, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        return self.sessions.clear(owner_key)

    async def _reply(self, owner_key: int, message: str, keyboard: Keyboard | None = None) -> None:
        labels = None
        if keyboard is not None:
            self._session(owner_key).choices = kb.choices_of(keyboard)
            labels = kb.labels_of(keyboard)
        await self.transport.reply(owner_key, message, labels)

    # ---------
    # Routing
    # ---------

    async def _handle_message(self, owner_key: int, text: str) -> None:
        if text in self._session(owner_key).choices:
            await self._handle_button(owner_key, text)
        else:
            await self._handle_text(owner_key, text)

    async def _handle_button(self, owner_key: int, label: str) -> None:
        if label in kb.RESET_LABELS:
            await self._start(owner_key)
            return
        token = self._session(owner_key).choices.get(label)
        await self._handle_text(owner_key, label, token)

    async def _handle_text(self, owner_key: int, text: str, token: UUID | None = None) -> None:
        state = self._state(owner_key)

        # шаг, ожидающий данные, забирает текст целиком
        if isinstance(state, DATA_CAPTURE_STATES):
            await self._capture(owner_key, state, text)
            return

        if isinstance(state, SelectingDeckForCard) and text.startswith(kb.PICK_DECK_PREFIX):
            deck = await self._resolve_deck(owner_key, text[len(kb.PICK_DECK_PREFIX):], token)
            await self._begin_card(owner_key, deck)
            return

        await self._global(owner_key, text, token)

    async def _global(self, owner_key: int, text: str, token: UUID | None) -> None:
        if text in kb.RESET_LABELS:
            await self._start(owner_key)
            return

        if text in (kb.ADD_CARDS_TO_DECK, kb.ADD_ANOTHER_CARD):
            if token is None:
                await self._new_card(owner_key)
            else:
                await self._begin_card(owner_key, await self._resolve_deck(owner_key, None, token))
            return

        handler = self._menu.get(text)
        if handler is not None:
            await handler(owner_key)
        elif text.startswith(kb.STUDY_PREFIX):
            deck = await self._resolve_deck(owner_key, text[len(kb.STUDY_PREFIX):], token)
            await self._study(owner_key, deck)
        elif text.startswith(kb.BROWSE_PREFIX):
            deck = await self._resolve_deck(owner_key, text[len(kb.BROWSE_PREFIX):], token)
            await self._browse_deck(owner_key, deck)
        elif text.startswith(kb.CARD_PREFIX) and ": " in text:
            await self._select_card(owner_key, text, token)
        else:
            await self._reply(
                owner_key,
                "❓ I didn't understand that command.\nPlease use the menu buttons below:",
                kb.main_menu(),
            )

    async def _capture(self, owner_key: int, state, text: str) -> None:
        if isinstance(state, AwaitingDeckName):
            await self._create_deck(owner_key, text)
        elif isinstance(state, AwaitingCardFront):
            if not text.strip():
                raise ValidationFailure("card front")
            self._set_state(owner_key, AwaitingCardBack(deck_id=state.deck_id, front=text))
            await self._reply(owner_key, "🃏 Now enter the back side (answer) of the card:", kb.cancel_only())
        elif isinstance(state, AwaitingCardBack):
            await self._create_card(owner_key, state, text)
        elif isinstance(state, RenamingDeck):
            await self._rename_deck(owner_key, state, text)
        elif isinstance(state, EditingCardFront):
            await self._edit_card(owner_key, state, front=text)
        elif isinstance(state, EditingCardBack):
            await self._edit_card(owner_key, state, back=text)

    async def _resolve_deck(self, owner_key: int, name: str | None, token: UUID | None):
        """Сначала по скрытому токену, иначе по точному имени среди колод пользователя."""
        if token is not None:
            deck = await self._run(self.decks.find_by_id, token)
            if deck is not None and deck.owner_key == owner_key:
                return deck
            raise NotFound("Deck")

        decks = await self._run(self.decks.list_by_owner, owner_key)
        for deck in decks:
            if deck.name == name:
                return deck
        raise NotFound("Deck")

    # -----------
    # Main flow
    # -----------

    async def _start(self, owner_key: int, profile: dict | None = None) -> None:
        # введённое ранее отбрасывается до обращения к хранилищу, даже если оно упадёт
        self._clear(owner_key)
        # пользователь создаётся сразу, иначе без колод его нельзя было бы завести
        await self._run(self.users.find_or_create, owner_key, profile)
        decks = await self._run(self.decks.list_by_owner, owner_key)

        if not decks:
            await self._reply(
                owner_key,
                "❌ You don't have any decks yet!\nPlease create a deck first.",
                kb.no_decks(),
            )
            return

        self._set_state(owner_key, BrowsingDecks())
        await self._reply(
            owner_key,
            "🔍 Browse Decks:\nSelect a deck to manage:",
            kb.deck_buttons(kb.BROWSE_PREFIX, decks) + kb.main_menu(),
        )

    async def _add_menu(self, owner_key: int) -> None:
        self._clear(owner_key)
        await self._reply(owner_key, "➕ What would you like to add?", kb.add_menu())

    async def _stats(self, owner_key: int) -> None:
        stats = await self._run(self.stats.user_stats, owner_key)
        self._clear(owner_key)
        await self._reply(
            owner_key,
            "📊 Your Learning Statistics\n\n"
            f"📚 Total Decks: {stats.total_decks}\n"
            f"🃏 Total Cards: {stats.total_cards}\n\n"
            "📈 Card Breakdown:\n"
            f"🆕 New: {stats.new_cards}\n"
            f"📚 Learning: {stats.learning_cards}\n"
            f"🎯 Young: {stats.young_cards}\n"
            f"⭐ Mature: {stats.mature_cards}\n\n"
            "Keep up the great work! 🎯",
            kb.main_menu(),
        )

    async def _account(self, owner_key: int) -> None:
        user = await self._run(self.users.find_by_owner_key, owner_key)
        self._clear(owner_key)
        if user is None:
            raise NotFound("User")

        await self._reply(
            owner_key,
            "👤 Your Account Information\n\n"
            f"🆔 Telegram ID: {user.owner_key}\n"
            f"👤 Username: {user.username or 'Not set'}\n"
            f"📝 First Name: {user.first_name or 'Not set'}\n"
            f"📝 Last Name: {user.last_name or 'Not set'}\n"
            f"📅 Joined: {user.created_at:%a %b %d %Y}\n"
            f"🕐 Last Active: {user.last_activity:%a %b %d %Y}",
            kb.main_menu(),
        )

    # --------
    # Decks
    # --------

    async def _new_deck(self, owner_key: int) -> None:
        self._set_state(owner_key, AwaitingDeckName())
        await self._reply(owner_key, "📦 Enter the name for your new deck:", kb.cancel_only())

    async def _create_deck(self, owner_key: int, name: str) -> None:
        if not name.strip():
            raise ValidationFailure("deck name")

        user = await self._run(self.users.find_by_owner_key, owner_key)
        if user is None:
            raise NotFound("User")

        try:
            deck = await self._run(self.decks.create, name, user.id, owner_key)
        except StoreFailure:
            logger.exception("Failed to create deck for %s", owner_key)
            await self._reply(owner_key, "❌ Error creating deck. Please try again.")
            return

        logger.info("Deck %s created for %s", deck.id, owner_key)
        self._clear(owner_key)
        await self._reply(
            owner_key,
            f'✅ Deck "{name}" created successfully!\n\nWhat would you like to do next?',
            [
                [Button(kb.ADD_CARDS_TO_DECK, deck.id)],
                [Button(kb.VIEW_MY_DECKS)],
                [Button(kb.BACK_TO_MAIN)],
            ],
        )

    def _deck_overview(self, decks) -> list:
        return [(deck, self.review.aggregate_stats(deck.id)) for deck in decks]

    async def _decks(self, owner_key: int) -> None:
        decks = await self._run(self.decks.list_by_owner, owner_key)
        self._clear(owner_key)

        if not decks:
            await self._reply(
                owner_key,
                "📚 You don't have any decks yet!\nCreate your first deck to get started.",
                kb.rows([kb.ADD], [kb.BACK_TO_MAIN]),
            )
            return

        message = "📚 Your Decks:\n\n"
        for deck, stats in await self._run(self._deck_overview, decks):
            message += f"📦 {deck.name}\n"
            message += f"   Cards: {stats.total} ({stats.new} new, {stats.learning} learning)\n\n"

        await self._reply(
            owner_key,
            message,
            kb.deck_buttons(kb.STUDY_PREFIX, decks) + kb.rows([kb.BACK_TO_MAIN]),
        )

    async def _browse(self, owner_key: int) -> None:
        decks = await self._run(self.decks.list_by_owner, owner_key)
        self._clear(owner_key)

        if not decks:
            await self._reply(
                owner_key,
                "📚 No decks have been created yet!\nStart by creating your first deck.",
                kb.main_menu(),
            )
            return

        message = "🔍 Your Decks:\n\n"
        for position, (deck, stats) in enumerate(await self._run(self._deck_overview, decks), start=1):
            message += f"{position}. 📂 {deck.name}\n"
            message += f"   📊 Cards: {stats.total}\n"
            message += f"   🆕 New: {stats.new} | 📚 Learning: {stats.learning}\n"
            message += f"   🎯 Young: {stats.young} | ⭐ Mature: {stats.mature}\n\n"

        self._set_state(owner_key, BrowsingDecks())
        await self._reply(
            owner_key,
            message + "Select a deck to manage:",
            kb.deck_buttons(kb.BROWSE_PREFIX, decks) + kb.rows([kb.BACK_TO_MAIN]),
        )

    async def _browse_deck(self, owner_key: int, deck) -> None:
        stats = await self._run(self.review.aggregate_stats, deck.id)
        self._set_state(owner_key, DeckSelected(deck_id=deck.id))
        await self._reply(
            owner_key,
            f"📂 Deck: {deck.name}\n"
            f"📊 Cards: {stats.total}\n"
            f"🆕 New: {stats.new}\n"
            f"📚 Learning: {stats.learning}\n"
            f"🎯 Young: {stats.young}\n"
            f"⭐ Mature: {stats.mature}\n\n"
            "What would you like to do?",
            kb.deck_menu(),
        )

    def _selected_deck_id(self, owner_key: int) -> UUID | None:
        state = self._state(owner_key)
        if isinstance(state, Studying):
            return None
        return getattr(state, "deck_id", None)

    async def _back_to_deck(self, owner_key: int) -> None:
        deck_id = self._selected_deck_id(owner_key)
        deck = await self._run(self.decks.find_by_id, deck_id) if deck_id else None
        if deck is None:
            await self._browse(owner_key)
            return
        await self._browse_deck(owner_key, deck)

    async def _rename_request(self, owner_key: int) -> None:
        deck_id = self._selected_deck_id(owner_key)
        if deck_id is None:
            await self._reply(owner_key, NO_DECK_SELECTED)
            return
        self._set_state(owner_key, RenamingDeck(deck_id=deck_id))
        await self._reply(owner_key, "✏️ Enter the new name for this deck:", kb.cancel_only())

    async def _rename_deck(self, owner_key: int, state: RenamingDeck, name: str) -> None:
        if not name.strip():
            raise ValidationFailure("deck name")

        try:
            deck = await self._run(self.decks.rename, state.deck_id, name)
        except StoreFailure:
            logger.exception("Failed to rename deck %s", state.deck_id)
            await self._reply(owner_key, "❌ Error renaming deck. Please try again.")
            return

        # шаг не сбрасывается: пользователь может повторить или отменить
        if deck is None:
            raise NotFound("Deck")

        logger.info("Deck %s renamed", deck.id)
        self._clear(owner_key)
        await self._reply(owner_key, f'✅ Deck renamed to "{name}" successfully!', kb.main_menu())

    async def _delete_request(self, owner_key: int) -> None:
        deck_id = self._selected_deck_id(owner_key)
        if deck_id is None:
            await self._reply(owner_key, NO_DECK_SELECTED)
            return
        self._set_state(owner_key, ConfirmingDeckDelete(deck_id=deck_id))
        await self._reply(
            owner_key,
            "⚠️ Are you sure you want to delete this deck?\n"
            "This will permanently delete all cards in it!",
            kb.confirm_delete(),
        )

    def _delete_deck_with_cards(self, deck_id: UUID) -> bool:
        # Не транзакция: сначала карточки по одной, потом колода.
        # Сбой посередине оставляет часть карточек удалёнными.
        for card in self.cards.list_by_deck(deck_id):
            self.cards.delete(card.id)
        return self.decks.delete(deck_id)

    async def _confirm_delete(self, owner_key: int) -> None:
        state = self._state(owner_key)
        if not isinstance(state, ConfirmingDeckDelete):
            await self._reply(owner_key, NO_DECK_SELECTED)
            return

        try:
            deleted = await self._run(self._delete_deck_with_cards, state.deck_id)
        except StoreFailure:
            logger.exception("Failed to delete deck %s", state.deck_id)
            await self._reply(owner_key, "❌ Error deleting deck. Please try again.")
            return

        if not deleted:
            raise NotFound("Deck")

        logger.info("Deck %s deleted with its cards", state.deck_id)
        self._clear(owner_key)
        await self._reply(owner_key, "✅ Deck and all its cards have been deleted successfully!", kb.main_menu())

    # --------
    # Cards
    # --------

    async def _new_card(self, owner_key: int) -> None:
        decks = await self._run(self.decks.list_by_owner, owner_key)
        if not decks:
            await self._reply(
                owner_key,
                "❌ You don't have any decks yet!\nPlease create a deck first.",
                kb.no_decks(),
            )
            return

        self._set_state(owner_key, SelectingDeckForCard())
        await self._reply(
            owner_key,
            "🃏 Select a deck to add the card to:",
            kb.deck_buttons(kb.PICK_DECK_PREFIX, decks) + kb.rows([kb.CANCEL]),
        )

    async def _add_card_here(self, owner_key: int) -> None:
        deck_id = self._selected_deck_id(owner_key)
        if deck_id is None:
            await self._new_card(owner_key)
            return
        await self._begin_card(owner_key, await self._resolve_deck(owner_key, None, deck_id))

    async def _begin_card(self, owner_key: int, deck) -> None:
        self._set_state(owner_key, AwaitingCardFront(deck_id=deck.id))
        await self._reply(
            owner_key,
            f'🃏 Adding card to deck: "{deck.name}"\n\nEnter the front side (question) of the card:',
            kb.cancel_only(),
        )

    async def _create_card(self, owner_key: int, state: AwaitingCardBack, back: str) -> None:
        user = await self._run(self.users.find_by_owner_key, owner_key)
        if user is None or not state.front.strip() or not back.strip():
            raise ValidationFailure("card")

        deck = await self._run(self.decks.find_by_id, state.deck_id)
        if deck is None:
            raise NotFound("Deck")

        try:
            card = await self._run(self.cards.create, state.front, back, deck.id, user.id, owner_key)
        except StoreFailure:
            logger.exception("Failed to create card in deck %s", deck.id)
            await self._reply(owner_key, "❌ Error creating card. Please try again.")
            return

        logger.info("Card %s created in deck %s", card.id, deck.id)
        self._clear(owner_key)
        await self._reply(
            owner_key,
            "✅ Card created successfully!\n\n"
            f"Front: {state.front}\n"
            f"Back: {back}\n\n"
            "What would you like to do next?",
            [
                [Button(kb.ADD_ANOTHER_CARD, deck.id)],
                [Button(kb.VIEW_MY_DECKS)],
                [Button(kb.BACK_TO_MAIN)],
            ],
        )

    async def _view_cards(self, owner_key: int) -> None:
        deck_id = self._selected_deck_id(owner_key)
        if deck_id is None:
            await self._reply(owner_key, NO_DECK_SELECTED)
            return

        cards = await self._run(self.cards.list_by_deck, deck_id)
        if not cards:
            self._set_state(owner_key, DeckSelected(deck_id=deck_id))
            await self._reply(
                owner_key,
                "📭 This deck has no cards yet!\nAdd some cards to get started.",
                kb.rows([kb.ADD_CARD], [kb.BACK_TO_DECK]),
            )
            return

        message = "📋 Cards in this deck:\n\n"
        keyboard: Keyboard = []
        for position, card in enumerate(cards, start=1):
            message += f"{position}. {kb.preview(card.front)}\n"
            keyboard.append([kb.card_button(position, card)])
        keyboard += kb.rows([kb.BACK_TO_DECK])

        self._set_state(owner_key, ViewingCards(deck_id=deck_id, card_ids=tuple(c.id for c in cards)))
        await self._reply(owner_key, message, keyboard)

    async def _select_card(self, owner_key: int, text: str, token: UUID | None) -> None:
        card_id = token
        if card_id is None:
            state = self._state(owner_key)
            if not isinstance(state, ViewingCards):
                await self._reply(owner_key, NO_DECK_SELECTED)
                return
            try:
                position = int(text[len(kb.CARD_PREFIX):].split(":")[0].strip())
            except ValueError:
                raise NotFound("Card") from None
            if not 1 <= position <= len(state.card_ids):
                raise NotFound("Card")
            card_id = state.card_ids[position - 1]

        card = await self._run(self.cards.find_by_id, card_id)
        if card is None or card.owner_key != owner_key:
            raise NotFound("Card")

        self._set_state(owner_key, CardSelected(deck_id=card.deck_id, card_id=card.id))
        await self._reply(
            owner_key,
            "🃏 Card Preview:\n\n"
            f"❓ Front: {card.front}\n\n"
            f"✅ Back: {card.back}\n\n"
            f"📊 Status: {card.status.value}\n"
            f"🔄 Reviewed: {card.times_reviewed} times\n\n"
            "What would you like to do?",
            kb.card_menu(),
        )

    async def _edit_front_request(self, owner_key: int) -> None:
        state = self._state(owner_key)
        if not isinstance(state, CardSelected):
            await self._reply(owner_key, NO_CARD_SELECTED)
            return
        self._set_state(owner_key, EditingCardFront(deck_id=state.deck_id, card_id=state.card_id))
        await self._reply(owner_key, "✏️ Enter the new front side (question) for this card:", kb.cancel_only())

    async def _edit_back_request(self, owner_key: int) -> None:
        state = self._state(owner_key)
        if not isinstance(state, CardSelected):
            await self._reply(owner_key, NO_CARD_SELECTED)
            return
        self._set_state(owner_key, EditingCardBack(deck_id=state.deck_id, card_id=state.card_id))
        await self._reply(owner_key, "✏️ Enter the new back side (answer) for this card:", kb.cancel_only())

    async def _edit_card(self, owner_key: int, state, front: str | None = None, back: str | None = None) -> None:
        try:
            card = await self._run(self.cards.update, state.card_id, front=front, back=back)
        except StoreFailure:
            logger.exception("Failed to update card %s", state.card_id)
            await self._reply(owner_key, "❌ Error updating card. Please try again.")
            return

        if card is None:
            raise NotFound("Card")

        side = "front" if front is not None else "back"
        self._clear(owner_key)
        await self._reply(owner_key, f"✅ Card {side} updated successfully!", kb.main_menu())

    async def _delete_card(self, owner_key: int) -> None:
        state = self._state(owner_key)
        if not isinstance(state, CardSelected):
            await self._reply(owner_key, NO_CARD_SELECTED)
            return

        try:
            deleted = await self._run(self.cards.delete, state.card_id)
        except StoreFailure:
            logger.exception("Failed to delete card %s", state.card_id)
            await self._reply(owner_key, "❌ Error deleting card. Please try again.")
            return

        if not deleted:
            raise NotFound("Card")

        logger.info("Card %s deleted", state.card_id)
        self._clear(owner_key)
        await self._reply(owner_key, "✅ Card deleted successfully!", kb.main_menu())

    # --------
    # Study
    # --------

    def _snapshot_due(self, deck_id: UUID) -> tuple[StudyCard, ...]:
        return tuple(StudyCard.from_card(card) for card in self.review.select_due_cards(deck_id))

    async def _study(self, owner_key: int, deck) -> None:
        cards = await self._run(self._snapshot_due, deck.id)
        if not cards:
            await self._reply(
                owner_key,
                "✅ No cards due for review in this deck!\nCome back later.",
                kb.main_menu(),
            )
            return

        # новое поколение: отложенные показы прошлой сессии отбрасываются
        self._clear(owner_key)
        self._set_state(owner_key, Studying(deck_id=deck.id, cards=cards))
        await self._show_current_card(owner_key)

    def _studying(self, owner_key: int) -> Studying:
        state = self._state(owner_key)
        if not isinstance(state, Studying):
            raise SessionInconsistency("no active study session")
        return state

    async def _show_current_card(self, owner_key: int) -> None:
        state = self._studying(owner_key)
        card = state.current_card

        if card is None:
            self._clear(owner_key)
            await self._reply(owner_key, "🎉 Study session complete!\nGreat job!", kb.main_menu())
            return

        self._set_state(owner_key, replace(state, awaiting_next=False))
        await self._reply(
            owner_key,
            f"🃏 Card {state.current_card_index + 1} of {len(state.cards)}\n\n"
            f"❓ Question:\n{card.front}",
            kb.question(),
        )

    async def _show_answer(self, owner_key: int) -> None:
        state = self._studying(owner_key)
        if state.awaiting_next:
            await self._reply(owner_key, NEXT_CARD_PENDING)
            return
        if state.current_card is None:
            raise SessionInconsistency("study cursor out of range")

        await self._reply(
            owner_key,
            f"✅ Answer:\n{state.current_card.back}\n\n❓ Did you remember it correctly?",
            kb.grading(),
        )

    async def _answer_correct(self, owner_key: int) -> None:
        await self._grade(owner_key, is_correct=True)

    async def _answer_wrong(self, owner_key: int) -> None:
        await self._grade(owner_key, is_correct=False)

    async def _grade(self, owner_key: int, *, is_correct: bool) -> None:
        state = self._studying(owner_key)
        if state.awaiting_next:
            await self._reply(owner_key, NEXT_CARD_PENDING)
            return
        card = state.current_card
        if card is None:
            raise SessionInconsistency("study cursor out of range")

        try:
            await self._run(self.review.review, card.id, is_correct)
        except NotFound:
            message = "⚠️ This card no longer exists, skipping it."
        else:
            message = (
                "✅ Correct! Card scheduled for later review."
                if is_correct
                else "❌ Don't worry! Card will be shown again soon."
            )

        self._set_state(
            owner_key,
            replace(state, current_card_index=state.current_card_index + 1, awaiting_next=True),
        )
        await self._reply(owner_key, message)
        self._schedule_advance(owner_key)

    def _schedule_advance(self, owner_key: int) -> None:
        generation = self._session(owner_key).generation
        task = asyncio.create_task(self._advance_later(owner_key, generation))
        self._pending[owner_key] = task
        task.add_done_callback(lambda done: self._forget(owner_key, done))

    def _forget(self, owner_key: int, task: asyncio.Task) -> None:
        if self._pending.get(owner_key) is task:
            del self._pending[owner_key]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Deferred study advance for %s failed", owner_key, exc_info=task.exception())

    async def _advance_later(self, owner_key: int, generation: int) -> None:
        await asyncio.sleep(self.advance_delay)
        async with self.sessions.lock(owner_key):
            session = self._session(owner_key)
            state = session.state
            if session.generation != generation or not isinstance(state, Studying) or not state.awaiting_next:
                logger.debug("Dropping stale study advance for %s", owner_key)
                return
            await self._guarded(owner_key, self._show_current_card)
