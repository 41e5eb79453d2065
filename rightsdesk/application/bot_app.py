from __future__ import annotations

import logging
from typing import List

from aiogram import Dispatcher, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message

from ..domain.security import SlidingWindowLimiter
from ..infrastructure.metrics import metrics
from .container import AppContainer
from .pages import Page, PageButton
from .workflow import BotWorkflow


class TelegramBotApp:
    def __init__(
        self,
        container: AppContainer,
        *,
        max_message_length: int = 3800,
        limiter: SlidingWindowLimiter | None = None,
    ):
        self.container = container
        self.max_message_length = max_message_length
        self.workflow = BotWorkflow(
            accounts=container.accounts_service,
            portal_queries=container.portal_queries,
            tenants=container.tenant_service,
            presenter=container.presenter,
            tenant_slug=container.config.portal_tenant,
        )
        self.limiter = limiter or SlidingWindowLimiter(
            container.config.bot_rate_limit, container.config.bot_rate_window_seconds
        )
        self._logger = logging.getLogger(__name__)

    def _chunk_text(self, text: str) -> List[str]:
        lines = text.split("\n")
        chunks: list[str] = []
        current = ""
        for line in lines:
            addition = line if not current else "\n" + line
            if len(current) + len(addition) <= self.max_message_length:
                current += addition
                continue
            if current:
                chunks.append(current)
            current = line
            while len(current) > self.max_message_length:
                chunks.append(current[: self.max_message_length])
                current = current[self.max_message_length :]
        if current:
            chunks.append(current)
        return chunks

    def _build_markup(self, buttons: list[list[PageButton]]):
        if not buttons:
            return None
        rows = [
            [InlineKeyboardButton(text=btn.text, callback_data=btn.callback_data) for btn in row]
            for row in buttons
        ]
        return InlineKeyboardMarkup(inline_keyboard=rows)

    async def _render_page(self, chat_id: int, bot, page: Page):
        chunks = self._chunk_text(page.text)
        markup = self._build_markup(page.buttons)
        for idx, chunk in enumerate(chunks):
            is_last = idx == len(chunks) - 1
            await bot.send_message(
                chat_id,
                chunk,
                parse_mode=page.parse_mode,
                disable_web_page_preview=page.disable_preview,
                reply_markup=markup if is_last else None,
            )

    async def _safe_answer(self, cq: CallbackQuery):
        try:
            await cq.answer()
        except TelegramBadRequest as exc:
            if "query is too old" in str(exc).lower():
                return
            raise

    def _format_user(self, tg_user) -> str:
        if not tg_user:
            return "unknown (id=?)"
        username = tg_user.username or tg_user.first_name or "unknown"
        return f"{username} (id={tg_user.id})"

    def _throttled(self, tg_user, action: str) -> bool:
        if not tg_user or self.limiter.allow(str(tg_user.id)):
            return False
        self._logger.warning("Rate limit hit by %s on %s", self._format_user(tg_user), action)
        metrics.event("rate_limited", source="telegram", data={"user_id": tg_user.id, "action": action})
        return True

    async def _handle(self, tg_user, chat_id: int, bot, action: str, handler):
        self._logger.info("User %s triggered %s", self._format_user(tg_user), action)
        if self._throttled(tg_user, action):
            await self._render_page(chat_id, bot, self.container.presenter.rate_limited_page())
            return
        extra = {"user_id": tg_user.id} if tg_user else None
        async with metrics.span_async(action, source="telegram", extra=extra):
            page = await handler(tg_user.id if tg_user else 0)
            if page:
                await self._render_page(chat_id, bot, page)

    def build_dispatcher(self) -> Dispatcher:
        dp = Dispatcher(storage=MemoryStorage())

        @dp.message(CommandStart())
        async def start(m: Message):
            await self._handle(m.from_user, m.chat.id, m.bot, "message:/start", self.workflow.start_page)

        @dp.message(Command("link"))
        async def link(m: Message, command: CommandObject):
            token = command.args or ""
            await self._handle(
                m.from_user,
                m.chat.id,
                m.bot,
                "message:/link",
                lambda tg_user_id: self.workflow.link_chat(tg_user_id, token),
            )

        @dp.callback_query(F.data.startswith("menu:"))
        async def menu(cq: CallbackQuery):
            await self._safe_answer(cq)
            data = cq.data or ""
            action = data.split(":", 1)[1] if ":" in data else ""
            await self._handle(
                cq.from_user,
                cq.message.chat.id,
                cq.bot,
                f"callback:{data or '<empty>'}",
                lambda tg_user_id: self.workflow.menu_page(tg_user_id, action),
            )

        return dp
