"""
Диспетчер slash-команды /knowledgesharing.

Каждый запрос: проверка токена, разбор команды и ровно одна операция —
запись в хранилище ротации или вызов сервиса выбора следующего докладчика.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Callable, Optional

from knowledge_bot.bot.parser import parse_command
from knowledge_bot.bot.secrets import SlackTokenProvider
from knowledge_bot.errors import StoreError, TokenError, TriggerError
from knowledge_bot.models.rotation import Command, CommandReply, RotationEntry, SlashCommandRequest
from knowledge_bot.nextup.trigger import SelectionTrigger
from knowledge_bot.storage.rotation_store import RotationStore
from knowledge_bot.webhooks.formatters import (
    format_cleared,
    format_error,
    format_logged,
    format_usage,
)

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid request token"


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_date_ms(value: str) -> Optional[int]:
    """
    Перевести дату yyyy-mm-dd (или полный ISO datetime) в epoch milliseconds.

    Дата без времени и время без зоны считаются UTC. Для нераспознанной
    строки возвращает None.
    """
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


class RotationDispatcher:

    def __init__(
        self,
        store: RotationStore,
        trigger: SelectionTrigger,
        token_provider: SlackTokenProvider,
        command_name: str = "/knowledgesharing",
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.trigger = trigger
        self.token_provider = token_provider
        self.command_name = command_name
        self._clock = clock

    def usage(self) -> CommandReply:
        return CommandReply(status=HTTPStatus.BAD_REQUEST, message=format_usage(self.command_name))

    async def dispatch(self, request: SlashCommandRequest) -> CommandReply:
        auth_error = await self._authenticate(request.token)
        if auth_error:
            return auth_error

        logger.info(
            "Parsing command line: command=%s channel=%s user=%s",
            request.command, request.channel_name, request.user_name,
        )
        command = parse_command(request.text)
        if command is None:
            return self.usage()

        handlers = {
            "log": self._handle_log,
            "remove": self._handle_remove,
            "next": self._handle_next,
        }
        handler = handlers.get(command.verb)
        if handler is None:
            logger.info("Unknown verb %r, responding with usage", command.verb)
            return self.usage()
        return await handler(command, request)

    async def _authenticate(self, request_token: str) -> Optional[CommandReply]:
        try:
            if self.token_provider.is_unwrapped:
                expected = self.token_provider.get_token()
            else:
                # Первая расшифровка ходит в KMS, не блокируем event loop
                expected = await asyncio.to_thread(self.token_provider.get_token)
        except TokenError as e:
            return CommandReply(status=HTTPStatus.BAD_REQUEST, message=e.message)

        if request_token != expected:
            # Сам токен в лог не пишем
            logger.error("Request token does not match expected")
            return CommandReply(status=HTTPStatus.BAD_REQUEST, message=INVALID_TOKEN_MESSAGE)
        return None

    async def _handle_log(self, command: Command, request: SlashCommandRequest) -> CommandReply:
        if len(command.args) > 2:
            return self.usage()

        if command.args:
            user = command.args[0]
        elif request.user_name:
            user = "@" + request.user_name
        else:
            return self.usage()

        if len(command.args) == 2:
            last_delivered = parse_date_ms(command.args[1])
            if last_delivered is None:
                logger.info("Unparseable date %r in log command", command.args[1])
                return self.usage()
        else:
            last_delivered = self._clock()

        logger.info("Making new record for %s", user)
        try:
            await self.store.put_entry(RotationEntry(user=user, last_delivered=last_delivered))
        except StoreError as e:
            return CommandReply(
                status=HTTPStatus.BAD_REQUEST,
                message=format_error("Unable to record knowledge sharing.", e.details),
            )
        return CommandReply(status=HTTPStatus.OK, payload=format_logged(user))

    async def _handle_remove(self, command: Command, request: SlashCommandRequest) -> CommandReply:
        if len(command.args) != 1:
            return self.usage()

        user = command.args[0]
        logger.info("Removing user %s", user)
        try:
            await self.store.delete_entry(user)
        except StoreError as e:
            return CommandReply(
                status=HTTPStatus.BAD_REQUEST,
                message=format_error("Unable to delete item.", e.details),
            )
        return CommandReply(status=HTTPStatus.OK, payload=format_cleared(user))

    async def _handle_next(self, command: Command, request: SlashCommandRequest) -> CommandReply:
        if command.args:
            return self.usage()

        try:
            await self.trigger.trigger()
        except TriggerError as e:
            return CommandReply(
                status=HTTPStatus.BAD_REQUEST,
                message=format_error(f"Unable to call {self.trigger.name} function;", e.details),
            )
        # Сам выбор объявит сервис-получатель, здесь отвечаем пустым телом
        return CommandReply(status=HTTPStatus.OK)
