"""
Модели ротации докладчиков.

RotationEntry — единственная хранимая сущность: одна запись на пользователя,
повторный log перезаписывает lastDelivered (истории нет).
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs


@dataclass(frozen=True)
class RotationEntry:
    user: str
    # Когда пользователь последний раз выступал, epoch milliseconds
    last_delivered: int

    def to_record(self) -> Dict[str, Any]:
        """Запись в виде атрибутов таблицы (имена как в DynamoDB)."""
        return {"user": self.user, "lastDelivered": self.last_delivered}


@dataclass(frozen=True)
class Command:
    verb: str
    args: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SlashCommandRequest:
    """Поля формы, которую Slack присылает на slash-команду."""
    token: str = ""
    command: str = ""
    channel_name: str = ""
    text: str = ""
    user_name: str = ""

    @classmethod
    def from_form_body(cls, body: bytes) -> "SlashCommandRequest":
        raw = body.decode("utf-8", errors="replace") if isinstance(body, (bytes, bytearray)) else (body or "")
        params = parse_qs(raw, keep_blank_values=True)

        def first(name: str) -> str:
            values = params.get(name) or [""]
            return values[0]

        return cls(
            token=first("token"),
            command=first("command"),
            channel_name=first("channel_name"),
            text=first("text"),
            user_name=first("user_name"),
        )


@dataclass(frozen=True)
class CommandReply:
    """
    Результат обработки команды.

    message — текст для ошибок и справки, payload — сообщение в канал.
    Если не задано ни то, ни другое, ответ отдаётся с пустым телом.
    """
    status: int
    message: Optional[str] = None
    payload: Optional[Dict[str, str]] = None
