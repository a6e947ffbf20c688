"""
Тексты ответов на slash-команду.
"""
import json
from typing import Any, Dict


def format_usage(command_name: str) -> str:
    """Справка: ровно три поддерживаемые формы команды."""
    return "\n".join([
        "Usage:",
        f"  {command_name} next",
        f"  {command_name} log [@user [yyyy-mm-dd]]",
        f"  {command_name} remove @user",
    ])


def format_in_channel(text: str) -> Dict[str, str]:
    """Сообщение, видимое всему каналу, а не только автору команды."""
    return {"response_type": "in_channel", "text": text}


def format_logged(user: str) -> Dict[str, str]:
    return format_in_channel(f"Thanks for sharing your knowledge, <{user}>!")


def format_cleared(user: str) -> Dict[str, str]:
    return format_in_channel(f"Cleared knowledge sharing records for user: {user}")


def format_error(prefix: str, details: Dict[str, Any]) -> str:
    """
    Диагностика ошибки внешнего сервиса.

    Args:
        prefix: Что не удалось сделать, например "Unable to delete item."
        details: Данные об ошибке (код, сообщение, статус)

    Returns:
        Текст вида "<prefix> Error JSON:\\n{...}"
    """
    return f"{prefix} Error JSON:\n" + json.dumps(details, indent=2, default=str)
