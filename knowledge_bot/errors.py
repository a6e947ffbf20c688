"""
Исключения бота. Все они перехватываются в webhooks/handlers.py и
превращаются в ответ Slack; наружу не выходят.
"""
from typing import Any, Dict, Optional


class KnowledgeBotError(Exception):
    """Базовая ошибка с диагностикой, пригодной для json.dumps."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {"message": message}


class TokenError(KnowledgeBotError):
    """Токен Slack недоступен: запрос отклоняется без обращения к хранилищу."""


class TokenNotConfiguredError(TokenError):
    def __init__(self):
        super().__init__("Token has not been set.")


class TokenDecryptError(TokenError):
    pass


class StoreError(KnowledgeBotError):
    """Хранилище ротации не выполнило операцию."""


class TriggerError(KnowledgeBotError):
    """Сервис выбора следующего докладчика не принял вызов."""
