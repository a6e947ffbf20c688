import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from knowledge_bot.errors import StoreError
from knowledge_bot.models.rotation import RotationEntry

logger = logging.getLogger(__name__)
_serializer = TypeSerializer()


class RotationStore(ABC):
    """Хранилище записей ротации: одна запись на пользователя"""

    @abstractmethod
    async def put_entry(self, entry: RotationEntry) -> None:
        """
        Создать или перезаписать запись пользователя.

        Args:
            entry: Запись с ключом user

        Raises:
            StoreError: если хранилище недоступно
        """
        pass

    @abstractmethod
    async def delete_entry(self, user: str) -> None:
        """
        Удалить запись пользователя. Отсутствие записи ошибкой не считается.

        Args:
            user: Ключ записи, например "@alice"

        Raises:
            StoreError: если хранилище недоступно
        """
        pass


def _client_error_details(e: Exception) -> Dict[str, Any]:
    if isinstance(e, ClientError):
        error = e.response.get("Error", {})
        meta = e.response.get("ResponseMetadata", {})
        return {
            "code": error.get("Code"),
            "message": error.get("Message"),
            "statusCode": meta.get("HTTPStatusCode"),
            "retryable": error.get("Code") in ("ProvisionedThroughputExceededException", "ThrottlingException"),
        }
    return {"code": type(e).__name__, "message": str(e), "retryable": False}


class DynamoRotationStore(RotationStore):
    """Таблица DynamoDB: ключ user (S), атрибут lastDelivered (N)"""

    def __init__(self, table_name: str, client: Optional[Any] = None, region_name: Optional[str] = None):
        self.table_name = table_name
        self._client = client
        self._region_name = region_name

    def _get_client(self) -> Any:
        # Клиент создаётся при первой операции: ошибка конфигурации (например,
        # не задан регион) становится StoreError, а не падением запроса
        if self._client is None:
            self._client = boto3.client("dynamodb", region_name=self._region_name)
        return self._client

    async def put_entry(self, entry: RotationEntry) -> None:
        logger.info("Writing rotation entry for %s to %s", entry.user, self.table_name)
        try:
            # boto3 синхронный, выносим вызов из event loop
            await asyncio.to_thread(
                self._get_client().put_item,
                TableName=self.table_name,
                Item={k: _serializer.serialize(v) for k, v in entry.to_record().items()},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("put_item failed for %s: %s", entry.user, e)
            raise StoreError(str(e), details=_client_error_details(e))

    async def delete_entry(self, user: str) -> None:
        logger.info("Deleting rotation entry for %s from %s", user, self.table_name)
        try:
            await asyncio.to_thread(
                self._get_client().delete_item,
                TableName=self.table_name,
                Key={"user": _serializer.serialize(user)},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("delete_item failed for %s: %s", user, e)
            raise StoreError(str(e), details=_client_error_details(e))


class MemoryRotationStore(RotationStore):
    """In-memory хранилище для локального запуска и тестов"""

    def __init__(self):
        self._entries: Dict[str, RotationEntry] = {}

    async def put_entry(self, entry: RotationEntry) -> None:
        self._entries[entry.user] = entry

    async def delete_entry(self, user: str) -> None:
        self._entries.pop(user, None)

    def get_entry(self, user: str) -> Optional[RotationEntry]:
        return self._entries.get(user)

    def list_entries(self) -> List[RotationEntry]:
        return sorted(self._entries.values(), key=lambda e: e.user)
