"""
Запуск сервиса, который выбирает следующего докладчика и сам объявляет его в Slack.

Бот не ждёт результата выбора: достаточно подтверждения, что вызов принят.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from knowledge_bot.errors import TriggerError

logger = logging.getLogger(__name__)

# Выбор не зависит от входных данных, передаём пустой набор записей
NEXT_UP_PAYLOAD: Dict[str, Any] = {"Records": []}


class SelectionTrigger(ABC):
    name: str

    @abstractmethod
    async def trigger(self) -> None:
        """
        Отправить вызов и дождаться только его принятия.

        Raises:
            TriggerError: если вызов отклонён
        """
        pass


class LambdaSelectionTrigger(SelectionTrigger):
    """Асинхронный вызов Lambda-функции (InvocationType=Event)"""

    def __init__(self, function_name: str, client: Optional[Any] = None, region_name: Optional[str] = None):
        self.name = function_name
        self._client = client
        self._region_name = region_name

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("lambda", region_name=self._region_name)
        return self._client

    async def trigger(self) -> None:
        logger.info("Triggering %s", self.name)
        try:
            resp = await asyncio.to_thread(
                self._get_client().invoke,
                FunctionName=self.name,
                InvocationType="Event",
                Payload=json.dumps(NEXT_UP_PAYLOAD).encode("utf-8"),
            )
        except ClientError as e:
            error = e.response.get("Error", {})
            logger.error("Error triggering %s: %s", self.name, error)
            raise TriggerError(
                str(e),
                details={
                    "code": error.get("Code"),
                    "message": error.get("Message"),
                    "statusCode": e.response.get("ResponseMetadata", {}).get("HTTPStatusCode"),
                },
            )
        except BotoCoreError as e:
            logger.error("Error triggering %s: %s", self.name, e)
            raise TriggerError(str(e), details={"code": type(e).__name__, "message": str(e)})

        status_code = resp.get("StatusCode")
        if status_code != 202 or resp.get("FunctionError"):
            logger.error("%s did not accept invocation: status=%s", self.name, status_code)
            raise TriggerError(
                f"Invocation of {self.name} was not accepted",
                details={"statusCode": status_code, "functionError": resp.get("FunctionError")},
            )
        logger.info("Called %s", self.name)


class WebhookSelectionTrigger(SelectionTrigger):
    """Вызов через HTTP вебхук; принятым считается любой 2xx ответ"""

    def __init__(self, url: str, timeout: int = 10, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.name = url
        self.url = url
        self._timeout = httpx.Timeout(timeout, connect=timeout)
        self._transport = transport

    async def trigger(self) -> None:
        logger.info("Triggering next-up webhook %s", self.url)
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                resp = await client.post(self.url, json=NEXT_UP_PAYLOAD)
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"HTTP error {e.response.status_code} when triggering next-up: {e.response.text}")
                raise TriggerError(
                    str(e),
                    details={"statusCode": e.response.status_code, "message": e.response.text},
                )
            except httpx.HTTPError as e:
                logger.error("Error calling next-up webhook: %s", e)
                raise TriggerError(str(e), details={"code": type(e).__name__, "message": str(e)})
        logger.info("Next-up webhook accepted with status %s", resp.status_code)
