"""
Токен проверки запросов Slack.

Токен хранится зашифрованным KMS и расшифровывается один раз за время
жизни процесса; дальше все запросы сверяются с расшифрованным значением.
"""
import base64
import binascii
import logging
import threading
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from knowledge_bot.errors import TokenDecryptError, TokenNotConfiguredError

logger = logging.getLogger(__name__)


class SlackTokenProvider:
    """Ленивая одноразовая расшифровка токена, защищённая от гонки первых запросов."""

    def __init__(
        self,
        encrypted_token: Optional[str],
        kms_client_factory: Optional[Callable[[], Any]] = None,
        region_name: Optional[str] = None,
    ):
        self._encrypted_token = encrypted_token
        self._kms_client_factory = kms_client_factory or (lambda: boto3.client("kms", region_name=region_name))
        self._token: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def is_unwrapped(self) -> bool:
        return self._token is not None

    def get_token(self) -> str:
        # Повторное использование процесса: токен уже в памяти
        if self._token is not None:
            return self._token

        with self._lock:
            if self._token is None:
                self._token = self._unwrap()
        return self._token

    def _unwrap(self) -> str:
        if not self._encrypted_token:
            logger.error("Slack token is not configured (KMS_ENCRYPTED_TOKEN)")
            raise TokenNotConfiguredError()

        try:
            blob = base64.b64decode(self._encrypted_token, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.error("KMS_ENCRYPTED_TOKEN is not valid base64: %s", e)
            raise TokenDecryptError(
                "Encrypted token is not valid base64",
                details={"code": "InvalidCiphertext", "message": str(e)},
            )

        logger.info("Decrypting Slack token with KMS")
        try:
            data = self._kms_client_factory().decrypt(CiphertextBlob=blob)
        except ClientError as e:
            error = e.response.get("Error", {})
            logger.error("Decrypt error: %s", error)
            raise TokenDecryptError(
                error.get("Message") or str(e),
                details={
                    "code": error.get("Code"),
                    "message": error.get("Message"),
                    "statusCode": e.response.get("ResponseMetadata", {}).get("HTTPStatusCode"),
                },
            )
        except BotoCoreError as e:
            logger.error("Decrypt error: %s", e)
            raise TokenDecryptError(str(e), details={"code": type(e).__name__, "message": str(e)})

        try:
            return data["Plaintext"].decode("ascii")
        except UnicodeDecodeError as e:
            logger.error("Decrypted token is not ASCII")
            raise TokenDecryptError(
                "Decrypted token is not ASCII",
                details={"code": "InvalidPlaintext", "message": str(e)},
            )
