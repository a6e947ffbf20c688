import logging
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Значение-заглушка из шаблона развёртывания: считаем, что токен не задан
KMS_TOKEN_PLACEHOLDER = "<kmsEncryptedToken>"


class Settings(BaseSettings):
    """Настройки приложения (берутся из окружения или .env)"""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True)

    # Токен slash-команды Slack, зашифрованный KMS (base64 CiphertextBlob)
    kms_encrypted_token: Optional[str] = Field(None, validation_alias="KMS_ENCRYPTED_TOKEN")
    aws_region: Optional[str] = Field(None, validation_alias="AWS_REGION")

    # Хранилище записей ротации: "dynamodb" или "memory" (локальный запуск)
    rotation_store_backend: str = Field("dynamodb", validation_alias="ROTATION_STORE_BACKEND")
    rotation_table: str = Field("SlackKnowledgeSharing", validation_alias="ROTATION_TABLE")

    # Кто выбирает следующего докладчика: Lambda-функция или, если задан URL, вебхук
    next_up_function: str = Field("KnowledgeSharingNextUp", validation_alias="NEXT_UP_FUNCTION")
    next_up_webhook_url: Optional[str] = Field(None, validation_alias="NEXT_UP_WEBHOOK_URL")
    next_up_webhook_timeout: int = Field(10, validation_alias="NEXT_UP_WEBHOOK_TIMEOUT")

    slash_command_name: str = Field("/knowledgesharing", validation_alias="SLASH_COMMAND_NAME")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(8000, validation_alias="PORT")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        level = str(v).upper()
        if level not in logging._nameToLevel:
            raise ValueError(f"invalid log level: {v}")
        return level

    @field_validator("rotation_store_backend", mode="before")
    @classmethod
    def validate_store_backend(cls, v):
        backend = str(v).lower()
        if backend not in ("dynamodb", "memory"):
            raise ValueError(f"invalid rotation store backend: {v}")
        return backend

    def get_encrypted_token(self) -> Optional[str]:
        """Зашифрованный токен или None, если он не задан (или оставлена заглушка)."""
        token = (self.kms_encrypted_token or "").strip()
        if not token or token == KMS_TOKEN_PLACEHOLDER:
            return None
        return token


settings = Settings()
