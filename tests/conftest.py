import base64
from typing import List
from unittest.mock import MagicMock

import boto3
import pytest

from knowledge_bot.bot.commands import RotationDispatcher
from knowledge_bot.bot.secrets import SlackTokenProvider
from knowledge_bot.errors import TriggerError
from knowledge_bot.models.rotation import SlashCommandRequest
from knowledge_bot.nextup.trigger import SelectionTrigger
from knowledge_bot.storage.rotation_store import MemoryRotationStore

SLACK_TOKEN = "slack-verification-token"
ENCRYPTED_TOKEN = base64.b64encode(b"kms-ciphertext").decode("ascii")


class RecordingTrigger(SelectionTrigger):
    """Trigger double that counts invocations and can be told to fail"""

    def __init__(self, fail: bool = False):
        self.name = "KnowledgeSharingNextUp"
        self.calls: List[int] = []
        self.fail = fail

    async def trigger(self) -> None:
        self.calls.append(1)
        if self.fail:
            raise TriggerError(
                "rejected",
                details={"code": "TooManyRequestsException", "message": "Rate exceeded"},
            )


@pytest.fixture
def kms_client() -> MagicMock:
    client = MagicMock()
    client.decrypt.return_value = {"Plaintext": SLACK_TOKEN.encode("ascii")}
    return client


@pytest.fixture
def token_provider(kms_client: MagicMock) -> SlackTokenProvider:
    return SlackTokenProvider(ENCRYPTED_TOKEN, kms_client_factory=lambda: kms_client)


@pytest.fixture
def memory_store() -> MemoryRotationStore:
    return MemoryRotationStore()


@pytest.fixture
def trigger() -> RecordingTrigger:
    return RecordingTrigger()


@pytest.fixture
def dispatcher(memory_store, trigger, token_provider) -> RotationDispatcher:
    return RotationDispatcher(
        store=memory_store,
        trigger=trigger,
        token_provider=token_provider,
        clock=lambda: 1_700_000_000_000,
    )


@pytest.fixture
def make_request():
    def _make(text: str, token: str = SLACK_TOKEN, user_name: str = "alice") -> SlashCommandRequest:
        return SlashCommandRequest(
            token=token,
            command="/knowledgesharing",
            channel_name="general",
            text=text,
            user_name=user_name,
        )
    return _make


@pytest.fixture
def no_aws_region(monkeypatch, tmp_path):
    """Environment where botocore cannot resolve a region"""
    for name in ("AWS_REGION", "AWS_DEFAULT_REGION", "AWS_PROFILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "missing-config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "missing-credentials"))
    monkeypatch.setattr(boto3, "DEFAULT_SESSION", None)
