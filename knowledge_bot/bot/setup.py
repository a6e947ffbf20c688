import logging

from knowledge_bot.config import Settings, settings as default_settings
from knowledge_bot.bot.commands import RotationDispatcher
from knowledge_bot.bot.secrets import SlackTokenProvider
from knowledge_bot.nextup.trigger import LambdaSelectionTrigger, SelectionTrigger, WebhookSelectionTrigger
from knowledge_bot.storage.rotation_store import DynamoRotationStore, MemoryRotationStore, RotationStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> RotationStore:
    if settings.rotation_store_backend == "memory":
        logger.warning("Using in-memory rotation store, records are lost on restart")
        return MemoryRotationStore()
    return DynamoRotationStore(settings.rotation_table, region_name=settings.aws_region)


def create_trigger(settings: Settings) -> SelectionTrigger:
    if settings.next_up_webhook_url:
        return WebhookSelectionTrigger(settings.next_up_webhook_url, timeout=settings.next_up_webhook_timeout)
    return LambdaSelectionTrigger(settings.next_up_function, region_name=settings.aws_region)


def create_dispatcher(settings: Settings = default_settings) -> RotationDispatcher:
    """Создание и настройка диспетчера команд"""
    encrypted_token = settings.get_encrypted_token()
    if not encrypted_token:
        logger.warning("KMS_ENCRYPTED_TOKEN is not set, all commands will be rejected")

    dispatcher = RotationDispatcher(
        store=create_store(settings),
        trigger=create_trigger(settings),
        token_provider=SlackTokenProvider(encrypted_token, region_name=settings.aws_region),
        command_name=settings.slash_command_name,
    )
    logger.info(
        "Dispatcher created: store=%s trigger=%s",
        type(dispatcher.store).__name__, dispatcher.trigger.name,
    )
    return dispatcher
