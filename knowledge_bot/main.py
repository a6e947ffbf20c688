import logging
from http import HTTPStatus
from datetime import datetime, timezone
import threading
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from knowledge_bot.config import settings
from knowledge_bot.bot.commands import RotationDispatcher
from knowledge_bot.bot.setup import create_dispatcher
from knowledge_bot.webhooks.handlers import handle_slash_command

# Настройка логирования
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Инициализация FastAPI
app = FastAPI(
    title="Knowledge Sharing Bot",
    version="1.0.0",
    description="Slack slash command for the knowledge sharing rotation"
)


# Один диспетчер (и один расшифрованный токен) на процесс
_dispatcher: Optional[RotationDispatcher] = None
_dispatcher_lock = threading.Lock()


def get_dispatcher() -> RotationDispatcher:
    """Получить диспетчер, создав его при первом запросе"""
    global _dispatcher
    if _dispatcher is None:
        with _dispatcher_lock:
            if _dispatcher is None:
                _dispatcher = create_dispatcher(settings)
    return _dispatcher


@app.on_event("startup")
async def on_startup():
    logger.info("Starting Knowledge Sharing Bot...")


# Обработка slash-команды /knowledgesharing
@app.post("/slack/command")
async def slash_command_handler(
    request: Request,
    dispatcher: RotationDispatcher = Depends(get_dispatcher),
) -> Response:
    return await handle_slash_command(request, dispatcher)


@app.get("/health")
async def health_check():
    """Health check для Kubernetes/Docker"""
    return JSONResponse(
        status_code=HTTPStatus.OK,
        content={
            "status": "healthy",
            "service": "knowledge-sharing-bot",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def run() -> None:
    """Запуск под uvicorn (точка входа knowledge-sharing-bot)"""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
