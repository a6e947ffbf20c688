import logging
from http import HTTPStatus

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from knowledge_bot.bot.commands import RotationDispatcher
from knowledge_bot.models.rotation import CommandReply, SlashCommandRequest

logger = logging.getLogger(__name__)


def render_reply(reply: CommandReply) -> Response:
    """Превратить результат команды в HTTP ответ для Slack"""
    if reply.payload is not None:
        return JSONResponse(status_code=reply.status, content=reply.payload)
    if reply.message is not None:
        return PlainTextResponse(status_code=reply.status, content=reply.message)
    return Response(status_code=reply.status)


async def handle_slash_command(request: Request, dispatcher: RotationDispatcher) -> Response:
    """Основной обработчик slash-команды: форма Slack -> диспетчер -> ответ"""
    try:
        raw_body = await request.body()
        slack_request = SlashCommandRequest.from_form_body(raw_body)
        logger.info(
            "Processing event: command=%s channel=%s",
            slack_request.command, slack_request.channel_name,
        )

        reply = await dispatcher.dispatch(slack_request)

        logger.info("Responding with status %s", int(reply.status))
        logger.debug("Responding with body: %s", reply.payload or reply.message)
        return render_reply(reply)
    except Exception as e:
        logger.exception("Error processing slash command: %s", e)
        return PlainTextResponse(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            content="Internal server error",
        )
