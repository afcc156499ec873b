"""
Slack slash command webhook
"""
from urllib.parse import parse_qsl

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from coffeebot.core.logging_config import get_logger
from coffeebot.models import SlashCommand
from coffeebot.slack.dispatcher import CommandDispatcher
from coffeebot.slack.responses import generic_failure
from coffeebot.slack.verification import RequestVerifier

router = APIRouter(tags=["slack"])
logger = get_logger("coffeebot.api.slack")


def _response(payload) -> JSONResponse:
    return JSONResponse(content=payload.model_dump(exclude_none=True), status_code=200)


async def handle_slash_command(request: Request) -> JSONResponse:
    body = await request.body()
    verifier: RequestVerifier = request.app.state.request_verifier
    if not verifier.is_authorised(body, request.headers, request.query_params.get("key")):
        return JSONResponse(content={"result": "nope"}, status_code=200)

    try:
        form = dict(parse_qsl(body.decode("utf-8"), keep_blank_values=True))
        command = SlashCommand(**form)
    except (UnicodeDecodeError, ValidationError) as e:
        logger.warning(f"Malformed slash command payload: {e}")
        return _response(generic_failure())

    dispatcher: CommandDispatcher = request.app.state.dispatcher
    try:
        return _response(await dispatcher.dispatch(command))
    except Exception as e:
        logger.error(f"Error handling command '{command.text}' from {command.user_id}: {e}", exc_info=True)
        return _response(generic_failure())


@router.post("/addCoffee")
async def add_coffee(request: Request):
    """Slash command endpoint registered with older installs"""
    return await handle_slash_command(request)


@router.post("/slack/commands")
async def slack_commands(request: Request):
    """Handle a /coffee slash command"""
    return await handle_slash_command(request)
