from fastapi import APIRouter
from fastapi import BackgroundTasks
from fastapi import HTTPException
from fastapi import Request

from streakify.api.schemas.telegram import TelegramUpdate
from streakify.api.schemas.users import LinkCodeResponse


router = APIRouter()


@router.post("/telegram/webhook")
def telegram_webhook(
    update: TelegramUpdate, request: Request, background_tasks: BackgroundTasks
) -> dict[str, bool]:
    """Acknowledge a Telegram update and process it after responding."""

    background_tasks.add_task(request.app.state.services.bot.handle_update, update)
    return {"ok": True}


@router.post("/users/{user_id}/telegram/link-code")
def create_link_code(user_id: str, request: Request) -> LinkCodeResponse:
    services = request.app.state.services
    if services.directory.get_user(user_id) is None:
        raise HTTPException(status_code=404, detail="user not found")

    code = services.link_codes.generate(user_id)
    bot_username = services.settings.telegram_bot_username
    return LinkCodeResponse(
        code=code,
        expires_in_minutes=services.settings.link_code_ttl_minutes,
        instructions=(
            f"Send this message to @{bot_username} on Telegram:\n/start {code}"
        ),
    )
