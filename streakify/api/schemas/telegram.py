from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class TelegramUser(BaseModel):
    """Sender of a Telegram message."""

    model_config = ConfigDict(extra="ignore")

    id: int
    first_name: str = ""
    username: str | None = None


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    type: str = "private"


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int
    sender: TelegramUser | None = Field(default=None, alias="from")
    chat: TelegramChat
    text: str | None = None
    date: int = 0


class TelegramUpdate(BaseModel):
    """Webhook update payload; only plain messages are handled."""

    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: TelegramMessage | None = None
