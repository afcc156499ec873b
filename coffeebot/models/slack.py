from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class SlashCommand(BaseModel):
    """The fields of a slack slash command payload used by the bot"""
    command: str
    text: str = ""
    user_id: str
    user_name: str
    team_id: str
    team_domain: str = ""
    channel_id: Optional[str] = None


class SlackResponse(BaseModel):
    response_type: Literal["ephemeral", "in_channel"] = "ephemeral"
    text: Optional[str] = None
    blocks: Optional[List[Dict[str, Any]]] = None

    @classmethod
    def ephemeral(cls, text: str) -> "SlackResponse":
        return cls(response_type="ephemeral", text=text)

    @classmethod
    def in_channel(cls, text: Optional[str] = None, blocks: Optional[List[Dict[str, Any]]] = None) -> "SlackResponse":
        return cls(response_type="in_channel", text=text, blocks=blocks)


def mrkdwn_section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


class CommandContext(BaseModel):
    """Database identities resolved for the caller of a command"""
    db_team_id: int
    db_team_label: Optional[str] = None
    db_abstract_user_id: int
    db_user_id: int
    db_user_is_admin: bool = Field(default=False)
