"""Block Kit helpers and formatting of Dify answers for Slack."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..common.enums import ActionId
from ..models import GatewayReply, NO_RESPONSE_TEXT

logger = logging.getLogger(__name__)


def section(text: str) -> dict[str, Any]:
    """Section block with mrkdwn text."""
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def divider() -> dict[str, Any]:
    return {"type": "divider"}


def button(text: str, action_id: str, value: str, style: Optional[str] = None) -> dict[str, Any]:
    """Button element.

    Args:
        text: Button label
        action_id: Action identifier routed back to the bot
        value: Value delivered with the action
        style: "primary", "danger" or None for the default style
    """
    element: dict[str, Any] = {
        "type": "button",
        "text": {"type": "plain_text", "text": text, "emoji": True},
        "action_id": action_id,
        "value": value,
    }
    if style:
        element["style"] = style
    return element


def actions(elements: list[dict[str, Any]]) -> dict[str, Any]:
    return {"type": "actions", "elements": elements}


@dataclass
class TextSection:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return section(self.text)


@dataclass
class Divider:
    def to_dict(self) -> dict[str, Any]:
        return divider()


@dataclass
class FeedbackButton:
    label: str
    action_id: str
    message_id: str
    style: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return button(self.label, self.action_id, self.message_id, self.style)


@dataclass
class ActionRow:
    buttons: list[FeedbackButton] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return actions([b.to_dict() for b in self.buttons])


UIBlock = Union[TextSection, Divider, ActionRow]


@dataclass
class FormattedReply:
    """Slack-ready reply: fallback text plus ordered blocks."""
    text: str
    blocks: list[UIBlock] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {"text": self.text, "blocks": [b.to_dict() for b in self.blocks]}


def feedback_row(message_id: str) -> ActionRow:
    return ActionRow(
        buttons=[
            FeedbackButton("👍 Helpful", ActionId.FEEDBACK_POSITIVE, message_id, "primary"),
            FeedbackButton("👎 Not Helpful", ActionId.FEEDBACK_NEGATIVE, message_id, "danger"),
        ]
    )


def format_reply(reply: GatewayReply, model: Optional[str] = None) -> FormattedReply:
    """Render a gateway answer as Slack blocks.

    Layout: optional model header, the answer, optional usage and latency,
    then the feedback buttons. Never raises.
    """
    text = NO_RESPONSE_TEXT if reply.answer_text is None else reply.answer_text
    blocks: list[UIBlock] = []

    if model:
        blocks.extend([TextSection(f"*Model:* {str(model).upper()}"), Divider()])

    blocks.append(TextSection(text))

    usage = reply.usage
    if usage is not None:
        blocks.extend([
            Divider(),
            TextSection(
                f"*Usage:* {usage.total_tokens} tokens "
                f"({usage.prompt_tokens} prompt + {usage.completion_tokens} completion)"
            ),
            TextSection(f"*Latency:* {usage.latency_ms}ms"),
        ])

    blocks.extend([Divider(), feedback_row(reply.message_id or "")])

    logger.debug(
        f"[DIFY FORMAT] model={model or 'default'}, answer_length={len(text)}, "
        f"has_usage={usage is not None}, blocks={len(blocks)}"
    )
    return FormattedReply(text=text, blocks=blocks)
