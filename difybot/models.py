"""Shared data models for the Dify Slack bot."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Any, Union

from .common.enums import ModelName

NO_RESPONSE_TEXT = "No response from Dify"


@dataclass
class SlashCommand:
    """Slash command invocation (`/claude what is ...`).

    Commands are delivered once by Slack, so they are never deduplicated.
    """
    name: str
    argument_text: str
    user_id: str
    channel_id: str

    @classmethod
    def from_payload(cls, command: dict) -> "SlashCommand":
        return cls(
            name=command.get("command", "").lstrip("/").lower(),
            argument_text=(command.get("text") or "").strip(),
            user_id=command.get("user_id", ""),
            channel_id=command.get("channel_id", ""),
        )


@dataclass
class Mention:
    """`app_mention` event. `message_id` is the event's `ts`."""
    message_id: str
    text: str
    user_id: str
    channel_id: str
    thread_id: Optional[str] = None

    @classmethod
    def from_event(cls, event: dict) -> "Mention":
        return cls(
            message_id=event.get("ts", ""),
            text=event.get("text") or "",
            user_id=event.get("user", ""),
            channel_id=event.get("channel", ""),
            thread_id=event.get("thread_ts"),
        )


@dataclass
class DirectMessage:
    """Generic `message` event.

    Despite the name, the event may come from any channel the bot is in; the
    router confirms the channel type before calling the gateway.
    """
    message_id: str
    text: str
    user_id: str
    channel_id: str
    thread_id: Optional[str] = None
    is_bot: bool = False
    subtype: Optional[str] = None

    @classmethod
    def from_event(cls, event: dict) -> "DirectMessage":
        subtype = event.get("subtype")
        return cls(
            message_id=event.get("ts", ""),
            text=event.get("text") or "",
            user_id=event.get("user", ""),
            channel_id=event.get("channel", ""),
            thread_id=event.get("thread_ts"),
            is_bot=bool(event.get("bot_id")) or subtype == "bot_message",
            subtype=subtype,
        )


@dataclass
class InteractiveAction:
    """Block Kit interaction (button or select menu)."""
    action_id: str
    value: Optional[str]
    user_id: str
    channel_id: str

    @classmethod
    def from_body(cls, body: dict) -> "InteractiveAction":
        action = (body.get("actions") or [{}])[0]
        value = action.get("value")
        selected = action.get("selected_option")
        if value is None and selected:
            value = selected.get("text", {}).get("text")
        return cls(
            action_id=action.get("action_id", ""),
            value=value,
            user_id=body.get("user", {}).get("id", ""),
            channel_id=(body.get("channel") or {}).get("id", ""),
        )


InboundEvent = Union[SlashCommand, Mention, DirectMessage, InteractiveAction]


@dataclass
class Usage:
    """Token usage reported by Dify in `metadata.usage`.

    Attributes:
        prompt_tokens: Tokens in the prompt
        completion_tokens: Tokens in the answer
        total_tokens: Sum reported by the gateway
        latency: Remote latency in fractional seconds
    """
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    latency: float = 0.0

    @property
    def latency_ms(self) -> int:
        # Half-up rounding; round() would use banker's rounding.
        return int(self.latency * 1000 + 0.5)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["Usage"]:
        if not data:
            return None
        try:
            return cls(
                prompt_tokens=int(data.get("prompt_tokens") or 0),
                completion_tokens=int(data.get("completion_tokens") or 0),
                total_tokens=int(data.get("total_tokens") or 0),
                latency=float(data.get("latency") or 0.0),
            )
        except (TypeError, ValueError):
            return None


@dataclass
class GatewayReply:
    """Answer produced by the gateway or synthesized from a canned response.

    Attributes:
        answer_text: Answer text; None degrades to NO_RESPONSE_TEXT when rendered
        message_id: Dify message id (or the canned response id)
        usage: Optional token usage statistics
        conversation_id: Dify conversation id, when the gateway returns one
    """
    answer_text: Optional[str]
    message_id: str
    usage: Optional[Usage] = None
    conversation_id: Optional[str] = None

    @classmethod
    def from_json(cls, data: dict) -> "GatewayReply":
        answer = data.get("answer")
        return cls(
            answer_text=NO_RESPONSE_TEXT if answer is None else str(answer),
            message_id=str(data.get("message_id") or ""),
            usage=Usage.from_dict((data.get("metadata") or {}).get("usage")),
            conversation_id=data.get("conversation_id"),
        )


@dataclass
class FeedbackResult:
    """Outcome of a best-effort feedback submission."""
    success: bool
    error: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class UserPreference:
    """A user's last selected model."""
    model: ModelName
    last_active_at: datetime = field(default_factory=datetime.utcnow)
