"""Hand-written answers returned without calling Dify."""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Iterable, Union

from ..models import GatewayReply

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CannedResponse:
    """A fixed answer for messages matching `pattern`."""
    pattern: re.Pattern
    answer: str
    response_id: str

    def as_reply(self) -> GatewayReply:
        return GatewayReply(answer_text=self.answer, message_id=self.response_id)


def _rule(pattern: str, answer: str, response_id: str) -> CannedResponse:
    return CannedResponse(re.compile(pattern, re.IGNORECASE), answer, response_id)


# Order matters: the first matching rule wins.
DEFAULT_RESPONSES: tuple[CannedResponse, ...] = (
    _rule(
        r"\b(help|assistance|guide|tutorial|how to|what can you do)\b",
        "I can help you with a variety of tasks! Here are some things you can do:\n\n"
        "• Ask a question with `/claude`, `/chatgpt` or `/gemini`\n"
        "• Mention me with your question in any channel\n"
        "• Send me a direct message\n"
        "• Type `use claude`, `use chatgpt` or `use gemini` to pick your default model\n"
        "• Use `/help` to see all commands\n\n"
        "Is there anything specific you'd like help with?",
        "predefined_help_response",
    ),
    _rule(
        r"\b(hello|hi|hey|howdy|greetings|good morning|good afternoon|good evening)\b",
        "Hello there! How can I assist you today?",
        "predefined_greeting_response",
    ),
    _rule(
        r"\b(thanks|thank you|thx|appreciate it|grateful)\b",
        "You're welcome! I'm happy to help. Is there anything else you need?",
        "predefined_thanks_response",
    ),
    _rule(
        r"\b(who are you|what are you|about you|about yourself|tell me about you)\b",
        "I'm a Slack bot that gives you access to AI models like Claude, ChatGPT and Gemini "
        "without leaving Slack. Mention me in a channel, send me a direct message, or use "
        "`/claude`, `/chatgpt` or `/gemini` followed by your question.",
        "predefined_about_response",
    ),
    _rule(
        r"\b(which model|what models|available models|ai models|switch model)\b",
        "I support several AI models:\n\n"
        "• *Claude* - Anthropic's conversational AI\n"
        "• *ChatGPT* - OpenAI's language model\n"
        "• *Gemini* - Google's multimodal AI\n\n"
        "Type `use claude`, `use chatgpt` or `use gemini` to choose your default, or ask "
        "one directly with `/claude`, `/chatgpt` or `/gemini`.",
        "predefined_models_response",
    ),
)


class CannedResponseMatcher:
    """Ordered table of canned responses.

    Usage:
        matcher = CannedResponseMatcher()
        hit = matcher.match("can you help me?")
        if hit:
            reply = hit.as_reply()
    """

    def __init__(self, responses: Optional[Iterable[CannedResponse]] = None):
        self._responses: list[CannedResponse] = list(
            DEFAULT_RESPONSES if responses is None else responses
        )

    def __len__(self) -> int:
        return len(self._responses)

    @property
    def responses(self) -> tuple[CannedResponse, ...]:
        return tuple(self._responses)

    def match(self, text: Optional[str]) -> Optional[CannedResponse]:
        """Return the first response whose pattern occurs in `text`."""
        if not text or not isinstance(text, str):
            return None
        normalized = text.strip()
        for response in self._responses:
            if response.pattern.search(normalized):
                return response
        return None

    def add(self, pattern: Union[str, re.Pattern], answer: str, response_id: str) -> CannedResponse:
        """Append a rule after the existing ones.

        Raises:
            ValueError: If the pattern does not compile or the answer is empty
        """
        if not answer or not response_id:
            raise ValueError("Canned response needs an answer and a response_id")
        if isinstance(pattern, str):
            try:
                pattern = re.compile(pattern, re.IGNORECASE)
            except re.error as e:
                raise ValueError(f"Invalid canned response pattern {pattern!r}: {e}") from e
        elif not isinstance(pattern, re.Pattern):
            raise ValueError("Canned response pattern must be a string or compiled regex")

        response = CannedResponse(pattern, answer, response_id)
        self._responses.append(response)
        logger.info(f"Registered canned response: {response_id}")
        return response

    def load(self, rules: Optional[list[dict]]) -> int:
        """Append rules from config (`pattern`, `answer`, `response_id` keys).

        Returns:
            Number of rules added
        """
        added = 0
        for rule in rules or []:
            try:
                self.add(rule["pattern"], rule["answer"], rule["response_id"])
                added += 1
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid canned response {rule!r}: {e}")
        return added
