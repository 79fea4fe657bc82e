"""Routes Slack commands, events and actions to a single reply path."""

import logging
import re
from typing import Any, Awaitable, Callable, Optional

from ..common.enums import ActionId, ModelName
from ..models import SlashCommand, Mention, DirectMessage, InteractiveAction
from .blocks import format_reply, section
from .canned import CannedResponseMatcher
from .dedup import DedupGuard
from .dify_client import DifyClient
from .errors import ChannelLookupError, GatewayError
from .preferences import PreferenceStore

logger = logging.getLogger(__name__)

HELP_COMMANDS_TEXT = (
    "• `/hello` - Greet the bot\n"
    "• `/help` - Show this help message\n"
    "• `/claude` - Ask a question to Claude AI\n"
    "• `/chatgpt` - Ask a question to ChatGPT\n"
    "• `/gemini` - Ask a question to Gemini"
)
MENTION_ERROR_TEXT = "I'm sorry, I encountered an error processing your request."
FEEDBACK_POSITIVE_TEXT = "Thank you for your positive feedback!"
FEEDBACK_NEGATIVE_TEXT = "Thank you for your feedback. We'll work to improve our responses."
FEEDBACK_ISSUE_TEXT = (
    "Thank you for your feedback! (Note: There was an issue recording it, "
    "but your input is still valuable)"
)
THINKING_TEXT = "_Thinking..._"
MODEL_COMMANDS = {m.value for m in ModelName}

# Message subtypes that never get a reply (edits, deletions, bot posts).
IGNORED_SUBTYPES = {"bot_message", "message_changed", "message_deleted", "channel_join", "channel_leave"}

GREETING_PATTERN = re.compile(r"\bhello\b|\bhi\b|\bhey\b", re.IGNORECASE)
THANKS_PATTERN = re.compile(r"thanks|thank you", re.IGNORECASE)
USE_MODEL_PATTERN = re.compile(r"^use (claude|chatgpt|gemini)$", re.IGNORECASE)

MessageHandler = Callable[[DirectMessage, re.Match, Callable], Awaitable[None]]


def model_error_text(model: str) -> str:
    return f"Error communicating with {str(model).upper()}"


class Router:
    """Decides which handler, if any, answers an inbound Slack unit.

    Precedence is fixed: interactive actions, slash commands, mentions, then
    generic messages. Each path replies at most once. The dedup guard and
    preference store are injected so tests and deployments can supply their own.

    Usage:
        router = Router(dify, DedupGuard(), PreferenceStore(), CannedResponseMatcher())
        app.event("app_mention")(router.handle_mention)
    """

    def __init__(
        self,
        dify: DifyClient,
        dedup: DedupGuard,
        preferences: PreferenceStore,
        canned: CannedResponseMatcher,
        show_thinking_indicator: bool = True,
    ):
        self.dify = dify
        self.dedup = dedup
        self.preferences = preferences
        self.canned = canned
        self.show_thinking_indicator = show_thinking_indicator
        self.bot_user_id: Optional[str] = None

        # Evaluated in order; the first match handles the message and stops.
        self._message_rules: list[tuple[re.Pattern, MessageHandler]] = [
            (GREETING_PATTERN, self._reply_greeting),
            (THANKS_PATTERN, self._reply_thanks),
            (USE_MODEL_PATTERN, self._reply_use_model),
        ]

    # ------------------------------------------------------------------
    # Shared helpers

    async def _get_bot_user_id(self, client) -> Optional[str]:
        """Fetch and cache the bot's user ID."""
        if not self.bot_user_id:
            auth_response = await client.auth_test()
            self.bot_user_id = auth_response["user_id"]
        return self.bot_user_id

    async def _strip_mention(self, text: str, client) -> str:
        try:
            bot_user_id = await self._get_bot_user_id(client)
        except Exception as e:
            logger.warning(f"Could not resolve bot user id, stripping all mentions: {e}")
            return re.sub(r"<@[A-Z0-9]+>", "", text).strip()
        return text.replace(f"<@{bot_user_id}>", "").strip()

    async def _is_direct_message(self, client, channel_id: str) -> bool:
        """Ask Slack whether `channel_id` is an IM channel.

        Raises:
            ChannelLookupError: If the lookup fails
        """
        try:
            info = await client.conversations_info(channel=channel_id)
            return bool(info["channel"].get("is_im"))
        except Exception as e:
            raise ChannelLookupError(f"conversations.info failed for {channel_id}: {e}") from e

    @staticmethod
    async def _say(say: Callable, payload: dict[str, Any], thread_id: Optional[str] = None):
        if thread_id:
            await say(**payload, thread_ts=thread_id)
        else:
            await say(**payload)

    @staticmethod
    def _text_reply(text: str, block_text: Optional[str] = None) -> dict[str, Any]:
        return {"text": text, "blocks": [section(block_text or text)]}

    # ------------------------------------------------------------------
    # Interactive actions

    async def handle_action(self, ack, body: dict, respond):
        """Handle button clicks, select menus and feedback buttons."""
        await ack()
        action = InteractiveAction.from_body(body)
        logger.info(f"Action {action.action_id} from {action.user_id} (value={action.value})")

        if action.action_id in (ActionId.FEEDBACK_POSITIVE, ActionId.FEEDBACK_NEGATIVE):
            await self._handle_feedback(action, respond)
            return

        try:
            if action.action_id == ActionId.BUTTON_CLICK:
                text = f"You clicked the button with value: {action.value}"
            elif action.action_id == ActionId.SELECT_MENU:
                text = f"You selected: {action.value}"
            else:
                logger.warning(f"Unhandled action id: {action.action_id}")
                return
            await respond(text=text, replace_original=False)
        except Exception as e:
            logger.error(f"Error handling {action.action_id} action: {e}")

    async def _handle_feedback(self, action: InteractiveAction, respond):
        positive = action.action_id == ActionId.FEEDBACK_POSITIVE
        try:
            result = await self.dify.submit_feedback(action.value or "", 1 if positive else 0, action.user_id)
            if result.success:
                text = FEEDBACK_POSITIVE_TEXT if positive else FEEDBACK_NEGATIVE_TEXT
            else:
                logger.info(f"Feedback submission failed: {result.error}")
                text = FEEDBACK_ISSUE_TEXT
            await respond(text=text, replace_original=False, response_type="ephemeral")
        except Exception as e:
            logger.error(f"Error handling {action.action_id} action: {e}")
            try:
                await respond(text=FEEDBACK_ISSUE_TEXT, replace_original=False, response_type="ephemeral")
            except Exception as respond_err:
                logger.error(f"Could not acknowledge feedback: {respond_err}")

    # ------------------------------------------------------------------
    # Slash commands

    async def handle_command(self, ack, command: dict, respond):
        """Handle `/hello`, `/help`, `/operation_status` and the model commands."""
        await ack()
        cmd = SlashCommand.from_payload(command)
        logger.info(f"Command /{cmd.name} from {cmd.user_id} in {cmd.channel_id}")

        if cmd.name in MODEL_COMMANDS:
            await self._handle_model_command(ModelName(cmd.name), cmd, respond)
            return

        try:
            if cmd.name == "hello":
                await respond(
                    text=f"Hello <@{cmd.user_id}>!",
                    blocks=[section(f"Hello <@{cmd.user_id}>! How can I help you today?")],
                )
            elif cmd.name == "help":
                await respond(
                    text="Available commands:",
                    blocks=[section("*Available Commands:*"), section(HELP_COMMANDS_TEXT)],
                )
            elif cmd.name == "operation_status":
                await respond(text="✅ The bot is up and running.")
            else:
                logger.warning(f"Unhandled command: /{cmd.name}")
        except Exception as e:
            logger.error(f"Error handling /{cmd.name} command: {e}")

    async def _handle_model_command(self, model: ModelName, cmd: SlashCommand, respond):
        if not cmd.argument_text:
            await respond(
                text=f"Please provide a question or prompt to send to {model.upper()}",
                response_type="ephemeral",
            )
            return

        try:
            reply = await self.dify.send_message(cmd.argument_text, cmd.user_id, model)
            await respond(**format_reply(reply, model).to_payload())
        except Exception as e:
            logger.error(f"Error handling /{model} command: {e!r}")
            try:
                await respond(text=model_error_text(model), response_type="ephemeral")
            except Exception as respond_err:
                logger.error(f"Could not report /{model} failure to user: {respond_err}")

    # ------------------------------------------------------------------
    # Mentions

    async def handle_mention(self, event: dict, say, client):
        """Answer an `app_mention` once, with a canned or Dify answer."""
        mention = Mention.from_event(event)
        if mention.message_id and not self.dedup.claim(mention.message_id):
            logger.debug(f"Mention {mention.message_id} already handled, skipping")
            return

        try:
            text = await self._strip_mention(mention.text, client)
            if not text:
                greeting = f"Hello <@{mention.user_id}>! How can I help you today?"
                await self._say(say, self._text_reply(greeting), mention.thread_id)
                return

            canned = self.canned.match(text)
            if canned:
                logger.info(f"Using canned response {canned.response_id} for mention {mention.message_id}")
                formatted = format_reply(canned.as_reply(), ModelName.CLAUDE)
            else:
                reply = await self.dify.send_message(text, mention.user_id, ModelName.CLAUDE)
                formatted = format_reply(reply, ModelName.CLAUDE)

            await self._say(say, formatted.to_payload(), mention.thread_id)
        except Exception as e:
            logger.error(f"Error handling app_mention event: {e!r}")
            try:
                await self._say(say, {"text": MENTION_ERROR_TEXT}, mention.thread_id)
            except Exception as say_err:
                logger.error(f"Could not report mention failure to user: {say_err}")

    # ------------------------------------------------------------------
    # Messages

    async def handle_message(self, event: dict, say, client):
        """Handle a generic `message` event.

        Greeting, thanks and `use <model>` messages are answered wherever they
        appear. Anything else is only answered in a direct-message channel.
        """
        message = DirectMessage.from_event(event)
        if message.is_bot or message.subtype in IGNORED_SUBTYPES:
            return

        text = message.text.strip()
        for pattern, handler in self._message_rules:
            match = pattern.search(text)
            if not match:
                continue
            if message.message_id and not self.dedup.claim(message.message_id):
                return
            try:
                await handler(message, match, say)
            except Exception as e:
                logger.error(f"Error handling {handler.__name__} message: {e}")
            return

        # Only plain user messages go to Dify (no file_share, thread_broadcast, ...)
        if message.subtype or not text or self.dedup.has_handled(message.message_id):
            return

        try:
            is_dm = await self._is_direct_message(client, message.channel_id)
        except ChannelLookupError as e:
            logger.error(f"Error checking conversation info: {e}")
            return
        if not is_dm:
            return

        if message.message_id and not self.dedup.claim(message.message_id):
            return
        await self._answer_direct_message(message, text, say, client)

    async def _answer_direct_message(self, message: DirectMessage, text: str, say, client):
        canned = self.canned.match(text)
        if canned:
            logger.info(f"Using canned response {canned.response_id} for DM {message.message_id}")
            try:
                formatted = format_reply(canned.as_reply(), ModelName.CLAUDE)
                await self._say(say, formatted.to_payload(), message.thread_id)
            except Exception as e:
                logger.error(f"Error sending canned DM reply: {e}")
            return

        model = self.preferences.get(message.user_id)
        try:
            if self.show_thinking_indicator:
                await self._post_thinking(client, message)
            reply = await self.dify.send_message(text, message.user_id, model)
            await self._say(say, format_reply(reply, model).to_payload(), message.thread_id)
        except GatewayError as e:
            logger.error(f"Error handling direct message with Dify: {e!r} (cause: {e.__cause__!r})")
            try:
                await self._say(say, {"text": model_error_text(model)}, message.thread_id)
            except Exception as say_err:
                logger.error(f"Could not report DM failure to user: {say_err}")
        except Exception as e:
            logger.error(f"Error handling direct message with Dify: {e!r}")

    async def _post_thinking(self, client, message: DirectMessage):
        kwargs: dict[str, Any] = {"channel": message.channel_id, **self._text_reply(THINKING_TEXT)}
        if message.thread_id:
            kwargs["thread_ts"] = message.thread_id
        try:
            await client.chat_postMessage(**kwargs)
        except Exception as e:
            logger.warning(f"Failed to post thinking indicator: {e}")

    async def _reply_greeting(self, message: DirectMessage, match: re.Match, say):
        await self._say(
            say,
            self._text_reply(f"Hello <@{message.user_id}>!", f"Hello there, <@{message.user_id}>! 👋"),
            message.thread_id,
        )

    async def _reply_thanks(self, message: DirectMessage, match: re.Match, say):
        await self._say(
            say,
            self._text_reply(f"You're welcome, <@{message.user_id}>!", f"You're welcome, <@{message.user_id}>! 😊"),
            message.thread_id,
        )

    async def _reply_use_model(self, message: DirectMessage, match: re.Match, say):
        model = ModelName(match.group(1).lower())
        self.preferences.set(message.user_id, model)
        await self._say(
            say,
            self._text_reply(
                f"I'll use {model.upper()} for your future questions.",
                f"I'll use *{model.upper()}* for your future questions. You can change this anytime "
                "by typing `use claude`, `use chatgpt`, or `use gemini`.",
            ),
            message.thread_id,
        )

    # ------------------------------------------------------------------
    # Workspace events

    async def handle_team_join(self, event: dict, client):
        """Send a welcome DM to a new workspace member."""
        user_id = (event.get("user") or {}).get("id")
        if not user_id:
            return
        try:
            await client.chat_postMessage(
                channel=user_id,
                text=f"Welcome to the team, <@{user_id}>! 👋",
                blocks=[
                    section(
                        f"Welcome to the team, <@{user_id}>! 👋\n\n"
                        "We're glad you're here! Here are a few things to help you get started:"
                    ),
                    section(
                        "• Browse channels and join ones relevant to your work\n"
                        "• Introduce yourself in #introductions\n"
                        "• Set up your profile with a photo and details\n"
                        "• Send me a message any time you have a question"
                    ),
                ],
            )
        except Exception as e:
            logger.error(f"Error handling team_join event: {e}")
