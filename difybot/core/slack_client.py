"""Slack integration using Bolt framework with Socket Mode."""

import logging
import time
from typing import Optional

from slack_bolt.async_app import AsyncApp
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler

from ..common.enums import ActionId
from .router import Router

logger = logging.getLogger(__name__)

SLASH_COMMANDS = ("/hello", "/help", "/operation_status", "/claude", "/chatgpt", "/gemini")


class SlackIntegration:
    """Slack Bot integration with Socket Mode support.

    Every listener delegates to the Router; this class only wires Bolt to it
    and owns the socket connection.
    """

    def __init__(
        self,
        bot_token: str,
        app_token: str,
        router: Router,
        signing_secret: Optional[str] = None,
        app: Optional[AsyncApp] = None,
    ):
        self.app = app or AsyncApp(token=bot_token, signing_secret=signing_secret or None)
        self.app_token = app_token
        self.router = router
        self._handler: Optional[AsyncSocketModeHandler] = None

        self.app.middleware(self._log_request_timing)
        self._setup_handlers()

    @staticmethod
    async def _log_request_timing(body: dict, next):
        """Log the payload type and how long its listeners took."""
        start_time = time.monotonic()
        try:
            return await next()
        finally:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            kind = body.get("type") or ("slash_command" if body.get("command") else "unknown")
            event_type = (body.get("event") or {}).get("type")
            logger.info(
                f"Request processed in {elapsed_ms:.0f}ms "
                f"(type={kind}{f', event={event_type}' if event_type else ''})"
            )

    def _setup_handlers(self):
        """Setup Slack listeners."""
        for name in SLASH_COMMANDS:
            self.app.command(name)(self.router.handle_command)

        for action_id in ActionId:
            self.app.action(action_id.value)(self.router.handle_action)

        self.app.event("app_mention")(self.router.handle_mention)
        self.app.event("team_join")(self.router.handle_team_join)
        self.app.event("message")(self.router.handle_message)

    async def start(self):
        """Start the Socket Mode handler (non-blocking)."""
        self._handler = AsyncSocketModeHandler(self.app, self.app_token)
        # connect_async() returns once connected instead of blocking forever
        await self._handler.connect_async()
        logger.info("Slack Socket Mode handler started")

    async def stop(self):
        """Stop the Socket Mode handler."""
        if self._handler:
            await self._handler.close_async()
            self._handler = None
            logger.info("Slack Socket Mode handler stopped")
