"""Error types raised at the bot's external boundaries."""

from typing import Optional


class DifyBotError(Exception):
    """Base exception for the Dify Slack bot."""
    pass


class GatewayError(DifyBotError):
    """A call to the Dify gateway failed (transport, HTTP status or body)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FeedbackSubmissionError(GatewayError):
    """The feedback endpoint rejected a submission."""
    pass


class ChannelLookupError(DifyBotError):
    """Could not resolve the type of a Slack channel."""
    pass
