"""Core modules for the Dify Slack bot."""

from .blocks import format_reply, FormattedReply
from .canned import CannedResponse, CannedResponseMatcher
from .dedup import DedupGuard
from .dify_client import DifyClient
from .errors import DifyBotError, GatewayError, FeedbackSubmissionError, ChannelLookupError
from .preferences import PreferenceStore
from .router import Router
from .slack_client import SlackIntegration

__all__ = [
    "format_reply", "FormattedReply", "CannedResponse", "CannedResponseMatcher",
    "DedupGuard", "DifyClient", "PreferenceStore", "Router", "SlackIntegration",
    "DifyBotError", "GatewayError", "FeedbackSubmissionError", "ChannelLookupError",
]
