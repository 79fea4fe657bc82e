"""Slack bot that answers with a Dify AI gateway."""

__version__ = "0.1.0"
