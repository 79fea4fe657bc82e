"""Payload builders for Slack events used across tests."""

BOT_USER_ID = "UBOT123"


def make_message(text: str, ts: str = "1700000000.000100", channel: str = "D123", **extra) -> dict:
    event = {
        "type": "message",
        "channel": channel,
        "user": "U123",
        "text": text,
        "ts": ts,
    }
    event.update(extra)
    return event


def make_mention(text: str, ts: str = "1700000000.000200", channel: str = "C123", **extra) -> dict:
    event = {
        "type": "app_mention",
        "channel": channel,
        "user": "U123",
        "text": text,
        "ts": ts,
    }
    event.update(extra)
    return event
