"""Tests for wiring Bolt listeners to the router."""

from unittest.mock import MagicMock

import pytest

from difybot.core.slack_client import SLASH_COMMANDS, SlackIntegration


@pytest.fixture
def bolt_app():
    return MagicMock()


def test_registers_every_listener(bolt_app, router):
    SlackIntegration(bot_token="xoxb-test", app_token="xapp-test", router=router, app=bolt_app)

    commands = [c.args[0] for c in bolt_app.command.call_args_list]
    assert commands == list(SLASH_COMMANDS)
    for name in ("/claude", "/chatgpt", "/gemini", "/hello", "/help"):
        assert name in commands

    actions = {c.args[0] for c in bolt_app.action.call_args_list}
    assert actions == {"button_click", "select_menu", "dify_feedback_positive", "dify_feedback_negative"}

    events = [c.args[0] for c in bolt_app.event.call_args_list]
    assert events == ["app_mention", "team_join", "message"]

    bolt_app.middleware.assert_called_once()


def test_listeners_delegate_to_router(bolt_app, router):
    SlackIntegration(bot_token="xoxb-test", app_token="xapp-test", router=router, app=bolt_app)

    registered = {
        c.args[0]: bolt_app.event.return_value.call_args_list[i].args[0]
        for i, c in enumerate(bolt_app.event.call_args_list)
    }
    assert registered["app_mention"] == router.handle_mention
    assert registered["message"] == router.handle_message


@pytest.mark.asyncio
async def test_timing_middleware_calls_next(router):
    calls = []

    async def next_():
        calls.append("next")
        return "done"

    result = await SlackIntegration._log_request_timing(
        body={"type": "event_callback", "event": {"type": "message"}}, next=next_
    )

    assert result == "done"
    assert calls == ["next"]


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(bolt_app, router):
    slack = SlackIntegration(bot_token="xoxb-test", app_token="xapp-test", router=router, app=bolt_app)
    await slack.stop()
