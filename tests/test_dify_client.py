"""Tests for the Dify gateway client."""

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from difybot.core.dify_client import DifyClient
from difybot.core.errors import GatewayError
from difybot.models import NO_RESPONSE_TEXT

BASE_URL = "https://api.dify.ai/v1"


@pytest.fixture
def client():
    return DifyClient(api_key="app-test-key", base_url=BASE_URL)


@pytest.mark.asyncio
async def test_send_message_blocking(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        method="POST",
        url=f"{BASE_URL}/chat-messages",
        json={
            "answer": "Hello from Dify",
            "message_id": "msg-123",
            "conversation_id": "conv-1",
            "metadata": {
                "usage": {
                    "prompt_tokens": 20,
                    "completion_tokens": 7,
                    "total_tokens": 27,
                    "latency": 0.1234,
                }
            },
        },
    )

    reply = await client.send_message("Hi there", "U123", "gemini")
    await client.close()

    request = httpx_mock.get_requests()[0]
    assert request.headers["Authorization"] == "Bearer app-test-key"
    assert json.loads(request.content) == {
        "inputs": {"model": "gemini"},
        "query": "Hi there",
        "user": "U123",
        "response_mode": "blocking",
    }
    assert reply.answer_text == "Hello from Dify"
    assert reply.message_id == "msg-123"
    assert reply.conversation_id == "conv-1"
    assert reply.usage.total_tokens == 27
    assert reply.usage.latency_ms == 123


@pytest.mark.asyncio
async def test_send_message_without_model_or_answer(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(json={"message_id": "msg-empty"})

    reply = await client.send_message("Hi", "U123")
    await client.close()

    assert json.loads(httpx_mock.get_requests()[0].content)["inputs"] == {}
    assert reply.answer_text == NO_RESPONSE_TEXT
    assert reply.usage is None


@pytest.mark.asyncio
async def test_send_message_transport_failure(client, httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

    with pytest.raises(GatewayError) as exc_info:
        await client.send_message("Hi", "U123", "claude")
    await client.close()

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_send_message_non_json_body(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(text="<html>Bad Gateway</html>")

    with pytest.raises(GatewayError):
        await client.send_message("Hi", "U123", "claude")
    await client.close()


@pytest.mark.asyncio
async def test_send_message_json_that_is_not_an_object(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(json=[{"answer": "Hello"}])
    httpx_mock.add_response(text="null", headers={"Content-Type": "application/json"})

    with pytest.raises(GatewayError, match="list"):
        await client.send_message("Hi", "U123", "claude")
    with pytest.raises(GatewayError, match="NoneType"):
        await client.send_message("Hi", "U123", "claude")
    await client.close()


@pytest.mark.asyncio
async def test_send_message_http_error_status(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(status_code=401, json={"code": "unauthorized", "message": "Invalid key"})

    with pytest.raises(GatewayError) as exc_info:
        await client.send_message("Hi", "U123", "claude")
    await client.close()

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_send_message_streaming_aggregates_chunks(client, httpx_mock: HTTPXMock):
    events = [
        {"event": "message", "message_id": "msg-s", "conversation_id": "conv-s", "answer": "Hel"},
        {"event": "message", "message_id": "msg-s", "answer": "lo!"},
        {
            "event": "message_end",
            "message_id": "msg-s",
            "metadata": {"usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5, "latency": 0.5}},
        },
    ]
    body = "".join(f"data: {json.dumps(e)}\n\n" for e in events)
    httpx_mock.add_response(content=body.encode(), headers={"Content-Type": "text/event-stream"})

    reply = await client.send_message("Hi", "U123", "claude", streaming=True)
    await client.close()

    assert json.loads(httpx_mock.get_requests()[0].content)["response_mode"] == "streaming"
    assert reply.answer_text == "Hello!"
    assert reply.message_id == "msg-s"
    assert reply.conversation_id == "conv-s"
    assert reply.usage.total_tokens == 5


@pytest.mark.asyncio
async def test_send_message_streaming_error_event(client, httpx_mock: HTTPXMock):
    body = 'data: {"event": "error", "status": 400, "message": "quota exceeded"}\n\n'
    httpx_mock.add_response(content=body.encode(), headers={"Content-Type": "text/event-stream"})

    with pytest.raises(GatewayError) as exc_info:
        await client.send_message("Hi", "U123", "claude", streaming=True)
    await client.close()

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_send_completion_message(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        method="POST",
        url=f"{BASE_URL}/completion-messages",
        json={"answer": "Done", "message_id": "cmp-1"},
    )

    reply = await client.send_completion_message("Summarize", "U123", "chatgpt")
    await client.close()

    payload = json.loads(httpx_mock.get_requests()[0].content)
    assert "response_mode" not in payload
    assert payload["inputs"] == {"model": "chatgpt"}
    assert reply.answer_text == "Done"


@pytest.mark.asyncio
async def test_get_conversations(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        method="GET",
        url=f"{BASE_URL}/conversations?user=U123",
        json={"data": [{"id": "conv-1"}], "has_more": False},
    )

    data = await client.get_conversations("U123")
    await client.close()

    assert data["data"][0]["id"] == "conv-1"


@pytest.mark.asyncio
async def test_get_conversation_history(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        method="GET",
        url=f"{BASE_URL}/messages?conversation_id=conv-1&user=U123",
        json={"data": [{"id": "m1"}, {"id": "m2"}]},
    )

    data = await client.get_conversation_history("conv-1", "U123")
    await client.close()

    assert [m["id"] for m in data["data"]] == ["m1", "m2"]


@pytest.mark.asyncio
async def test_get_conversations_fails_loud(client, httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

    with pytest.raises(GatewayError):
        await client.get_conversations("U123")
    await client.close()


@pytest.mark.asyncio
async def test_submit_feedback_success(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        method="POST",
        url=f"{BASE_URL}/message-feedbacks",
        json={"result": "success"},
    )

    result = await client.submit_feedback("msg-1", 1, "U123")
    await client.close()

    assert json.loads(httpx_mock.get_requests()[0].content) == {
        "message_id": "msg-1",
        "rating": 1,
        "user": "U123",
    }
    assert result.success is True
    assert result.data == {"result": "success"}


@pytest.mark.asyncio
async def test_submit_feedback_server_error_does_not_raise(client, httpx_mock: HTTPXMock):
    httpx_mock.add_response(status_code=500, text="Internal Server Error")

    result = await client.submit_feedback("msg-1", 0, "U123")
    await client.close()

    assert result.success is False
    assert result.error


@pytest.mark.asyncio
async def test_submit_feedback_transport_error_does_not_raise(client, httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

    result = await client.submit_feedback("msg-1", 1, "U123")
    await client.close()

    assert result.success is False
    assert "Connection refused" in result.error
