"""Dify API client for chat, history and feedback calls."""

import json
import logging
import time
from typing import Optional, Any

import httpx

from ..models import GatewayReply, FeedbackResult, NO_RESPONSE_TEXT, Usage
from .errors import GatewayError, FeedbackSubmissionError

logger = logging.getLogger(__name__)


class DifyClient:
    """Asynchronous client for the Dify application API.

    Chat and read calls raise GatewayError on failure; the caller decides what
    the user sees. Feedback calls never raise and report failures through
    FeedbackResult instead.

    Usage:
        client = DifyClient(api_key="app-...")
        reply = await client.send_message("Hello", user_id="U123", model="claude")
        print(reply.answer_text)
        await client.close()
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.dify.ai/v1",
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        """Perform a request and decode the JSON body.

        Raises:
            GatewayError: On transport failure, non-2xx status or a body that is not a JSON object
        """
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[DIFY API] {method} {path} returned {e.response.status_code}: "
                f"{e.response.text[:200]}"
            )
            raise GatewayError(
                f"Dify returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"[DIFY API] {method} {path} failed: {e!r}")
            raise GatewayError(f"Dify request failed: {e}") from e
        except ValueError as e:
            logger.error(f"[DIFY API] {method} {path} returned a non-JSON body")
            raise GatewayError("Dify returned a non-JSON body") from e

        if not isinstance(data, dict):
            logger.error(f"[DIFY API] {method} {path} returned {type(data).__name__}, expected an object")
            raise GatewayError(f"Dify returned a JSON {type(data).__name__} instead of an object")
        return data

    @staticmethod
    def _build_payload(
        text: str,
        user_id: str,
        model: Optional[str],
        files: Optional[list[dict]],
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "inputs": {"model": str(model)} if model else {},
            "query": text,
            "user": user_id,
        }
        if files:
            payload["files"] = files
        return payload

    async def send_message(
        self,
        text: str,
        user_id: str,
        model: Optional[str] = None,
        streaming: bool = False,
        files: Optional[list[dict]] = None,
    ) -> GatewayReply:
        """Send a chat message and return Dify's answer.

        Args:
            text: User query
            user_id: Slack user ID, used as the Dify end-user identifier
            model: Model name passed through `inputs.model`
            streaming: Request `streaming` mode and aggregate the SSE answer
            files: Optional Dify file descriptors

        Returns:
            GatewayReply with answer text, message id and usage

        Raises:
            GatewayError: If the call fails or the body cannot be decoded
        """
        payload = self._build_payload(text, user_id, model, files)
        payload["response_mode"] = "streaming" if streaming else "blocking"

        logger.info(
            f"[DIFY API] chat-messages request: user={user_id}, model={model or 'default'}, "
            f"query_length={len(text)}, mode={payload['response_mode']}, has_files={bool(files)}"
        )
        start_time = time.monotonic()

        if streaming:
            reply = await self._send_streaming(payload)
        else:
            data = await self._request("POST", "/chat-messages", json=payload)
            if data.get("answer") is None:
                logger.warning(f"[DIFY API] Response has no answer field. Keys: {', '.join(data)}")
            reply = GatewayReply.from_json(data)

        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            f"[DIFY API] chat-messages answered in {elapsed_ms:.0f}ms "
            f"(message_id={reply.message_id}, answer_length={len(reply.answer_text or '')})"
        )
        return reply

    async def _send_streaming(self, payload: dict[str, Any]) -> GatewayReply:
        """Consume a `streaming` response and fold it into one reply."""
        client = await self._get_client()
        chunks: list[str] = []
        message_id = ""
        conversation_id = None
        usage: Optional[Usage] = None

        try:
            async with client.stream("POST", "/chat-messages", json=payload) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.startswith("data: "):
                        continue
                    try:
                        chunk = json.loads(line[6:])
                    except json.JSONDecodeError as e:
                        logger.warning(f"Error parsing SSE chunk: {e}")
                        continue

                    event = chunk.get("event")
                    message_id = chunk.get("message_id") or message_id
                    conversation_id = chunk.get("conversation_id") or conversation_id
                    if event in ("message", "agent_message"):
                        chunks.append(chunk.get("answer") or "")
                    elif event == "message_end":
                        usage = Usage.from_dict((chunk.get("metadata") or {}).get("usage"))
                    elif event == "error":
                        raise GatewayError(
                            f"Dify stream error: {chunk.get('message', 'unknown error')}",
                            status_code=chunk.get("status"),
                        )
        except httpx.HTTPStatusError as e:
            raise GatewayError(
                f"Dify returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"[DIFY API] streaming chat-messages failed: {e!r}")
            raise GatewayError(f"Dify request failed: {e}") from e

        return GatewayReply(
            answer_text="".join(chunks) if chunks else NO_RESPONSE_TEXT,
            message_id=message_id,
            usage=usage,
            conversation_id=conversation_id,
        )

    async def send_completion_message(
        self,
        text: str,
        user_id: str,
        model: Optional[str] = None,
        files: Optional[list[dict]] = None,
    ) -> GatewayReply:
        """Send a single-turn completion request (`/completion-messages`)."""
        payload = self._build_payload(text, user_id, model, files)
        logger.info(
            f"[DIFY API] completion-messages request: user={user_id}, "
            f"model={model or 'default'}, query_length={len(text)}"
        )
        data = await self._request("POST", "/completion-messages", json=payload)
        return GatewayReply.from_json(data)

    async def get_conversations(self, user_id: str) -> dict[str, Any]:
        """List the user's Dify conversations."""
        logger.info(f"[DIFY API] Getting conversations for user: {user_id}")
        data = await self._request("GET", "/conversations", params={"user": user_id})
        logger.info(f"[DIFY API] Retrieved {len(data.get('data') or [])} conversations")
        return data

    async def get_conversation_history(self, conversation_id: str, user_id: str) -> dict[str, Any]:
        """List the messages of a Dify conversation."""
        logger.info(
            f"[DIFY API] Getting messages for conversation: {conversation_id}, user: {user_id}"
        )
        data = await self._request(
            "GET",
            "/messages",
            params={"conversation_id": conversation_id, "user": user_id},
        )
        logger.info(f"[DIFY API] Retrieved {len(data.get('data') or [])} messages")
        return data

    async def submit_feedback(self, message_id: str, rating: int, user_id: str) -> FeedbackResult:
        """Record a rating for a Dify message.

        Feedback is best-effort: every failure is logged and returned as
        FeedbackResult(success=False) rather than raised.

        Args:
            message_id: Dify message id the feedback refers to
            rating: 1 for positive, 0 for negative
            user_id: Slack user ID
        """
        logger.info(
            f"[DIFY API] Providing feedback for message {message_id}, rating: {rating}, user: {user_id}"
        )
        try:
            client = await self._get_client()
            response = await client.post(
                "/message-feedbacks",
                json={"message_id": message_id, "rating": rating, "user": user_id},
            )
            if not response.is_success:
                logger.error(
                    f"[DIFY API] Feedback API error: {response.status_code} {response.reason_phrase}. "
                    f"Body: {response.text[:200]}"
                )
                raise FeedbackSubmissionError(
                    f"API error: {response.status_code}", status_code=response.status_code
                )
            try:
                data = response.json()
            except ValueError:
                data = {}
            logger.info("[DIFY API] Feedback submitted successfully")
            return FeedbackResult(success=True, data=data)
        except (FeedbackSubmissionError, httpx.HTTPError) as e:
            logger.error(f"[DIFY API] Error providing feedback to Dify: {e}")
            return FeedbackResult(success=False, error=str(e) or e.__class__.__name__)

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
