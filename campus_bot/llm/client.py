"""Async Gemini client with retry/backoff and text or structured responses."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from campus_bot.config import settings
from campus_bot.errors import (
    BlockedContentError,
    EmptyResponseError,
    MalformedStructuredResponseError,
    ModelError,
    ModelRequestError,
    TransientNetworkError,
)
from campus_bot.llm.request import (
    CompletionResult,
    ErrorResult,
    GenerationRequest,
    StructuredResult,
    TextResult,
)
from campus_bot.llm.retry import RetryPolicy

logger = logging.getLogger(__name__)

_client: ModelClient | None = None


def build_payload(request: GenerationRequest, search_tool: str) -> dict[str, Any]:
    """Translate a request into a ``generateContent`` JSON body."""
    payload: dict[str, Any] = {"contents": [{"parts": [{"text": request.prompt}]}]}
    if request.system_instruction:
        payload["systemInstruction"] = {"parts": [{"text": request.system_instruction}]}
    if request.web_search:
        payload["tools"] = [{search_tool: {}}]
    if request.output_schema is not None:
        payload["generationConfig"] = {
            "responseMimeType": "application/json",
            "responseSchema": request.output_schema,
        }
    return payload


def _candidate_text(body: dict[str, Any]) -> str | None:
    """Pull ``candidates[0].content.parts[0].text`` out of a response body."""
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


def _block_reason(body: dict[str, Any]) -> str | None:
    feedback = body.get("promptFeedback")
    if isinstance(feedback, dict):
        return feedback.get("blockReason") or None
    return None


def interpret_response(body: dict[str, Any], structured: bool) -> CompletionResult:
    """Map a decoded response body onto a result.

    Blocked, empty and malformed responses are reported, never retried.
    """
    text = _candidate_text(body)
    if text is None:
        reason = _block_reason(body)
        if reason:
            logger.warning("Model response blocked: %s", reason)
            return ErrorResult(BlockedContentError(reason))
        logger.warning("Model response was empty: %s", str(body)[:200])
        if structured:
            return ErrorResult(MalformedStructuredResponseError("empty structured response"))
        return ErrorResult(EmptyResponseError("empty response"))

    if not structured:
        return TextResult(text)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse structured JSON response: %s", exc)
        return ErrorResult(MalformedStructuredResponseError(str(exc)))
    if not isinstance(data, dict):
        logger.error("Structured response is not a JSON object: %s", text[:200])
        return ErrorResult(MalformedStructuredResponseError("expected a JSON object"))
    return StructuredResult(data)


class ModelClient:
    """Issues one logical completion per call against the Gemini REST API.

    Stateless between calls apart from the pooled HTTP connection. Service
    failures come back as ``ErrorResult``; only invalid requests raise.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        url: str | None = None,
        search_tool: str | None = None,
        retry_policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self._url = url or settings.get_model_url()
        self._search_tool = search_tool or settings.search_tool
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
        )
        self._http = http_client

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=settings.request_timeout)
        return self._http

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def complete(
        self,
        prompt: str,
        system_instruction: str | None = None,
        output_schema: dict[str, Any] | None = None,
        web_search: bool = False,
    ) -> CompletionResult:
        """Run one completion. Raises ``ValueError`` only for invalid input."""
        request = GenerationRequest(
            prompt=prompt,
            system_instruction=system_instruction,
            output_schema=output_schema,
            web_search=web_search,
        )
        return await self.complete_request(request)

    async def complete_request(self, request: GenerationRequest) -> CompletionResult:
        payload = build_payload(request, self._search_tool)
        try:
            content = json.dumps(payload).encode()
        except (TypeError, ValueError) as exc:
            logger.error("Could not encode model request: %s", exc)
            return ErrorResult(ModelRequestError(f"Request body not encodable: {exc}"))

        try:
            body = await self.retry_policy.run(
                lambda: self._post(content),
                retry_on=(TransientNetworkError,),
            )
        except ModelError as exc:
            return ErrorResult(exc)
        return interpret_response(body, structured=request.structured)

    async def _post(self, content: bytes) -> dict[str, Any]:
        """Single HTTP attempt.

        Transport and response failures raise ``TransientNetworkError``. A URL
        httpx cannot use raises ``ModelRequestError``, which is not retried.
        """
        try:
            resp = await self._get_http().post(
                self._url,
                params={"key": self._api_key},
                content=content,
                headers={"Content-Type": "application/json"},
            )
        except httpx.InvalidURL as exc:
            logger.error("Model endpoint URL is invalid: %s", exc)
            raise ModelRequestError(f"Invalid model URL: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransientNetworkError(f"Transport error: {exc}") from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            raise TransientNetworkError(f"HTTP error! status: {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise TransientNetworkError("Response body is not JSON") from exc
        if not isinstance(body, dict):
            raise TransientNetworkError("Response body is not a JSON object")
        return body


def get_model_client() -> ModelClient:
    """Lazily create the shared model client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = ModelClient()
    return _client
