"""Intent parsing through an Ollama-compatible inference service.

The adapter sends one ``/api/generate`` request per call, asks for a
constrained JSON object and validates it strictly. Every failure surfaces as
an ``InferenceError`` subclass so the dispatcher can log it and move on.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from taskparse.services.errors import (
    InferenceSchemaError,
    InferenceTimeoutError,
    InferenceTransportError,
    ServiceUnavailableError,
)
from taskparse.services.intent import Event, Intent, Priority, Task

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "qwen2.5:7b"
DEFAULT_BASE_URL = "http://localhost:11434"

PROMPT_TEMPLATE = """\
Today is {today} ({weekday}). Tomorrow is {tomorrow}. Parse the following \
natural language input into structured JSON.

TIME RULES:
- "4:12 PM" or "4:12 pm" means 16:12:00 (afternoon)
- "4:12 AM" or "4:12 am" means 04:12:00 (morning)
- "12:00 PM" means 12:00:00 (noon)
- "12:00 AM" means 00:00:00 (midnight)
- "today" means {today}, "tomorrow" means {tomorrow}
- datetime must be ISO 8601 with an explicit offset: YYYY-MM-DDTHH:MM:SS{offset}

Extract: type (task or event), title, datetime (ISO 8601 with offset, or null), \
tags (array of strings, without #), priority (low, medium, high or urgent).
An event must have a datetime.

Examples:
Input: "Submit report tomorrow at 3pm #work"
Output: {{"type": "task", "title": "Submit report", "datetime": "{tomorrow}T15:00:00{offset}", \
"tags": ["work"], "priority": "medium"}}

Input: "Meeting at 4:12 PM #important"
Output: {{"type": "event", "title": "Meeting", "datetime": "{today}T16:12:00{offset}", \
"tags": ["important"], "priority": "medium"}}

Input: "Call John at 9:30 AM tomorrow"
Output: {{"type": "task", "title": "Call John", "datetime": "{tomorrow}T09:30:00{offset}", \
"tags": [], "priority": "medium"}}

Now parse: "{text}"
Output (ONLY valid JSON, no explanations):"""


class StructuredOutput(BaseModel):
    """The JSON object the model is asked to return."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["task", "event"]
    title: str
    when: str | None = Field(default=None, alias="datetime")
    tags: list[str] | None = None
    priority: Literal["low", "medium", "high", "urgent"] | None = None

    @field_validator("type", "priority", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class InferenceParser:
    """Parse intents with an external text-generation service."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        model: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        if base_url is None or model is None or timeout is None:
            from taskparse.config import settings

            base_url = base_url or settings.ollama_base_url
            model = model or settings.ollama_model
            timeout = timeout if timeout is not None else settings.inference_timeout

        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.model = model or DEFAULT_MODEL
        self.timeout = timeout
        if client is None:
            import httpx

            self.client = httpx.AsyncClient(timeout=timeout)
            self._owns_client = True
        else:
            self.client = client
            self._owns_client = False
        self.available: bool | None = None

    async def aclose(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self.client.aclose()

    async def health_check(self) -> bool:
        """Probe the service once; any HTTP answer counts as reachable."""
        import httpx

        try:
            await asyncio.wait_for(
                self.client.get(f"{self.base_url}/api/tags"), timeout=self.timeout
            )
        except (httpx.HTTPError, asyncio.TimeoutError) as exc:
            logger.warning("Inference service at %s not reachable: %s", self.base_url, exc)
            self.available = False
        else:
            self.available = True
        return self.available

    async def parse(self, text: str, now: datetime) -> Intent:
        """Interpret ``text`` relative to ``now``.

        Raises:
            ServiceUnavailableError: the last health probe failed
            InferenceTimeoutError: no answer within the timeout
            InferenceTransportError: connection failure or HTTP error status
            InferenceSchemaError: the answer is not a valid intent
        """
        if self.available is False:
            raise ServiceUnavailableError(f"No inference service at {self.base_url}")

        payload = await self._request(self.build_prompt(text, now))
        raw = self._extract_response(payload)
        return self.parse_response(raw, now)

    def build_prompt(self, text: str, now: datetime) -> str:
        offset = now.strftime("%z") or "+0000"
        return PROMPT_TEMPLATE.format(
            today=now.strftime("%Y-%m-%d"),
            weekday=now.strftime("%A"),
            tomorrow=(now + timedelta(days=1)).strftime("%Y-%m-%d"),
            offset=f"{offset[:3]}:{offset[3:]}",
            text=text.replace('"', "'"),
        )

    async def _request(self, prompt: str) -> Any:
        import httpx

        request = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
        }
        try:
            response = await asyncio.wait_for(
                self.client.post(f"{self.base_url}/api/generate", json=request),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise InferenceTimeoutError(self.timeout) from exc
        except httpx.HTTPError as exc:
            raise InferenceTransportError(f"Inference request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise InferenceSchemaError("Inference envelope is not JSON") from exc

    def _extract_response(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise InferenceSchemaError("Inference envelope is not an object")
        raw = payload.get("response")
        if not isinstance(raw, str) or not raw.strip():
            raise InferenceSchemaError("Inference envelope has no response text")
        return raw

    def parse_response(self, raw: str, now: datetime) -> Intent:
        """Validate the model's JSON text and build an intent from it."""
        try:
            structured = StructuredOutput.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            raise InferenceSchemaError(f"Invalid inference output: {exc}") from exc

        when = self._parse_datetime(structured.when, now) if structured.when else None
        tags = tuple(tag.lstrip("#") for tag in structured.tags or () if tag.strip())

        if structured.type == "event":
            if when is None:
                raise InferenceSchemaError("Events require a datetime")
            return Event(title=structured.title, start_time=when, tags=tags)

        return Task(
            title=structured.title,
            due_date=when,
            tags=tags,
            priority=Priority.from_label(structured.priority),
            is_scheduled=when is not None,
        )

    def _parse_datetime(self, value: str, now: datetime) -> datetime:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise InferenceSchemaError(f"Unparseable datetime: {value!r}") from exc
        if parsed.tzinfo is None:
            raise InferenceSchemaError(f"Datetime without UTC offset: {value!r}")
        if now.tzinfo is not None:
            return parsed.astimezone(now.tzinfo)
        return parsed
